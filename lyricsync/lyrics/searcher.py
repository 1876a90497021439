"""
Concurrent multi-provider lyrics search

A search fans one SearchRequest out to every enabled provider at once. Each
provider runs its own branch (search, then fetch the top candidates in rank
order) on a worker thread, and results are streamed to the caller in the
order providers finish. A provider that exceeds its time budget, fails or
finds nothing simply contributes nothing.

Usage:
    searcher = get_lyrics_searcher()
    with searcher.search(SearchRequest("Title", "Artist", duration=212)) as task:
        for result in task:
            print(result.source, len(result.lyrics))
"""

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional

from .base import LyricsProvider
from .models import Lyrics, LyricsSource, SearchRequest
from .registry import create_provider
from ..config.settings import get_settings
from ..utils.helpers import calculate_similarity, normalize_artist_name, normalize_track_title
from ..utils.logger import get_logger, log_performance


# How often a blocked iteration re-checks for cancellation
CANCEL_POLL_INTERVAL = 0.05


@dataclass
class ProviderResult:
    """Everything one provider produced for a search"""
    source: LyricsSource
    lyrics: List[Lyrics] = field(default_factory=list)
    elapsed: float = 0.0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None and bool(self.lyrics)


def score_lyrics(lyrics: Lyrics, request: SearchRequest) -> float:
    """
    Relevance of a document for a request (higher is better)

    Title and artist similarity dominate; agreement of the song length and
    the presence of translations or word timing break near ties.
    """
    if request.title:
        title_score = calculate_similarity(
            normalize_track_title(lyrics.title or ""),
            normalize_track_title(request.title)
        )
    else:
        title_score = 0.5

    if request.artist:
        artist_score = calculate_similarity(
            normalize_artist_name(lyrics.artist or ""),
            normalize_artist_name(request.artist)
        )
    else:
        artist_score = 0.5

    length = lyrics.length
    if request.duration and length:
        duration_score = max(0.0, 1.0 - abs(length - request.duration) / 10.0)
    else:
        duration_score = 0.5

    score = title_score * 0.5 + artist_score * 0.3 + duration_score * 0.2
    if lyrics.has_translation:
        score += 0.05
    if lyrics.has_time_tags:
        score += 0.05
    return score


def rank_lyrics(candidates: Iterable[Lyrics], request: SearchRequest) -> List[Lyrics]:
    """Sort candidates by score, best first (stable for equal scores)"""
    return sorted(candidates, key=lambda lyrics: score_lyrics(lyrics, request), reverse=True)


class SearchTask:
    """
    One running search

    Iterating yields a ProviderResult per finished provider. Iteration ends
    when every provider finished, the time budget ran out or the task was
    cancelled; the worker pool and provider sessions are released then.
    """

    def __init__(
        self,
        providers: Dict[LyricsSource, LyricsProvider],
        request: SearchRequest,
        timeout: float,
        max_results: int,
        owns_providers: bool = True
    ):
        self.logger = get_logger(__name__)
        self.request = request
        self.timeout = timeout
        self.max_results = max_results
        self.results: List[ProviderResult] = []
        self.timed_out: List[LyricsSource] = []

        self._providers = providers
        self._owns_providers = owns_providers
        self._cancelled = threading.Event()
        self._finish_lock = threading.Lock()
        self._finished = False
        self._iterated = False

        self._deadline = time.monotonic() + timeout
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, len(providers)),
            thread_name_prefix="lyrics-search"
        )
        self._futures: Dict[Future, LyricsSource] = {
            self._executor.submit(self._run_branch, source, provider): source
            for source, provider in providers.items()
        }

        self.logger.debug(
            f"Search started for '{request.search_term}' on "
            f"{', '.join(source.value for source in providers)}"
        )

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def finished(self) -> bool:
        return self._finished

    def _run_branch(self, source: LyricsSource, provider: LyricsProvider) -> ProviderResult:
        start = time.monotonic()
        tokens = provider.search(self.request)

        documents = []
        for token in tokens[:self.max_results]:
            if self._cancelled.is_set():
                break
            lyrics = provider.fetch(token)
            if lyrics is not None:
                lyrics.metadata.request = self.request
                documents.append(lyrics)

        elapsed = time.monotonic() - start
        self.logger.debug(f"{source.value}: {len(documents)} lyrics in {elapsed:.2f}s")
        return ProviderResult(source=source, lyrics=documents, elapsed=elapsed)

    def _result_of(self, future: Future) -> ProviderResult:
        source = self._futures[future]
        try:
            return future.result()
        except Exception as e:
            self.logger.error(f"{source.value} search branch failed: {e}")
            return ProviderResult(source=source, error=str(e))

    def __iter__(self) -> Iterator[ProviderResult]:
        if self._iterated:
            yield from list(self.results)
            return
        self._iterated = True

        pending = {future for future in self._futures}
        try:
            while pending and not self._cancelled.is_set():
                remaining = self._deadline - time.monotonic()
                if remaining <= 0:
                    self._expire(pending)
                    break

                done, pending = wait(
                    pending,
                    timeout=min(remaining, CANCEL_POLL_INTERVAL),
                    return_when=FIRST_COMPLETED
                )
                for future in done:
                    if self._cancelled.is_set():
                        return
                    if future.cancelled():
                        continue
                    result = self._result_of(future)
                    self.results.append(result)
                    yield result
        finally:
            self._finish()

    def _expire(self, pending) -> None:
        for future in pending:
            source = self._futures[future]
            self.timed_out.append(source)
            future.cancel()
            self.logger.warning(f"{source.value} did not answer within {self.timeout:.1f}s")

    def _finish(self) -> None:
        with self._finish_lock:
            if self._finished:
                return
            self._finished = True

            for future in self._futures:
                future.cancel()
            self._executor.shutdown(wait=False, cancel_futures=True)

            if self._owns_providers:
                for provider in self._providers.values():
                    provider.close()

    def cancel(self) -> None:
        """Stop the search; late provider answers are dropped"""
        if self._cancelled.is_set():
            return
        self._cancelled.set()
        self.logger.debug(f"Search cancelled for '{self.request.search_term}'")
        self._finish()

    def collect(self) -> List[Lyrics]:
        """Block until the search ends and return every document in arrival order"""
        documents = []
        for result in self:
            documents.extend(result.lyrics)
        return documents

    def best(self) -> Optional[Lyrics]:
        """Block until the search ends and return the highest ranked document"""
        ranked = rank_lyrics(self.collect(), self.request)
        return ranked[0] if ranked else None

    def __enter__(self) -> 'SearchTask':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cancel()


class LyricsSearcher:
    """
    Entry point for lyrics searches

    Each search gets fresh provider instances (and HTTP sessions), so
    cancelling one search never disturbs another. Starting a new search
    cancels the previous one.
    """

    def __init__(
        self,
        sources: Optional[Iterable] = None,
        provider_factory: Callable[[LyricsSource], LyricsProvider] = create_provider,
        timeout: Optional[float] = None,
        max_results: Optional[int] = None
    ):
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        self.sources = self._resolve_sources(
            sources if sources is not None else self.settings.lyrics.enabled_sources
        )
        self.provider_factory = provider_factory
        self.timeout = timeout if timeout is not None else self.settings.lyrics.timeout
        self.max_results = max_results if max_results is not None else self.settings.lyrics.max_results_per_provider

        self._lock = threading.Lock()
        self._current: Optional[SearchTask] = None

    def _resolve_sources(self, names: Iterable) -> List[LyricsSource]:
        sources = []
        for name in names:
            try:
                source = LyricsSource(name)
            except ValueError:
                self.logger.warning(f"Ignoring unknown lyrics source: {name}")
                continue
            if source not in sources:
                sources.append(source)
        return sources

    def search(self, request: SearchRequest) -> SearchTask:
        """Start a search on every enabled provider and return immediately"""
        providers = {source: self.provider_factory(source) for source in self.sources}
        task = SearchTask(providers, request, self.timeout, self.max_results)

        with self._lock:
            previous, self._current = self._current, task
        if previous is not None:
            previous.cancel()

        return task

    @log_performance
    def search_all(self, request: SearchRequest) -> List[Lyrics]:
        """Run a search to completion and return all documents, best first"""
        return rank_lyrics(self.search(request).collect(), request)

    def best_match(self, request: SearchRequest) -> Optional[Lyrics]:
        return self.search(request).best()

    def cancel(self) -> None:
        with self._lock:
            task, self._current = self._current, None
        if task is not None:
            task.cancel()


_lyrics_searcher: Optional[LyricsSearcher] = None


def get_lyrics_searcher() -> LyricsSearcher:
    """Get the global lyrics searcher instance"""
    global _lyrics_searcher
    if not _lyrics_searcher:
        _lyrics_searcher = LyricsSearcher()
    return _lyrics_searcher


def reset_lyrics_searcher() -> None:
    """Forget the global searcher so the next access picks up new settings"""
    global _lyrics_searcher
    if _lyrics_searcher:
        _lyrics_searcher.cancel()
    _lyrics_searcher = None
