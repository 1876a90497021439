"""
Lyrics follower

Glues the playback tracker, the lyrics searcher and the line resolver
together: every track change starts a new search (cancelling the previous
one) and the best result is published as the current document. Readers
always see a complete document; edits go to a copy that replaces it.
"""

import threading
from typing import Callable, Optional

from .models import MusicTrack
from .tracker import PlaybackTracker, TrackerEvent
from ..lyrics.models import Lyrics, LyricsLine, SearchRequest
from ..lyrics.resolver import LineResolver
from ..lyrics.searcher import LyricsSearcher, SearchTask
from ..utils.logger import get_logger


LyricsListener = Callable[[Optional[MusicTrack], Optional[Lyrics]], None]


class LyricsFollower:
    """
    Keeps lyrics for the tracker's current track

    Args:
        tracker: Playback tracker to follow
        searcher: Searcher used on track changes
        on_lyrics: Called with (track, lyrics) whenever the document is replaced
    """

    def __init__(
        self,
        tracker: PlaybackTracker,
        searcher: LyricsSearcher,
        on_lyrics: Optional[LyricsListener] = None
    ):
        self.logger = get_logger(__name__)
        self.tracker = tracker
        self.searcher = searcher
        self.on_lyrics = on_lyrics

        self._lock = threading.Lock()
        self._generation = 0
        self._task: Optional[SearchTask] = None
        self._lyrics: Optional[Lyrics] = None
        self._resolver = LineResolver()

        tracker.connect(TrackerEvent.TRACK_CHANGED, self._on_track_changed)
        if tracker.track is not None:
            self._on_track_changed(tracker.track)

    @property
    def lyrics(self) -> Optional[Lyrics]:
        return self._lyrics

    def _publish(self, track: Optional[MusicTrack], lyrics: Optional[Lyrics]) -> None:
        with self._lock:
            self._lyrics = lyrics
            self._resolver.set_lyrics(lyrics)
        if self.on_lyrics is not None:
            self.on_lyrics(track, lyrics)

    def _on_track_changed(self, track: Optional[MusicTrack]) -> None:
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous, self._task = self._task, None
        if previous is not None:
            previous.cancel()

        self._publish(track, None)
        if track is None or not (track.title or track.id):
            return

        request = SearchRequest.from_track(track)
        if not request.title:
            request = SearchRequest(title=track.id, duration=track.duration)

        task = self.searcher.search(request)
        with self._lock:
            if generation != self._generation:
                task.cancel()
                return
            self._task = task

        worker = threading.Thread(
            target=self._finish_search,
            args=(track, task, generation),
            name="lyrics-follow",
            daemon=True
        )
        worker.start()

    def _finish_search(self, track: MusicTrack, task: SearchTask, generation: int) -> None:
        best = task.best()
        with self._lock:
            if generation != self._generation:
                return
            self._task = None

        if best is None:
            self.logger.info(f"No lyrics found for {track.display_name}")
        else:
            self.logger.info(f"Lyrics for {track.display_name} from {best.metadata.source}")
        self._publish(track, best)

    def current_line(self) -> Optional[LyricsLine]:
        """Line active at the tracker's current position"""
        with self._lock:
            resolver = self._resolver
            return resolver.resolve(self.tracker.player_position)

    def tick(self) -> Optional[LyricsLine]:
        """
        Resolve the active line for a display loop

        Returns:
            The active line when it changed since the last tick, otherwise None
        """
        with self._lock:
            changed, line = self._resolver.poll(self.tracker.player_position)
        return line if changed else None

    def adjust_offset(self, delta: float) -> Optional[Lyrics]:
        """Shift the current document by ``delta`` seconds and publish the result"""
        current = self._lyrics
        if current is None:
            return None
        adjusted = current.copy()
        adjusted.adjust_offset(delta)
        self._publish(self.tracker.track, adjusted)
        return adjusted

    def close(self) -> None:
        self.tracker.disconnect(TrackerEvent.TRACK_CHANGED, self._on_track_changed)
        with self._lock:
            self._generation += 1
            task, self._task = self._task, None
        if task is not None:
            task.cancel()
