"""
Common provider interface

Every lyrics source implements two steps:

1. ``_search(request)`` returns provider specific tokens (ranked as the
   provider returned them)
2. ``_fetch(token)`` downloads and parses the lyrics for one token

The public ``search``/``fetch`` wrappers turn every failure into an empty
result and a log entry, so a broken source never aborts a search.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, TypeVar

import requests

from .models import Lyrics, LyricsSource, SearchRequest
from ..config.settings import get_settings
from ..exceptions import ParseError, ProviderError
from ..utils.logger import get_logger


Token = TypeVar('Token')


class LyricsProvider(ABC, Generic[Token]):
    """Base class of all lyrics provider adapters"""

    source: LyricsSource

    def __init__(self, session: Optional[requests.Session] = None):
        self.settings = get_settings()
        self.logger = get_logger(self.__class__.__module__)

        self.timeout = self.settings.lyrics.request_timeout
        self.include_translations = self.settings.lyrics.include_translations
        self.translation_tolerance = self.settings.lyrics.translation_tolerance

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': self.settings.network.user_agent
        })

    @property
    def name(self) -> str:
        return self.source.value

    def search(self, request: SearchRequest) -> List[Token]:
        """
        Search the provider for candidates

        Returns:
            Up to ``request.limit`` tokens, empty on any failure
        """
        try:
            tokens = self._search(request)
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"{self.name} search request failed: {e}")
            return []
        except (ProviderError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"{self.name} search returned unusable data: {e}")
            return []
        except Exception as e:
            self.logger.error(f"Unexpected error in {self.name} search: {e}")
            return []

        self.logger.debug(f"{self.name}: {len(tokens)} candidates for '{request.search_term}'")
        return tokens[:request.limit]

    def fetch(self, token: Token) -> Optional[Lyrics]:
        """
        Download lyrics for one search token

        Returns:
            Parsed document with ``metadata.source`` set, None on any failure
        """
        try:
            lyrics = self._fetch(token)
        except requests.exceptions.RequestException as e:
            self.logger.warning(f"{self.name} lyrics request failed: {e}")
            return None
        except (ProviderError, ParseError, ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"{self.name} lyrics could not be decoded: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Unexpected error fetching {self.name} lyrics: {e}")
            return None

        if lyrics is not None:
            lyrics.metadata.source = self.source.value
        return lyrics

    def _request_json(
        self,
        method: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> Any:
        response = self.session.request(
            method,
            url,
            params=params,
            headers=headers,
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def _merge_translation(self, lyrics: Lyrics, translation: Optional[Lyrics]) -> None:
        if translation is None or not self.include_translations:
            return
        merged = lyrics.merge_translation(translation, self.translation_tolerance)
        self.logger.debug(f"{self.name}: merged {merged} translated lines")

    def close(self) -> None:
        """Release the HTTP session; in-flight requests fail and are treated as no result"""
        self.session.close()

    @abstractmethod
    def _search(self, request: SearchRequest) -> List[Token]:
        ...

    @abstractmethod
    def _fetch(self, token: Token) -> Optional[Lyrics]:
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
