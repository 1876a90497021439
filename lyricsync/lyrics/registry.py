"""
Provider registry

Maps every LyricsSource to its adapter class. The mapping is checked against
the enum at import time, so adding a source without an adapter fails early.
"""

from typing import Dict, Optional, Type

import requests

from .base import LyricsProvider
from .kugou import KugouProvider
from .lrclib import LrclibProvider
from .models import LyricsSource
from .netease import NetEaseProvider


PROVIDERS: Dict[LyricsSource, Type[LyricsProvider]] = {
    LyricsSource.NETEASE: NetEaseProvider,
    LyricsSource.KUGOU: KugouProvider,
    LyricsSource.LRCLIB: LrclibProvider,
}

_missing = [source.value for source in LyricsSource if source not in PROVIDERS]
if _missing:
    raise RuntimeError(f"No provider adapter registered for: {', '.join(_missing)}")


def create_provider(source, session: Optional[requests.Session] = None) -> LyricsProvider:
    """
    Instantiate the adapter of a source

    Args:
        source: LyricsSource member or its string value

    Raises:
        ValueError: If the source is unknown
    """
    source = LyricsSource(source)
    return PROVIDERS[source](session=session)
