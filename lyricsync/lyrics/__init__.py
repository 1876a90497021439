"""
Lyrics package: timed lyrics model, LRC format, provider adapters and search

Key components:
- Lyrics / LyricsLine: position-ordered document with attachments and id tags
- parse_lrc / serialize: LRC text round trip
- active_line / LineResolver: map a playback position to the displayed line
- NetEaseProvider, KugouProvider, LrclibProvider: network sources
- LyricsSearcher: concurrent search across all enabled sources
"""

from .models import (
    DEFAULT_TRANSLATION_TOLERANCE,
    AttachmentTag,
    IdTag,
    InlineTimeTag,
    Lyrics,
    LyricsLine,
    LyricsMetadata,
    LyricsSource,
    PlainTextAttachment,
    SearchRequest,
    TimeTagAttachment,
    format_time_tag,
)
from .parser import load_lrc, parse_lrc, parse_time_tag, save_lrc, serialize
from .resolver import LineResolver, active_line, active_line_index, next_line, next_line_index
from .base import LyricsProvider
from .netease import NetEaseProvider
from .kugou import KugouProvider, decrypt_krc, parse_krc
from .lrclib import LrclibProvider
from .registry import PROVIDERS, create_provider
from .searcher import (
    LyricsSearcher,
    ProviderResult,
    SearchTask,
    get_lyrics_searcher,
    rank_lyrics,
    reset_lyrics_searcher,
    score_lyrics,
)

__all__ = [
    # Model
    'DEFAULT_TRANSLATION_TOLERANCE',
    'AttachmentTag',
    'IdTag',
    'InlineTimeTag',
    'Lyrics',
    'LyricsLine',
    'LyricsMetadata',
    'LyricsSource',
    'PlainTextAttachment',
    'SearchRequest',
    'TimeTagAttachment',
    'format_time_tag',

    # LRC format
    'parse_lrc',
    'serialize',
    'load_lrc',
    'save_lrc',
    'parse_time_tag',

    # Resolution
    'LineResolver',
    'active_line',
    'active_line_index',
    'next_line',
    'next_line_index',

    # Providers
    'LyricsProvider',
    'NetEaseProvider',
    'KugouProvider',
    'LrclibProvider',
    'decrypt_krc',
    'parse_krc',
    'PROVIDERS',
    'create_provider',

    # Search
    'LyricsSearcher',
    'ProviderResult',
    'SearchTask',
    'get_lyrics_searcher',
    'reset_lyrics_searcher',
    'rank_lyrics',
    'score_lyrics',
]
