"""
lyricsync: fetch, parse and follow timed song lyrics

lyricsync searches several lyrics providers at once (NetEase, Kugou and
LRCLIB), normalizes their answers into one timed lyrics model with
translations and word timing, and keeps the active line in sync with a
running media player.

Packages:
- ``lyricsync.lyrics``: lyrics model, LRC format, providers and search
- ``lyricsync.player``: player adapters, playback tracker and lyrics follower
- ``lyricsync.config``: YAML/env based settings
- ``lyricsync.utils``: logging and small helpers

Command line entry point: ``lyricsync`` (see ``lyricsync.main``).
"""

__version__ = "0.3.0"

__author__ = "lyricsync contributors"

__description__ = "Fetch timed lyrics from several providers and follow them during playback"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]
