"""
Configuration package for lyricsync

Exposes the settings singleton used throughout the application:

    from lyricsync.config import get_settings

    settings = get_settings()
    timeout = settings.lyrics.timeout
"""

from .settings import get_settings, reload_settings, Settings, VALID_SOURCES

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'VALID_SOURCES',
]
