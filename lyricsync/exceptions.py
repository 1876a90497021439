"""
Exception classes for lyricsync.

Exception Hierarchy:
    LyricSyncError (base)
        ConfigError - Configuration file issues
        ParseError - Raw lyrics text produced no lines
        ProviderError - Network or decoding failure inside one provider
        PlayerError - Media player adapter I/O failure
        TrackerError - Playback tracker could not be constructed

Only ConfigError and TrackerError are meant to reach the user. Parser and
provider failures are caught at their own boundary and turned into an empty
result, so one broken source never aborts a search.
"""

from typing import Optional


class LyricSyncError(Exception):
    """
    Base exception for all lyricsync errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (provider, url, ...).
    """

    def __init__(self, message: str, details: Optional[dict] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(LyricSyncError):
    """
    Raised when the configuration cannot be loaded or saved.

    Example:
        raise ConfigError(
            "Failed to save config",
            details={'file_path': '/path/to/config.yaml'}
        )
    """
    pass


class ParseError(LyricSyncError):
    """
    Raised when raw lyrics text yields zero timed lines.

    The parser only raises this in strict mode; the default mode returns
    None so the caller can move on to the next source.
    """
    pass


class ProviderError(LyricSyncError):
    """
    Raised inside a provider adapter when a request or payload fails.

    Attributes:
        source: Identifier of the provider that failed.
    """

    def __init__(self, message: str, source: str = "", details: Optional[dict] = None) -> None:
        super().__init__(message, details)
        self.source = source


class PlayerError(LyricSyncError):
    """
    Raised by a media player adapter when talking to the player fails.

    Common causes:
        - IPC socket missing (player not started with IPC enabled)
        - Player closed the connection
        - Request timed out
    """
    pass


class TrackerError(LyricSyncError):
    """
    Raised when a PlaybackTracker cannot be constructed.

    The only fatal condition is failing to establish the track-change
    notification channel with the player.
    """
    pass
