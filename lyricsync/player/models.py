"""
Player side data models
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PlaybackState(Enum):
    """Transport state of a media player"""
    STOPPED = "stopped"
    PLAYING = "playing"
    PAUSED = "paused"

    @property
    def is_playing(self) -> bool:
        return self is PlaybackState.PLAYING


@dataclass(frozen=True, eq=False)
class MusicTrack:
    """
    Track reported by a player

    Two tracks are the same track when their ids match; the descriptive
    fields may be refined by the player while the track plays.
    """
    id: str
    title: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None
    duration: Optional[float] = None
    url: Optional[str] = None
    artwork: Optional[str] = None

    def __eq__(self, other) -> bool:
        if not isinstance(other, MusicTrack):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def display_name(self) -> str:
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.id
