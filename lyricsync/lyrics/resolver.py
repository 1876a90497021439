"""
Active line resolution

Maps a playback position to the line that should be displayed. The lookup
bisects the document's sorted positions (offset applied) and then steps
backward over disabled lines, so the result is monotone in the position.
"""

from typing import Optional, Tuple

from .models import Lyrics, LyricsLine


def active_line_index(lyrics: Optional[Lyrics], position: float) -> Optional[int]:
    """
    Index of the last enabled line whose position is <= position + offset

    Returns:
        Line index, or None before the first enabled line or for an empty document
    """
    if lyrics is None or not lyrics.lines:
        return None

    index = lyrics.line_index_at(position)
    lines = lyrics.lines
    while index >= 0 and not lines[index].enabled:
        index -= 1
    return index if index >= 0 else None


def active_line(lyrics: Optional[Lyrics], position: float) -> Optional[LyricsLine]:
    index = active_line_index(lyrics, position)
    return lyrics.lines[index] if index is not None else None


def next_line_index(lyrics: Optional[Lyrics], position: float) -> Optional[int]:
    """Index of the first enabled line strictly after position + offset"""
    if lyrics is None or not lyrics.lines:
        return None

    index = lyrics.line_index_at(position) + 1
    lines = lyrics.lines
    while index < len(lines) and not lines[index].enabled:
        index += 1
    return index if index < len(lines) else None


def next_line(lyrics: Optional[Lyrics], position: float) -> Optional[LyricsLine]:
    index = next_line_index(lyrics, position)
    return lyrics.lines[index] if index is not None else None


class LineResolver:
    """
    Stateful resolver for a display loop

    Remembers the last resolved index so callers can redraw only when the
    active line changes. Swapping the document resets that memory.
    """

    def __init__(self, lyrics: Optional[Lyrics] = None):
        self._lyrics = lyrics
        self._last_index: Optional[int] = None
        self._primed = False

    @property
    def lyrics(self) -> Optional[Lyrics]:
        return self._lyrics

    def set_lyrics(self, lyrics: Optional[Lyrics]) -> None:
        self._lyrics = lyrics
        self._last_index = None
        self._primed = False

    def resolve(self, position: float) -> Optional[LyricsLine]:
        return active_line(self._lyrics, position)

    def poll(self, position: float) -> Tuple[bool, Optional[LyricsLine]]:
        """
        Resolve and report whether the active line changed since the last poll

        The first poll after construction or ``set_lyrics`` always reports a change.
        """
        lyrics = self._lyrics
        index = active_line_index(lyrics, position)
        changed = not self._primed or index != self._last_index
        self._last_index = index
        self._primed = True
        line = lyrics.lines[index] if index is not None else None
        return changed, line

    def time_to_next(self, position: float) -> Optional[float]:
        """Seconds until the next enabled line becomes active"""
        upcoming = next_line(self._lyrics, position)
        if upcoming is None:
            return None
        return max(0.0, upcoming.position - (position + self._lyrics.offset))
