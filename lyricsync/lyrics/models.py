"""
Timed lyrics data model

A Lyrics document owns an ordered list of LyricsLine objects (sorted by playback
position, not insertion order), a dictionary of LRC id tags and provider
metadata. Each line may carry attachments keyed by a short tag:

- ``tr``  translation text (``PlainTextAttachment``)
- ``tt``  inline word/character timing (``TimeTagAttachment``)
- any other tag is kept verbatim as plain text

Lines reference their owning document by id only. The document registry is a
weak mapping, so a line never keeps its document alive and a line can belong
to at most one document.
"""

import itertools
import re
import threading
import weakref
from bisect import bisect_right
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Union

from ..utils.helpers import parse_duration_string


# Seconds between a line and the translation line it may be paired with
DEFAULT_TRANSLATION_TOLERANCE = 1.0


class LyricsSource(Enum):
    """
    Identifiers of the supported lyrics providers

    Every member must have an adapter in the provider registry.
    """
    NETEASE = "netease"
    KUGOU = "kugou"
    LRCLIB = "lrclib"


class AttachmentTag:
    """Well-known attachment tags"""
    TRANSLATION = "tr"
    TIME_TAG = "tt"


class IdTag:
    """Well-known LRC id tags"""
    TITLE = "ti"
    ARTIST = "ar"
    ALBUM = "al"
    LRC_BY = "by"
    OFFSET = "offset"
    LENGTH = "length"


def format_time_tag(position: float) -> str:
    """Format seconds as ``mm:ss.fff`` (minutes may exceed two digits)"""
    position = max(0.0, position)
    minutes = int(position // 60)
    seconds = position - minutes * 60
    text = f"{minutes:02d}:{seconds:06.3f}"
    # 59.9996 rounds up to 60.000
    if text.endswith("60.000"):
        text = f"{minutes + 1:02d}:00.000"
    return text


@dataclass
class PlainTextAttachment:
    """Attachment holding free text (translations, romanization, ...)"""
    text: str

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class InlineTimeTag:
    """Character index reached ``time`` seconds after the line starts"""
    time: float
    index: int


_INLINE_TAG_RE = re.compile(r'<(\d+),(\d+)>')
_INLINE_DURATION_RE = re.compile(r'<(\d+)>\s*$')


@dataclass
class TimeTagAttachment:
    """
    Word or character level timing of a line

    Serialized as ``<ms,index><ms,index>...<duration_ms>`` where every time is
    relative to the line's own position.
    """
    tags: List[InlineTimeTag] = field(default_factory=list)
    duration: Optional[float] = None

    @classmethod
    def parse(cls, text: str) -> Optional['TimeTagAttachment']:
        tags = [
            InlineTimeTag(time=int(ms) / 1000, index=int(index))
            for ms, index in _INLINE_TAG_RE.findall(text)
        ]
        if not tags:
            return None
        duration_match = _INLINE_DURATION_RE.search(text)
        duration = int(duration_match.group(1)) / 1000 if duration_match else None
        return cls(tags=sorted(tags, key=lambda t: t.time), duration=duration)

    def index_at(self, elapsed: float) -> int:
        """Number of characters that should be highlighted ``elapsed`` seconds into the line"""
        reached = 0
        for tag in self.tags:
            if tag.time > elapsed:
                break
            reached = tag.index
        return reached

    def __str__(self) -> str:
        text = "".join(f"<{round(tag.time * 1000)},{tag.index}>" for tag in self.tags)
        if self.duration is not None:
            text += f"<{round(self.duration * 1000)}>"
        return text


Attachment = Union[PlainTextAttachment, TimeTagAttachment]


def make_attachment(tag: str, text: str) -> Attachment:
    """Build the attachment object matching ``tag`` from its serialized text"""
    if tag == AttachmentTag.TIME_TAG:
        parsed = TimeTagAttachment.parse(text)
        if parsed is not None:
            return parsed
    return PlainTextAttachment(text)


class LyricsLine:
    """
    One timed line of lyrics

    Equality and hashing use (content, position) only. Two distinct lines with
    the same text at the same timestamp compare equal; set-based
    de-duplication therefore merges them.
    """

    def __init__(
        self,
        content: str,
        position: float,
        attachments: Optional[Dict[str, Attachment]] = None,
        enabled: bool = True
    ):
        self.content = content
        self.position = max(0.0, float(position))
        self.attachments: Dict[str, Attachment] = dict(attachments or {})
        self.enabled = enabled
        self.owner_id: Optional[int] = None

    @property
    def lyrics(self) -> Optional['Lyrics']:
        """Owning document, if it is still alive"""
        return Lyrics.lookup(self.owner_id)

    @property
    def time_tag(self) -> str:
        return format_time_tag(self.position)

    @property
    def translation(self) -> Optional[str]:
        attachment = self.attachments.get(AttachmentTag.TRANSLATION)
        return str(attachment) if attachment is not None else None

    @property
    def time_tags(self) -> Optional[TimeTagAttachment]:
        attachment = self.attachments.get(AttachmentTag.TIME_TAG)
        return attachment if isinstance(attachment, TimeTagAttachment) else None

    def copy(self) -> 'LyricsLine':
        """Detached copy (no owner)"""
        attachments = {}
        for tag, attachment in self.attachments.items():
            if isinstance(attachment, TimeTagAttachment):
                attachment = TimeTagAttachment(list(attachment.tags), attachment.duration)
            else:
                attachment = PlainTextAttachment(attachment.text)
            attachments[tag] = attachment
        return LyricsLine(self.content, self.position, attachments, self.enabled)

    def lrc_lines(self) -> List[str]:
        """This line as LRC text: content first, then one line per attachment"""
        stamp = f"[{self.time_tag}]"
        lines = [f"{stamp}{self.content}"]
        for tag, attachment in self.attachments.items():
            lines.append(f"{stamp}[{tag}]{attachment}")
        return lines

    def __eq__(self, other) -> bool:
        if not isinstance(other, LyricsLine):
            return NotImplemented
        return self.content == other.content and self.position == other.position

    def __hash__(self) -> int:
        return hash((self.content, self.position))

    def __str__(self) -> str:
        return "\n".join(self.lrc_lines())

    def __repr__(self) -> str:
        return f"LyricsLine({self.time_tag!r}, {self.content!r}, attachments={sorted(self.attachments)})"


@dataclass(frozen=True)
class SearchRequest:
    """Immutable query sent to every provider"""
    title: str
    artist: str = ""
    album: str = ""
    duration: Optional[float] = None
    limit: int = 10

    @property
    def search_term(self) -> str:
        return " ".join(part for part in (self.title, self.artist) if part).strip()

    @classmethod
    def from_track(cls, track, limit: int = 10) -> 'SearchRequest':
        """Build a request from anything exposing title/artist/album/duration"""
        return cls(
            title=getattr(track, 'title', None) or "",
            artist=getattr(track, 'artist', None) or "",
            album=getattr(track, 'album', None) or "",
            duration=getattr(track, 'duration', None),
            limit=limit,
        )


@dataclass
class LyricsMetadata:
    """Where a document came from"""
    source: Optional[str] = None
    artwork_url: Optional[str] = None
    provider_token: Optional[str] = None
    request: Optional[SearchRequest] = None


class Lyrics:
    """
    Timed lyrics document

    Lines are always kept sorted by position (stable for equal positions).
    ``offset`` (seconds, stored as the ``offset`` id tag in milliseconds) is
    applied by readers, never baked into line positions.

    A published document should be treated as read-only; use ``copy()`` and
    swap references to change one that is in use.
    """

    _registry: 'weakref.WeakValueDictionary[int, Lyrics]' = weakref.WeakValueDictionary()
    _registry_lock = threading.Lock()
    _ids = itertools.count(1)

    def __init__(
        self,
        lines: Optional[Iterable[LyricsLine]] = None,
        id_tags: Optional[Dict[str, str]] = None,
        metadata: Optional[LyricsMetadata] = None
    ):
        with Lyrics._registry_lock:
            self.id = next(Lyrics._ids)
            Lyrics._registry[self.id] = self

        self.lines: List[LyricsLine] = []
        self.id_tags: Dict[str, str] = dict(id_tags or {})
        self.metadata = metadata or LyricsMetadata()
        self._positions: List[float] = []

        if lines:
            self.extend(lines)

    @classmethod
    def lookup(cls, document_id: Optional[int]) -> Optional['Lyrics']:
        if document_id is None:
            return None
        return cls._registry.get(document_id)

    # ---- lines ----

    def _claim(self, line: LyricsLine) -> None:
        if line.owner_id is not None and line.owner_id != self.id and Lyrics.lookup(line.owner_id) is not None:
            raise ValueError(f"Line {line!r} already belongs to another lyrics document")
        line.owner_id = self.id

    def add_line(self, line: LyricsLine) -> None:
        self._claim(line)
        self.lines.append(line)
        self.resort()

    def extend(self, lines: Iterable[LyricsLine]) -> None:
        for line in lines:
            self._claim(line)
            self.lines.append(line)
        self.resort()

    def remove_line(self, line: LyricsLine) -> None:
        for index, candidate in enumerate(self.lines):
            if candidate is line:
                del self.lines[index]
                line.owner_id = None
                self.resort()
                return
        raise ValueError(f"Line {line!r} is not part of this document")

    def resort(self) -> None:
        """Restore position order; call after changing a line's position in place"""
        self.lines.sort(key=lambda line: line.position)
        self._positions = [line.position for line in self.lines]

    @property
    def positions(self) -> List[float]:
        """Sorted line positions (parallel to ``lines``), for bisection"""
        return self._positions

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self) -> Iterator[LyricsLine]:
        return iter(self.lines)

    def __getitem__(self, index: int) -> LyricsLine:
        return self.lines[index]

    # ---- id tags ----

    @property
    def title(self) -> Optional[str]:
        return self.id_tags.get(IdTag.TITLE)

    @property
    def artist(self) -> Optional[str]:
        return self.id_tags.get(IdTag.ARTIST)

    @property
    def album(self) -> Optional[str]:
        return self.id_tags.get(IdTag.ALBUM)

    @property
    def lrc_by(self) -> Optional[str]:
        return self.id_tags.get(IdTag.LRC_BY)

    @property
    def offset(self) -> float:
        """Global offset in seconds; positive values show lines earlier"""
        raw = self.id_tags.get(IdTag.OFFSET)
        if not raw:
            return 0.0
        try:
            return int(raw.strip()) / 1000
        except ValueError:
            return 0.0

    @offset.setter
    def offset(self, value: float) -> None:
        milliseconds = round(value * 1000)
        if milliseconds:
            self.id_tags[IdTag.OFFSET] = str(milliseconds)
        else:
            self.id_tags.pop(IdTag.OFFSET, None)

    def adjust_offset(self, delta: float) -> None:
        self.offset = self.offset + delta

    @property
    def length(self) -> Optional[float]:
        return parse_duration_string(self.id_tags.get(IdTag.LENGTH))

    @length.setter
    def length(self, value: Optional[float]) -> None:
        if value is None or value <= 0:
            self.id_tags.pop(IdTag.LENGTH, None)
            return
        minutes = int(value // 60)
        self.id_tags[IdTag.LENGTH] = f"{minutes:02d}:{value - minutes * 60:05.2f}"

    @property
    def has_translation(self) -> bool:
        return any(AttachmentTag.TRANSLATION in line.attachments for line in self.lines)

    @property
    def has_time_tags(self) -> bool:
        return any(AttachmentTag.TIME_TAG in line.attachments for line in self.lines)

    # ---- operations ----

    def merge_translation(self, other: 'Lyrics', tolerance: float = DEFAULT_TRANSLATION_TOLERANCE) -> int:
        """
        Attach the nearest line of ``other`` as translation of every line

        Both documents are position-ordered, so the nearest candidate index
        only moves forward; a single two-pointer walk pairs all lines.
        Ties go to the earlier candidate. Candidates further than
        ``tolerance`` seconds, or blank ones, are not attached.

        Returns:
            Number of lines that received a translation
        """
        candidates = other.lines
        if not candidates:
            return 0

        merged = 0
        j = 0
        last = len(candidates) - 1
        for line in self.lines:
            target = line.position
            while j < last and abs(candidates[j + 1].position - target) <= abs(candidates[j].position - target):
                j += 1

            nearest = j
            distance = abs(candidates[j].position - target)
            while nearest > 0 and abs(candidates[nearest - 1].position - target) == distance:
                nearest -= 1

            if distance > tolerance:
                continue

            text = candidates[nearest].content.strip()
            if not text:
                continue

            line.attachments[AttachmentTag.TRANSLATION] = PlainTextAttachment(text)
            merged += 1

        return merged

    def copy(self) -> 'Lyrics':
        """Independent snapshot with fresh lines owned by the copy"""
        metadata = LyricsMetadata(
            source=self.metadata.source,
            artwork_url=self.metadata.artwork_url,
            provider_token=self.metadata.provider_token,
            request=self.metadata.request,
        )
        return Lyrics((line.copy() for line in self.lines), dict(self.id_tags), metadata)

    def line_index_at(self, position: float) -> int:
        """Raw index of the last line at or before ``position`` (offset applied), -1 if none"""
        return bisect_right(self._positions, position + self.offset) - 1

    def to_lrc(self) -> str:
        """Serialize as LRC: id tags, then each line followed by its attachments"""
        parts = [f"[{key}:{value}]" for key, value in self.id_tags.items()]
        for line in self.lines:
            parts.extend(line.lrc_lines())
        return "\n".join(parts) + ("\n" if parts else "")

    def __str__(self) -> str:
        return self.to_lrc()

    def __repr__(self) -> str:
        source = self.metadata.source or "local"
        return f"Lyrics(id={self.id}, source={source!r}, title={self.title!r}, lines={len(self.lines)})"
