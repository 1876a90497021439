"""
LRC text format parsing and serialization

Supported line shapes:

    [ti:Title]                       id tag
    [00:12.34]content                timed line
    [00:12.34][00:40.00]content      one line per time tag
    [00:12.34][tr]translation        attachment of the line at 00:12.34
    [00:12.34][tt]<0,0><420,5><900>  inline time tags of that line

Malformed lines are skipped. Parsing yields None when no timed line is found.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .models import Lyrics, LyricsLine, format_time_tag, make_attachment
from ..exceptions import ParseError
from ..utils.logger import get_logger, log_performance


logger = get_logger(__name__)


TIME_TAG_PATTERN = r'\[([-+]?\d+):(\d+(?:[.:]\d+)?)\]'

_TIME_TAG_RE = re.compile(TIME_TAG_PATTERN)
_TIME_TAGS_PREFIX_RE = re.compile(rf'^(?:{TIME_TAG_PATTERN})+')
_ATTACHMENT_RE = re.compile(r'^\[([a-z]{2,}(?::[\w-]+)?)\](.*)$')
_ID_TAG_RE = re.compile(r'^\[([A-Za-z]+):([^\]]*)\]$')


def parse_time_tag(minutes: str, seconds: str) -> float:
    """
    Convert the two captured groups of a time tag to seconds

    ``mm:ss:xx`` is read like ``mm:ss.xx``. Negative results clamp to zero.
    """
    sign = -1 if minutes.startswith('-') else 1
    value = abs(int(minutes)) * 60 + float(seconds.replace(':', '.'))
    return max(0.0, sign * value)


def _time_tags(prefix: str) -> List[float]:
    positions = (parse_time_tag(m, s) for m, s in _TIME_TAG_RE.findall(prefix))
    # Repeated tags on one line produce one entry
    return list(dict.fromkeys(positions))


def parse_lrc(text: Optional[str], strict: bool = False) -> Optional[Lyrics]:
    """
    Parse LRC text into a Lyrics document

    Timed lines are collected first; attachment lines are applied afterwards
    to every line sharing their timestamp, so their order in the file does
    not matter.

    Args:
        text: LRC content
        strict: Raise ParseError instead of skipping malformed lines

    Returns:
        Lyrics document, or None if the text has no timed line
    """
    if not text:
        if strict:
            raise ParseError("Empty lyrics text")
        return None

    lines: List[LyricsLine] = []
    id_tags: Dict[str, str] = {}
    attachments: List[Tuple[List[float], str, str]] = []
    skipped = 0

    for number, raw in enumerate(text.lstrip('\ufeff').splitlines(), 1):
        raw = raw.strip()
        if not raw:
            continue

        prefix = _TIME_TAGS_PREFIX_RE.match(raw)
        if prefix:
            positions = _time_tags(prefix.group(0))
            rest = raw[prefix.end():]
            attachment = _ATTACHMENT_RE.match(rest)
            if attachment:
                attachments.append((positions, attachment.group(1), attachment.group(2).strip()))
            else:
                content = rest.strip()
                lines.extend(LyricsLine(content, position) for position in positions)
            continue

        id_tag = _ID_TAG_RE.match(raw)
        if id_tag:
            id_tags[id_tag.group(1).lower()] = id_tag.group(2).strip()
            continue

        if strict:
            raise ParseError(f"Malformed LRC line {number}: {raw!r}", details={'line': number})
        skipped += 1

    if not lines:
        if strict:
            raise ParseError("No timed lines found")
        logger.debug(f"No timed lines found ({skipped} lines skipped)")
        return None

    lyrics = Lyrics(lines, id_tags)
    _apply_attachments(lyrics, attachments)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed LRC lines")

    return lyrics


def _apply_attachments(lyrics: Lyrics, attachments: List[Tuple[List[float], str, str]]) -> None:
    by_position: Dict[float, List[LyricsLine]] = {}
    for line in lyrics.lines:
        by_position.setdefault(round(line.position, 3), []).append(line)

    for positions, tag, value in attachments:
        for position in positions:
            for line in by_position.get(round(position, 3), []):
                line.attachments[tag] = make_attachment(tag, value)


def serialize(lyrics: Lyrics) -> str:
    """Render a document as LRC text; ``parse_lrc(serialize(x))`` reproduces x"""
    return lyrics.to_lrc()


@log_performance
def load_lrc(path: Union[str, Path], strict: bool = False) -> Optional[Lyrics]:
    """
    Read and parse an .lrc file

    Raises:
        ParseError: If the file cannot be read
    """
    path = Path(path)
    try:
        text = path.read_text(encoding='utf-8-sig')
    except (OSError, UnicodeDecodeError) as e:
        raise ParseError(f"Cannot read {path}: {e}", details={'file_path': str(path)})
    return parse_lrc(text, strict=strict)


def save_lrc(lyrics: Lyrics, path: Union[str, Path]) -> Path:
    """Write a document to disk as UTF-8 LRC"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize(lyrics), encoding='utf-8')
    logger.debug(f"Saved lyrics to {path}")
    return path


__all__ = [
    'parse_lrc', 'serialize', 'load_lrc', 'save_lrc',
    'parse_time_tag', 'format_time_tag', 'TIME_TAG_PATTERN',
]
