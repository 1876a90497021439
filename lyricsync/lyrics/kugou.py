"""
Kugou lyrics provider

Kugou serves lyrics as KRC: a ``krc1`` header followed by an XOR-scrambled
zlib stream. Decrypted, KRC is line based:

    [ti:Title]
    [language:<base64 json>]
    [1200,3400]<0,300,0>Hel<300,200,0>lo

Line times are milliseconds from the start of the song, word times are
milliseconds from the start of the line. The ``language`` header carries
translations aligned with the lyric lines by index.
"""

import base64
import json
import re
import zlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base import LyricsProvider
from .models import (
    AttachmentTag,
    IdTag,
    InlineTimeTag,
    Lyrics,
    LyricsLine,
    LyricsSource,
    PlainTextAttachment,
    SearchRequest,
    TimeTagAttachment,
)
from ..exceptions import ProviderError


KUGOU_SEARCH_URL = "http://lyrics.kugou.com/search"
KUGOU_DOWNLOAD_URL = "http://lyrics.kugou.com/download"

KRC_HEADER = b"krc1"
KRC_KEY = bytes([
    0x40, 0x47, 0x61, 0x77, 0x5e, 0x32, 0x74, 0x47,
    0x51, 0x36, 0x31, 0x2d, 0xce, 0xd2, 0x6e, 0x69,
])

# Content types inside the language header
KRC_ROMANIZATION = 0
KRC_TRANSLATION = 1

_KRC_LINE_RE = re.compile(r'^\[(\d+),(\d+)\](.*)$')
_KRC_WORD_RE = re.compile(r'<(\d+),(\d+),\d+>([^<]*)')
_KRC_ID_TAG_RE = re.compile(r'^\[([A-Za-z]+):(.*)\]$')


@dataclass(frozen=True)
class KugouCandidate:
    """Lyrics candidate returned by the Kugou search endpoint"""
    id: str
    accesskey: str
    song: str = ""
    singer: str = ""
    duration: Optional[float] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'KugouCandidate':
        duration_ms = data.get('duration')
        return cls(
            id=str(data['id']),
            accesskey=data['accesskey'],
            song=data.get('song') or "",
            singer=data.get('singer') or "",
            duration=duration_ms / 1000 if duration_ms else None,
        )


def decrypt_krc(payload: bytes) -> str:
    """
    Decrypt a raw KRC payload to text

    Raises:
        ProviderError: If the payload is not KRC or does not decompress
    """
    if not payload.startswith(KRC_HEADER):
        raise ProviderError("Missing KRC header", source=LyricsSource.KUGOU.value)

    body = payload[len(KRC_HEADER):]
    key_length = len(KRC_KEY)
    scrambled = bytes(byte ^ KRC_KEY[index % key_length] for index, byte in enumerate(body))

    try:
        text = zlib.decompress(scrambled).decode('utf-8', errors='replace')
    except zlib.error as e:
        raise ProviderError(f"Corrupt KRC payload: {e}", source=LyricsSource.KUGOU.value)

    return text.lstrip('\ufeff')


def _decode_language_header(value: str) -> List[str]:
    """Translated lines from a KRC ``language`` header, empty when absent"""
    try:
        data = json.loads(base64.b64decode(value))
    except (ValueError, TypeError):
        return []

    for content in data.get('content') or []:
        if content.get('type') == KRC_TRANSLATION:
            return ["".join(row) for row in content.get('lyricContent') or []]
    return []


def parse_krc(text: str) -> Optional[Lyrics]:
    """
    Parse decrypted KRC text

    Every lyric line keeps its word timing as a ``tt`` attachment.

    Returns:
        Lyrics document, or None if no lyric line was found
    """
    lines: List[LyricsLine] = []
    id_tags: Dict[str, str] = {}
    translations: List[str] = []

    for raw in text.splitlines():
        raw = raw.strip()
        if not raw:
            continue

        line_match = _KRC_LINE_RE.match(raw)
        if line_match:
            start_ms, duration_ms, body = line_match.groups()
            words = _KRC_WORD_RE.findall(body)

            if words:
                tags = []
                content = ""
                for offset_ms, _, word in words:
                    tags.append(InlineTimeTag(time=int(offset_ms) / 1000, index=len(content)))
                    content += word
                # Indices must point into the stripped content
                leading = len(content) - len(content.lstrip())
                if leading:
                    tags = [
                        InlineTimeTag(time=tag.time, index=max(0, tag.index - leading))
                        for tag in tags
                    ]
                timing = TimeTagAttachment(tags=tags, duration=int(duration_ms) / 1000)
                attachments = {AttachmentTag.TIME_TAG: timing}
            else:
                content = body
                attachments = {}

            lines.append(LyricsLine(content.strip(), int(start_ms) / 1000, attachments))
            continue

        tag_match = _KRC_ID_TAG_RE.match(raw)
        if tag_match:
            key, value = tag_match.group(1).lower(), tag_match.group(2).strip()
            if key == 'language':
                translations = _decode_language_header(value)
            elif key == 'total':
                # Song length in milliseconds
                if value.isdigit():
                    id_tags[IdTag.LENGTH] = value
            else:
                id_tags[key] = value

    if not lines:
        return None

    # Translations follow the file order of lyric lines, not position order
    for line, translation in zip(lines, translations):
        translation = translation.strip()
        if translation:
            line.attachments[AttachmentTag.TRANSLATION] = PlainTextAttachment(translation)

    length_ms = id_tags.pop(IdTag.LENGTH, None)
    lyrics = Lyrics(lines, id_tags)
    if length_ms:
        lyrics.length = int(length_ms) / 1000
    return lyrics


class KugouProvider(LyricsProvider[KugouCandidate]):
    """Lyrics from lyrics.kugou.com (KRC format)"""

    source = LyricsSource.KUGOU

    def _search(self, request: SearchRequest) -> List[KugouCandidate]:
        params = {
            'keyword': request.search_term,
            'client': 'pc',
            'ver': 1,
            'man': 'yes',
        }
        if request.duration:
            params['duration'] = int(request.duration * 1000)

        data = self._request_json("GET", KUGOU_SEARCH_URL, params=params)
        candidates = data.get('candidates') or []
        return [KugouCandidate.from_api_data(candidate) for candidate in candidates]

    def _fetch(self, token: KugouCandidate) -> Optional[Lyrics]:
        params = {
            'id': token.id,
            'accesskey': token.accesskey,
            'fmt': 'krc',
            'charset': 'utf8',
            'client': 'pc',
            'ver': 1,
        }
        data = self._request_json("GET", KUGOU_DOWNLOAD_URL, params=params)

        content = data.get('content')
        if not content:
            raise ProviderError(f"Empty KRC content for candidate {token.id}", source=self.name)

        lyrics = parse_krc(decrypt_krc(base64.b64decode(content)))
        if lyrics is None:
            return None

        if not self.include_translations:
            for line in lyrics.lines:
                line.attachments.pop(AttachmentTag.TRANSLATION, None)

        if token.song and IdTag.TITLE not in lyrics.id_tags:
            lyrics.id_tags[IdTag.TITLE] = token.song
        if token.singer and IdTag.ARTIST not in lyrics.id_tags:
            lyrics.id_tags[IdTag.ARTIST] = token.singer
        if lyrics.length is None:
            lyrics.length = token.duration

        lyrics.metadata.provider_token = f"{token.id},{token.accesskey}"
        return lyrics
