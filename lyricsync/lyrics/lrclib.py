"""
LRCLIB lyrics provider

LRCLIB search results already contain the synced lyrics text, so fetching a
search token normally needs no extra request. Records without synced lyrics
are dropped at search time.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base import LyricsProvider
from .models import IdTag, Lyrics, LyricsSource, SearchRequest
from .parser import parse_lrc


LRCLIB_BASE_URL = "https://lrclib.net"


@dataclass(frozen=True)
class LrclibRecord:
    """One LRCLIB lyrics record"""
    id: int
    track_name: str
    artist_name: str = ""
    album_name: Optional[str] = None
    duration: Optional[float] = None
    instrumental: bool = False
    synced_lyrics: Optional[str] = None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'LrclibRecord':
        synced = (data.get('syncedLyrics') or "").strip() or None
        return cls(
            id=int(data['id']),
            track_name=data.get('trackName') or data.get('name') or "",
            artist_name=data.get('artistName') or "",
            album_name=data.get('albumName'),
            duration=data.get('duration'),
            instrumental=bool(data.get('instrumental', False)),
            synced_lyrics=synced,
        )


class LrclibProvider(LyricsProvider[LrclibRecord]):
    """Lyrics from lrclib.net"""

    source = LyricsSource.LRCLIB

    def __init__(self, session=None, base_url: str = LRCLIB_BASE_URL):
        super().__init__(session)
        self.base_url = base_url.rstrip('/')

    def _search(self, request: SearchRequest) -> List[LrclibRecord]:
        params = {'track_name': request.title}
        if request.artist:
            params['artist_name'] = request.artist
        if request.album:
            params['album_name'] = request.album

        data = self._request_json("GET", f"{self.base_url}/api/search", params=params)
        if not isinstance(data, list):
            return []

        records = [LrclibRecord.from_api_data(item) for item in data]
        return [record for record in records if record.synced_lyrics and not record.instrumental]

    def _fetch(self, token: LrclibRecord) -> Optional[Lyrics]:
        text = token.synced_lyrics
        if not text:
            response = self.session.get(f"{self.base_url}/api/get/{token.id}", timeout=self.timeout)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            text = response.json().get('syncedLyrics')

        lyrics = parse_lrc(text)
        if lyrics is None:
            return None

        lyrics.id_tags.setdefault(IdTag.TITLE, token.track_name)
        if token.artist_name:
            lyrics.id_tags.setdefault(IdTag.ARTIST, token.artist_name)
        if token.album_name:
            lyrics.id_tags.setdefault(IdTag.ALBUM, token.album_name)
        if lyrics.length is None:
            lyrics.length = token.duration

        lyrics.metadata.provider_token = str(token.id)
        return lyrics
