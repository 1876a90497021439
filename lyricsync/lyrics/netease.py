"""
NetEase Cloud Music lyrics provider

Search returns songs; the lyric endpoint returns the original LRC, an
optional translated LRC and the uploader's nickname. Translations are merged
into the original as ``tr`` attachments.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from .base import LyricsProvider
from .models import IdTag, Lyrics, LyricsSource, SearchRequest
from .parser import parse_lrc


NETEASE_SEARCH_URL = "http://music.163.com/api/search/pc"
NETEASE_LYRICS_URL = "http://music.163.com/api/song/lyric"
NETEASE_HEADERS = {"Referer": "http://music.163.com/"}


@dataclass(frozen=True)
class NetEaseSong:
    """Song entry of a NetEase search result"""
    id: int
    name: str
    artists: Tuple[str, ...] = ()
    album: Optional[str] = None
    artwork_url: Optional[str] = None
    duration: Optional[float] = None

    @property
    def artist(self) -> Optional[str]:
        return self.artists[0] if self.artists else None

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> 'NetEaseSong':
        album = data.get('album') or {}
        duration_ms = data.get('duration')
        return cls(
            id=int(data['id']),
            name=data.get('name') or "",
            artists=tuple(a.get('name') for a in data.get('artists') or [] if a.get('name')),
            album=album.get('name'),
            artwork_url=album.get('picUrl'),
            duration=duration_ms / 1000 if duration_ms else None,
        )


class NetEaseProvider(LyricsProvider[NetEaseSong]):
    """Lyrics from music.163.com"""

    source = LyricsSource.NETEASE

    def _search(self, request: SearchRequest) -> List[NetEaseSong]:
        params = {
            's': request.search_term,
            'offset': 0,
            'limit': request.limit,
            'type': 1,
        }
        data = self._request_json("POST", NETEASE_SEARCH_URL, params=params, headers=NETEASE_HEADERS)
        songs = (data.get('result') or {}).get('songs') or []
        return [NetEaseSong.from_api_data(song) for song in songs]

    def _fetch(self, token: NetEaseSong) -> Optional[Lyrics]:
        params = {'id': token.id, 'lv': 1, 'kv': 1, 'tv': -1}
        data = self._request_json("GET", NETEASE_LYRICS_URL, params=params, headers=NETEASE_HEADERS)

        if data.get('nolyric') or data.get('uncollected'):
            self.logger.debug(f"NetEase song {token.id} has no lyrics")
            return None

        lyrics = parse_lrc((data.get('lrc') or {}).get('lyric'))
        if lyrics is None:
            return None

        self._merge_translation(lyrics, parse_lrc((data.get('tlyric') or {}).get('lyric')))

        lyrics.id_tags[IdTag.TITLE] = token.name
        if token.artist:
            lyrics.id_tags[IdTag.ARTIST] = token.artist
        if token.album:
            lyrics.id_tags[IdTag.ALBUM] = token.album
        nickname = (data.get('lyricUser') or {}).get('nickname')
        if nickname:
            lyrics.id_tags[IdTag.LRC_BY] = nickname
        lyrics.length = token.duration

        lyrics.metadata.artwork_url = token.artwork_url
        lyrics.metadata.provider_token = str(token.id)
        return lyrics
