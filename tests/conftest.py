"""Test configuration and fixtures"""

import base64
import json
import tempfile
import zlib
from pathlib import Path
from unittest.mock import Mock

import pytest

from lyricsync.lyrics.kugou import KRC_HEADER, KRC_KEY
from lyricsync.player.base import NotificationCenter
from lyricsync.player.models import MusicTrack, PlaybackState


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def sample_lrc():
    """Small LRC document with id tags, a repeated line and an attachment"""
    return (
        "[ti:Test Song]\n"
        "[ar:Test Artist]\n"
        "[al:Test Album]\n"
        "[00:01.000]Hello\n"
        "[00:05.500]World\n"
        "[00:12.00][00:30.00]Chorus line\n"
        "[00:05.500][tr]Monde\n"
    )


@pytest.fixture
def sample_netease_search():
    """NetEase search response with one song"""
    return {
        'result': {
            'songs': [{
                'id': 186016,
                'name': 'Test Song',
                'artists': [{'name': 'Test Artist'}, {'name': 'Guest'}],
                'album': {'name': 'Test Album', 'picUrl': 'http://p1.music.126.net/cover.jpg'},
                'duration': 210000,
            }]
        },
        'code': 200,
    }


@pytest.fixture
def sample_netease_lyrics():
    """NetEase lyric response with translation and uploader"""
    return {
        'lrc': {'lyric': "[00:01.00]Hello\n[00:05.50]World\n"},
        'tlyric': {'lyric': "[00:01.00]Bonjour\n[00:05.60]Monde\n"},
        'lyricUser': {'nickname': 'uploader'},
        'code': 200,
    }


def encrypt_krc(text: str) -> str:
    """Build a base64 KRC payload the way the Kugou download endpoint returns it"""
    compressed = zlib.compress(text.encode('utf-8'))
    scrambled = bytes(byte ^ KRC_KEY[index % len(KRC_KEY)] for index, byte in enumerate(compressed))
    return base64.b64encode(KRC_HEADER + scrambled).decode('ascii')


def krc_language_header(translations):
    """Encode translated lines as a KRC language header value"""
    data = {
        'content': [{'language': 0, 'type': 1, 'lyricContent': [[line] for line in translations]}],
        'version': 1,
    }
    return base64.b64encode(json.dumps(data).encode('utf-8')).decode('ascii')


@pytest.fixture
def sample_krc_text():
    """Decrypted KRC with word timing and a translation header"""
    language = krc_language_header(["Bonjour", "Monde"])
    return (
        "[ti:Test Song]\n"
        "[ar:Test Artist]\n"
        "[total:210000]\n"
        f"[language:{language}]\n"
        "[1000,2000]<0,500,0>Hel<500,500,0>lo\n"
        "[5500,1500]<0,700,0>World\n"
    )


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def track():
    return MusicTrack(id="/music/song.flac", title="Test Song", artist="Test Artist", duration=210.0)


@pytest.fixture
def mock_player(track):
    """Player adapter mock playing ``track`` at 10s"""
    player = Mock()
    player.name = "mock"
    player.can_seek = True
    player.is_running.return_value = True
    player.current_track.return_value = track
    player.playback_state.return_value = PlaybackState.PLAYING
    player.player_position.return_value = 10.0

    notifications = NotificationCenter("mock track change")
    player.notifications = notifications
    player.subscribe_track_change.side_effect = notifications.subscribe
    return player


@pytest.fixture
def krc_encoder():
    """Function turning KRC text into a download endpoint payload"""
    return encrypt_krc
