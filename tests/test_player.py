# tests/test_player.py
"""Test player models, notifications and the mpv IPC adapter"""

import json
import os
import socket
import threading
import time
from unittest.mock import Mock

import pytest

from lyricsync.exceptions import PlayerError
from lyricsync.player.base import NotificationCenter, Subscription
from lyricsync.player.models import MusicTrack, PlaybackState
from lyricsync.player.mpv import MpvIpcConnection, MpvPlayer, default_ipc_endpoint


unix_only = pytest.mark.skipif(os.name == "nt", reason="uses a unix socket as fake mpv endpoint")


class FakeMpv:
    """Minimal mpv JSON IPC server on a unix socket"""

    def __init__(self, path, properties=None):
        self.path = str(path)
        self.properties = dict(properties or {})
        self.commands = []
        self.conn = None
        self.connected = threading.Event()

        self.server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self.server.bind(self.path)
        self.server.listen(1)
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        try:
            self.conn, _ = self.server.accept()
        except OSError:
            return
        self.connected.set()

        buffer = b""
        while True:
            try:
                chunk = self.conn.recv(4096)
            except OSError:
                return
            if not chunk:
                return
            buffer += chunk
            while b"\n" in buffer:
                raw, buffer = buffer.split(b"\n", 1)
                self._handle(json.loads(raw))

    def _handle(self, message):
        command = message["command"]
        self.commands.append(command)
        if "request_id" not in message:
            return

        reply = {"request_id": message["request_id"], "error": "success"}
        if command[0] == "get_property":
            if command[1] in self.properties:
                reply["data"] = self.properties[command[1]]
            else:
                reply["error"] = "property unavailable"
        self.send(reply)

    def send(self, message):
        self.conn.sendall((json.dumps(message) + "\n").encode("utf-8"))

    def wait_for_commands(self, count, timeout=2.0):
        deadline = time.monotonic() + timeout
        while len(self.commands) < count and time.monotonic() < deadline:
            time.sleep(0.01)
        return self.commands

    def close(self):
        if self.conn is not None:
            self.conn.close()
        self.server.close()


@pytest.fixture
def fake_mpv(temp_dir):
    server = FakeMpv(temp_dir / "mpv.sock", {
        "path": "/music/song.flac",
        "metadata": {"TITLE": "Test Song", "Artist": "Test Artist", "Album": "Test Album"},
        "duration": 210.5,
        "pause": False,
        "idle-active": False,
        "time-pos": 12.5,
        "volume": 50,
    })
    yield server
    server.close()


@pytest.fixture
def mpv(fake_mpv):
    player = MpvPlayer(endpoint=fake_mpv.path)
    yield player
    player.close()


class TestModels:
    """Test player models"""

    def test_tracks_compare_by_id(self):
        """Test metadata refinements do not change track identity"""
        first = MusicTrack(id="/a.flac", title="A")
        refined = MusicTrack(id="/a.flac", title="A (Live)", artist="Band")

        assert first == refined
        assert hash(first) == hash(refined)
        assert first != MusicTrack(id="/b.flac", title="A")

    def test_display_name(self):
        """Test the human readable track name"""
        assert MusicTrack(id="x", title="Song", artist="Band").display_name == "Band - Song"
        assert MusicTrack(id="x", title="Song").display_name == "Song"
        assert MusicTrack(id="/path.flac").display_name == "/path.flac"

    def test_playback_state(self):
        """Test the playing flag"""
        assert PlaybackState.PLAYING.is_playing
        assert not PlaybackState.PAUSED.is_playing


class TestNotifications:
    """Test NotificationCenter and Subscription"""

    def test_post_reaches_subscribers(self):
        """Test every subscriber is called"""
        center = NotificationCenter()
        first, second = Mock(), Mock()
        center.subscribe(first)
        center.subscribe(second)

        center.post()

        first.assert_called_once_with()
        second.assert_called_once_with()

    def test_unsubscribe_is_idempotent(self):
        """Test unsubscribing twice is harmless"""
        center = NotificationCenter()
        callback = Mock()
        subscription = center.subscribe(callback)

        subscription.unsubscribe()
        subscription.unsubscribe()
        center.post()

        assert not subscription.active
        callback.assert_not_called()
        assert len(center) == 0

    def test_subscription_context_manager(self):
        """Test leaving the with block unsubscribes"""
        remove = Mock()
        with Subscription(remove):
            pass
        remove.assert_called_once_with()

    def test_failing_callback_does_not_stop_others(self):
        """Test exceptions in one observer are contained"""
        center = NotificationCenter()
        healthy = Mock()
        center.subscribe(Mock(side_effect=RuntimeError("boom")))
        center.subscribe(healthy)

        center.post()

        healthy.assert_called_once_with()


@unix_only
class TestMpvPlayer:
    """Test the mpv adapter against a fake IPC server"""

    def test_observes_properties_on_connect(self, mpv, fake_mpv):
        """Test track related properties are observed"""
        commands = fake_mpv.wait_for_commands(4)
        observed = [command[2] for command in commands if command[0] == "observe_property"]
        assert observed == ["path", "pause", "idle-active", "metadata"]

    def test_current_track(self, mpv):
        """Test the loaded file is reported as a track"""
        track = mpv.current_track()

        assert track.id == "/music/song.flac"
        assert track.title == "Test Song"
        assert track.artist == "Test Artist"
        assert track.album == "Test Album"
        assert track.duration == 210.5

    def test_transport(self, mpv, fake_mpv):
        """Test state, position and volume queries"""
        assert mpv.is_running()
        assert mpv.playback_state() is PlaybackState.PLAYING
        assert mpv.player_position() == 12.5
        assert mpv.volume() == 0.5

        fake_mpv.properties["pause"] = True
        assert mpv.playback_state() is PlaybackState.PAUSED

        fake_mpv.properties["idle-active"] = True
        assert mpv.playback_state() is PlaybackState.STOPPED

    def test_unavailable_property(self, mpv, fake_mpv):
        """Test unavailable properties read as None"""
        del fake_mpv.properties["time-pos"]
        assert mpv.player_position() is None

        del fake_mpv.properties["path"]
        assert mpv.current_track() is None

    def test_property_change_notifies(self, mpv, fake_mpv):
        """Test observed property changes reach subscribers"""
        notified = threading.Event()
        mpv.subscribe_track_change(notified.set)
        fake_mpv.connected.wait(2.0)

        fake_mpv.send({"event": "property-change", "id": 1, "name": "path", "data": "/music/next.flac"})

        assert notified.wait(2.0)

    def test_unrelated_events_are_ignored(self, mpv, fake_mpv):
        """Test events that do not describe the track are dropped"""
        callback = Mock()
        mpv.subscribe_track_change(callback)
        fake_mpv.connected.wait(2.0)

        fake_mpv.send({"event": "audio-reconfig"})
        time.sleep(0.1)

        callback.assert_not_called()

    def test_seek(self, mpv, fake_mpv):
        """Test seeks are absolute"""
        mpv.seek(30)
        commands = fake_mpv.wait_for_commands(5)
        assert ["seek", 30.0, "absolute"] in commands
        assert mpv.can_seek

    def test_player_exit(self, mpv, fake_mpv):
        """Test mpv closing the connection stops the player"""
        notified = threading.Event()
        mpv.subscribe_track_change(notified.set)
        fake_mpv.connected.wait(2.0)

        fake_mpv.close()

        assert notified.wait(2.0)
        assert not mpv.is_running()
        assert mpv.playback_state() is PlaybackState.STOPPED
        assert mpv.current_track() is None

    def test_subscribe_requires_connection(self, fake_mpv):
        """Test subscribing to a disconnected player fails"""
        player = MpvPlayer(endpoint=fake_mpv.path, connect=False)
        with pytest.raises(PlayerError):
            player.subscribe_track_change(Mock())


@unix_only
class TestMpvIpcConnection:
    """Test the low level IPC connection"""

    def test_connect_failure(self, temp_dir):
        """Test a missing endpoint raises PlayerError"""
        connection = MpvIpcConnection(str(temp_dir / "missing.sock"))
        with pytest.raises(PlayerError):
            connection.connect(timeout=0.1)

    def test_request_after_close(self, fake_mpv):
        """Test requests on a closed connection fail"""
        connection = MpvIpcConnection(fake_mpv.path)
        connection.connect(timeout=1.0)
        connection.close()
        connection.close()

        with pytest.raises(PlayerError):
            connection.request("get_property", "path")

    def test_request_timeout(self, fake_mpv):
        """Test unanswered requests time out"""
        connection = MpvIpcConnection(fake_mpv.path)
        connection.connect(timeout=1.0)
        fake_mpv.connected.wait(2.0)
        fake_mpv._handle = lambda message: fake_mpv.commands.append(message["command"])

        with pytest.raises(PlayerError):
            connection.request("get_property", "path", timeout=0.1)
        connection.close()

    def test_default_endpoint(self):
        """Test the platform default endpoint"""
        assert default_ipc_endpoint("x") == "/tmp/x.sock"
