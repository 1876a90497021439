"""
mpv adapter over the JSON IPC protocol

mpv has to be started with an IPC server, e.g.

    mpv --input-ipc-server=/tmp/lyricsync-mpv.sock song.flac

The adapter connects to that endpoint (a unix socket, or a named pipe on
Windows), observes the properties that describe the current track and
transport, and turns their changes into track change notifications.

Threads:
- ``mpv-ipc-rx`` reads JSON lines, answers pending requests and queues events
- ``mpv-ipc-events`` delivers queued events, so observers may issue requests
"""

import itertools
import json
import os
import queue
import socket
import threading
import time
from typing import Any, Callable, Dict, Optional

from .base import MusicPlayer, NotificationCenter, Subscription
from .models import MusicTrack, PlaybackState
from ..config.settings import get_settings
from ..exceptions import PlayerError
from ..utils.logger import get_logger


# Properties whose change means "look at the player again"
OBSERVED_PROPERTIES = ("path", "pause", "idle-active", "metadata")

# Events with the same meaning
NOTIFYING_EVENTS = ("file-loaded", "end-file", "playback-restart", "shutdown")


def _is_windows() -> bool:
    return os.name == "nt"


def default_ipc_endpoint(name: str = "lyricsync-mpv") -> str:
    """Platform default IPC endpoint: a named pipe on Windows, a socket in /tmp elsewhere"""
    if _is_windows():
        return rf"\\.\pipe\{name}"
    return f"/tmp/{name}.sock"


class MpvIpcConnection:
    """
    JSON line connection to a running mpv

    Requests carry a ``request_id`` and block until the matching reply
    arrives. Every other message is an event and is handed to
    ``on_event`` on the event thread.
    """

    def __init__(self, endpoint: str, on_event: Optional[Callable[[Dict[str, Any]], None]] = None):
        self.endpoint = endpoint
        self.on_event = on_event
        self.logger = get_logger(__name__)

        self._stop = threading.Event()
        self._tx_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._pending_lock = threading.Lock()
        self._pending: Dict[int, "queue.Queue[Dict[str, Any]]"] = {}
        self._events: "queue.Queue[Optional[Dict[str, Any]]]" = queue.Queue()
        self._ids = itertools.count(1)

        self._sock: Optional[socket.socket] = None
        self._pipe = None
        self._rx_thread: Optional[threading.Thread] = None
        self._event_thread: Optional[threading.Thread] = None

    @property
    def connected(self) -> bool:
        return not self._stop.is_set() and (self._sock is not None or self._pipe is not None)

    def connect(self, timeout: float = 3.0) -> None:
        """
        Connect, retrying until ``timeout`` while the endpoint does not exist yet

        Raises:
            PlayerError: If no connection could be made
        """
        deadline = time.monotonic() + timeout
        last_error: Optional[Exception] = None

        while time.monotonic() < deadline:
            try:
                if _is_windows():
                    self._pipe = open(self.endpoint, "r+b", buffering=0)
                else:
                    sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                    try:
                        sock.connect(self.endpoint)
                    except OSError:
                        sock.close()
                        raise
                    self._sock = sock
                last_error = None
                break
            except OSError as e:
                last_error = e
                time.sleep(0.05)

        if self._sock is None and self._pipe is None:
            raise PlayerError(
                f"Cannot connect to mpv IPC endpoint {self.endpoint}: {last_error}",
                details={'endpoint': self.endpoint}
            )

        self._rx_thread = threading.Thread(target=self._rx_loop, name="mpv-ipc-rx", daemon=True)
        self._event_thread = threading.Thread(target=self._event_loop, name="mpv-ipc-events", daemon=True)
        self._rx_thread.start()
        self._event_thread.start()
        self.logger.debug(f"Connected to mpv at {self.endpoint}")

    def close(self) -> None:
        with self._close_lock:
            if self._stop.is_set():
                return
            self._stop.set()

        if self._sock is not None:
            try:
                self._sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            self._sock.close()
            self._sock = None

        if self._pipe is not None:
            try:
                self._pipe.close()
            except OSError:
                pass
            self._pipe = None

        # Observers get one last look at the (now stopped) player
        self._events.put({"event": "shutdown"})
        self._events.put(None)

    def _send(self, payload: Dict[str, Any]) -> None:
        line = (json.dumps(payload) + "\n").encode("utf-8")
        with self._tx_lock:
            sock, pipe = self._sock, self._pipe
            try:
                if sock is not None:
                    sock.sendall(line)
                elif pipe is not None:
                    pipe.write(line)
                    pipe.flush()
                else:
                    raise PlayerError("mpv IPC connection is closed")
            except OSError as e:
                self.close()
                raise PlayerError(f"Lost connection to mpv: {e}")

    def command(self, *args: Any) -> None:
        """Fire-and-forget command"""
        self._send({"command": list(args)})

    def request(self, *args: Any, timeout: float = 1.0) -> Dict[str, Any]:
        """
        Send a command and wait for its reply

        Raises:
            PlayerError: On a closed connection or when mpv does not answer in time
        """
        if not self.connected:
            raise PlayerError("mpv IPC connection is closed")

        request_id = next(self._ids)
        reply: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=1)
        with self._pending_lock:
            self._pending[request_id] = reply

        try:
            self._send({"command": list(args), "request_id": request_id})
            return reply.get(timeout=timeout)
        except queue.Empty:
            raise PlayerError(f"mpv did not answer {args!r} within {timeout}s")
        finally:
            with self._pending_lock:
                self._pending.pop(request_id, None)

    def _read_chunk(self) -> bytes:
        sock, pipe = self._sock, self._pipe
        if sock is not None:
            return sock.recv(4096)
        if pipe is not None:
            return pipe.read(4096)
        return b""

    def _rx_loop(self) -> None:
        buffer = b""
        try:
            while not self._stop.is_set():
                try:
                    chunk = self._read_chunk()
                except OSError:
                    break
                if not chunk:
                    break

                buffer += chunk
                while b"\n" in buffer:
                    raw, buffer = buffer.split(b"\n", 1)
                    raw = raw.strip()
                    if raw:
                        self._dispatch(raw)
        finally:
            if not self._stop.is_set():
                self.logger.info("mpv closed the IPC connection")
            self.close()

    def _dispatch(self, raw: bytes) -> None:
        try:
            message = json.loads(raw.decode("utf-8", errors="replace"))
        except ValueError:
            self.logger.debug(f"Ignoring malformed mpv message: {raw[:80]!r}")
            return
        if not isinstance(message, dict):
            return

        if "request_id" in message and "event" not in message:
            with self._pending_lock:
                reply = self._pending.get(message.get("request_id"))
            if reply is not None:
                reply.put_nowait(message)
            return

        if "event" in message:
            self._events.put(message)

    def _event_loop(self) -> None:
        while True:
            event = self._events.get()
            if event is None:
                break
            if self.on_event is None:
                continue
            try:
                self.on_event(event)
            except Exception as e:
                self.logger.error(f"mpv event handler failed: {e}")


class MpvPlayer(MusicPlayer):
    """
    MusicPlayer backed by a running mpv instance

    The track id is the loaded path (file path or URL).
    """

    name = "mpv"

    def __init__(self, endpoint: Optional[str] = None, connect: bool = True):
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        self.endpoint = endpoint or self.settings.player.mpv_ipc_endpoint or default_ipc_endpoint()
        self.request_timeout = self.settings.player.request_timeout

        self._notifications = NotificationCenter("mpv track change")
        self._connection = MpvIpcConnection(self.endpoint, on_event=self._on_event)

        if connect:
            self.connect()

    def connect(self) -> None:
        """
        Raises:
            PlayerError: If mpv is not reachable
        """
        self._connection.connect(timeout=self.settings.player.connect_timeout)
        for observer_id, name in enumerate(OBSERVED_PROPERTIES, 1):
            self._connection.command("observe_property", observer_id, name)

    def close(self) -> None:
        self._connection.close()

    def _on_event(self, event: Dict[str, Any]) -> None:
        name = event.get("event")
        if name == "property-change" and event.get("name") in OBSERVED_PROPERTIES:
            self._notifications.post()
        elif name in NOTIFYING_EVENTS:
            self._notifications.post()

    def get_property(self, name: str) -> Any:
        """Property value, None when mpv reports it unavailable"""
        reply = self._connection.request("get_property", name, timeout=self.request_timeout)
        if reply.get("error") != "success":
            return None
        return reply.get("data")

    def is_running(self) -> bool:
        return self._connection.connected

    def current_track(self) -> Optional[MusicTrack]:
        if not self.is_running():
            return None

        path = self.get_property("path")
        if not path:
            return None

        metadata = self.get_property("metadata") or {}
        lowered = {str(key).lower(): value for key, value in metadata.items()}
        duration = self.get_property("duration")

        return MusicTrack(
            id=path,
            title=lowered.get("title") or self.get_property("media-title"),
            artist=lowered.get("artist") or lowered.get("album_artist"),
            album=lowered.get("album"),
            duration=float(duration) if duration else None,
            url=path,
        )

    def playback_state(self) -> PlaybackState:
        if not self.is_running():
            return PlaybackState.STOPPED
        if self.get_property("idle-active") or not self.get_property("path"):
            return PlaybackState.STOPPED
        if self.get_property("pause"):
            return PlaybackState.PAUSED
        return PlaybackState.PLAYING

    def player_position(self) -> Optional[float]:
        if not self.is_running():
            return None
        value = self.get_property("time-pos")
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def volume(self) -> Optional[float]:
        value = self.get_property("volume")
        return float(value) / 100 if value is not None else None

    @property
    def can_seek(self) -> bool:
        return True

    def seek(self, position: float) -> None:
        self._connection.command("seek", max(0.0, float(position)), "absolute")

    def subscribe_track_change(self, callback: Callable[[], None]) -> Subscription:
        if not self.is_running():
            raise PlayerError(f"mpv is not connected at {self.endpoint}")
        return self._notifications.subscribe(callback)
