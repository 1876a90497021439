"""
Media player adapter interface

A player adapter answers transport queries synchronously and delivers
"something about the current track changed" notifications through
subscriptions. Notifications may be delivered on any thread.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from .models import MusicTrack, PlaybackState
from ..utils.logger import get_logger


class Subscription:
    """
    Handle returned by ``subscribe_track_change``

    Unsubscribing is idempotent. Usable as a context manager.
    """

    def __init__(self, unsubscribe: Callable[[], None]):
        self._unsubscribe = unsubscribe
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._unsubscribe()

    def __enter__(self) -> 'Subscription':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.unsubscribe()


class NotificationCenter:
    """Callback list with subscription handles; a failing callback does not stop the others"""

    def __init__(self, name: str = "notifications"):
        self.name = name
        self.logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def subscribe(self, callback: Callable[[], None]) -> Subscription:
        with self._lock:
            self._callbacks.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return Subscription(remove)

    def post(self) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                self.logger.error(f"{self.name} observer failed: {e}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)


class MusicPlayer(ABC):
    """Base class of media player adapters"""

    name: str = "player"

    @abstractmethod
    def is_running(self) -> bool:
        ...

    @abstractmethod
    def current_track(self) -> Optional[MusicTrack]:
        ...

    @abstractmethod
    def playback_state(self) -> PlaybackState:
        ...

    @abstractmethod
    def player_position(self) -> Optional[float]:
        """Current position in seconds, None when the player cannot tell"""
        ...

    @abstractmethod
    def subscribe_track_change(self, callback: Callable[[], None]) -> Subscription:
        """
        Register ``callback`` for track change notifications

        Players may also fire it on state changes of the same track; receivers
        must tolerate notifications where nothing changed.
        """
        ...

    def volume(self) -> Optional[float]:
        """Volume in 0..1, None if unsupported"""
        return None

    @property
    def can_seek(self) -> bool:
        return False

    def seek(self, position: float) -> None:
        raise NotImplementedError(f"{self.name} does not support seeking")

    def close(self) -> None:
        pass

    def __enter__(self) -> 'MusicPlayer':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
