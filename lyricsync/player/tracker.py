"""
Playback tracker

Follows a MusicPlayer and keeps a continuously advancing playback position
without querying the player on every read. While playing, the position is
derived from a clock anchor (``now - start``); while paused it is frozen.

Two triggers feed one reconciliation entry point, ``update()``:
- track change notifications from the player adapter
- a poll thread that re-reads the player when no notification arrived
  within the poll interval

Reconciliation emits:
- TRACK_CHANGED when the track id differs
- STATE_CHANGED when the transport state differs (the anchor is reset)
- POSITION_MUTATED when the player's own position drifted further than the
  threshold from the derived one (a seek), after re-anchoring

Listeners run on the thread that triggered the update, outside the lock.
"""

import math
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import MusicPlayer, Subscription
from .models import MusicTrack, PlaybackState
from ..config.settings import get_settings
from ..exceptions import PlayerError, TrackerError
from ..utils.logger import get_logger


class TrackerEvent(Enum):
    TRACK_CHANGED = "currentTrackChanged"
    STATE_CHANGED = "playbackStateChanged"
    POSITION_MUTATED = "playerPositionMutated"


Listener = Callable[[Any], None]


class PlaybackTracker:
    """
    Anchor based playback position tracker for one player

    Args:
        player: Player adapter to follow
        poll_interval: Seconds between fallback polls (settings default)
        position_threshold: Drift in seconds treated as a seek (settings default)
        clock: Monotonic time source, injectable for tests

    Raises:
        TrackerError: If the track change subscription cannot be established
    """

    def __init__(
        self,
        player: MusicPlayer,
        poll_interval: Optional[float] = None,
        position_threshold: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        self.player = player
        self.poll_interval = poll_interval if poll_interval is not None else self.settings.tracker.poll_interval
        self.position_threshold = (
            position_threshold if position_threshold is not None
            else self.settings.tracker.position_threshold
        )
        self._clock = clock

        self._lock = threading.RLock()
        self._listeners: Dict[TrackerEvent, List[Listener]] = {event: [] for event in TrackerEvent}

        self._track: Optional[MusicTrack] = None
        self._state = PlaybackState.STOPPED
        self._start_time: Optional[float] = None
        self._pause_position = 0.0
        self._last_good_position = 0.0
        self._last_update = clock()

        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None

        if self._safe_is_running():
            try:
                self._adopt_player_state()
            except (PlayerError, OSError) as e:
                # Reconciled by the first update or poll
                self.logger.warning(f"Cannot read {player.name} state: {e}")
                self._track = None
                self._state = PlaybackState.STOPPED
                self._anchor(0.0)

        try:
            self._subscription: Optional[Subscription] = player.subscribe_track_change(self._on_track_change)
        except (PlayerError, OSError) as e:
            raise TrackerError(f"Cannot subscribe to {player.name} track changes: {e}") from e

        self.logger.debug(f"Tracking {player.name}: state={self._state.value}, track={self._track}")

    # ---- derived state ----

    @property
    def track(self) -> Optional[MusicTrack]:
        return self._track

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def player_position(self) -> float:
        """Current position in seconds, derived without asking the player"""
        with self._lock:
            if self._state is PlaybackState.PLAYING and self._start_time is not None:
                return max(0.0, self._clock() - self._start_time)
            if self._state is PlaybackState.PAUSED:
                return self._pause_position
            return 0.0

    # ---- listeners ----

    def connect(self, event: TrackerEvent, listener: Listener) -> None:
        with self._lock:
            self._listeners[event].append(listener)

    def disconnect(self, event: TrackerEvent, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners[event]:
                self._listeners[event].remove(listener)

    def _emit(self, events: List[Tuple[TrackerEvent, Any]]) -> None:
        for event, value in events:
            with self._lock:
                listeners = list(self._listeners[event])
            for listener in listeners:
                try:
                    listener(value)
                except Exception as e:
                    self.logger.error(f"{event.value} listener failed: {e}")

    # ---- reading the player ----

    def _safe_is_running(self) -> bool:
        try:
            return self.player.is_running()
        except (PlayerError, OSError) as e:
            self.logger.warning(f"Cannot reach {self.player.name}: {e}")
            return False

    def _read_position(self) -> Optional[float]:
        """Player's own position; None (with a warning) when unusable"""
        position = self.player.player_position()
        if position is None or not math.isfinite(position) or position < 0:
            self.logger.warning(
                f"{self.player.name} reported unusable position {position!r}; "
                f"keeping {self._last_good_position:.2f}s"
            )
            return None
        self._last_good_position = position
        return position

    def _anchor(self, position: Optional[float]) -> None:
        if position is None:
            position = self._last_good_position

        if self._state is PlaybackState.PLAYING:
            self._start_time = self._clock() - position
            self._pause_position = position
        elif self._state is PlaybackState.PAUSED:
            self._start_time = None
            self._pause_position = position
        else:
            self._start_time = None
            self._pause_position = 0.0

    def _adopt_player_state(self) -> None:
        self._track = self.player.current_track()
        self._state = self.player.playback_state()
        self._anchor(self._read_position() if self._state is not PlaybackState.STOPPED else 0.0)

    # ---- reconciliation ----

    def update(self) -> None:
        """
        Reconcile with the player once

        Safe to call from any thread; overlapping calls are serialized.
        """
        events: List[Tuple[TrackerEvent, Any]] = []

        with self._lock:
            self._last_update = self._clock()

            if not self._safe_is_running():
                events.extend(self._enter_stopped())
            else:
                track = self.player.current_track()
                previous_id = self._track.id if self._track else None
                current_id = track.id if track else None

                if current_id != previous_id:
                    self._track = track
                    self._last_good_position = 0.0
                    self._state = self.player.playback_state()
                    self._anchor(self._read_position() if self._state is not PlaybackState.STOPPED else 0.0)
                    events.append((TrackerEvent.TRACK_CHANGED, track))
                else:
                    if track is not None:
                        # Same track, possibly refined metadata
                        self._track = track
                    events.extend(self._reconcile_state())

        self._emit(events)

    def _enter_stopped(self) -> List[Tuple[TrackerEvent, Any]]:
        events = []
        if self._track is not None:
            self._track = None
            self._last_good_position = 0.0
            events.append((TrackerEvent.TRACK_CHANGED, None))
        if self._state is not PlaybackState.STOPPED:
            self._state = PlaybackState.STOPPED
            self._anchor(0.0)
            events.append((TrackerEvent.STATE_CHANGED, PlaybackState.STOPPED))
        return events

    def _reconcile_state(self) -> List[Tuple[TrackerEvent, Any]]:
        state = self.player.playback_state()

        if state is not self._state:
            derived = self.player_position
            self._state = state
            if state is PlaybackState.STOPPED:
                self._anchor(0.0)
            else:
                position = self._read_position()
                self._anchor(position if position is not None else derived)
            return [(TrackerEvent.STATE_CHANGED, state)]

        if state is PlaybackState.STOPPED:
            return []

        position = self._read_position()
        if position is None:
            return []

        if state is PlaybackState.PLAYING:
            drift = abs(position - self.player_position)
        else:
            drift = abs(position - self._pause_position)

        if drift > self.position_threshold:
            self.logger.debug(f"Position jumped by {drift:.2f}s, re-anchoring at {position:.2f}s")
            self._anchor(position)
            return [(TrackerEvent.POSITION_MUTATED, position)]

        return []

    def _on_track_change(self) -> None:
        try:
            self.update()
        except (PlayerError, OSError) as e:
            self.logger.warning(f"Track change handling failed: {e}")

    # ---- control ----

    def seek(self, position: float) -> None:
        """
        Seek the player and re-anchor immediately

        Raises:
            PlayerError: If the player does not support seeking
        """
        if not self.player.can_seek:
            raise PlayerError(f"{self.player.name} does not support seeking")

        position = max(0.0, position)
        self.player.seek(position)
        with self._lock:
            self._last_good_position = position
            self._anchor(position)
        self._emit([(TrackerEvent.POSITION_MUTATED, position)])

    # ---- lifecycle ----

    def start(self) -> None:
        """Start the fallback poll thread"""
        if self._poll_thread is not None:
            return
        self._stop_event.clear()
        self._poll_thread = threading.Thread(target=self._poll_loop, name="playback-tracker", daemon=True)
        self._poll_thread.start()

    def _poll_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            with self._lock:
                quiet_for = self._clock() - self._last_update
            if quiet_for < self.poll_interval:
                continue
            try:
                self.update()
            except (PlayerError, OSError) as e:
                self.logger.warning(f"Poll of {self.player.name} failed: {e}")

    def close(self) -> None:
        """Stop polling and drop the player subscription"""
        self._stop_event.set()
        if self._poll_thread is not None and self._poll_thread is not threading.current_thread():
            self._poll_thread.join(timeout=self.poll_interval + 1.0)
        self._poll_thread = None

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> 'PlaybackTracker':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
