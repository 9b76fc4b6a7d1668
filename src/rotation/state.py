"""
Rotation State - queryable view of the coin schedule

Answers "is coin X active at instant T" for the activation window containing
T, not merely whether the coin has ever been active.

The event stream is materialized lazily from iter_rotation_events() until it
covers the queried instant. Windows are stored per coin in start order and
looked up by binary search.

Queries are bounded by config.horizon (schedule.max_horizon_days after the
start), so the materialized event list stays bounded too.
"""

import threading
from bisect import bisect_left, bisect_right
from datetime import datetime
from typing import Dict, List, Optional

from src.errors import ScheduleHorizonError
from src.rotation.clock import ensure_utc
from src.rotation.schedule import (
    ActiveWindow,
    RotationEvent,
    ScheduleConfig,
    initial_windows,
    iter_rotation_events,
)
from src.utils import get_logger

logger = get_logger(__name__)


class RotationState:
    """
    Read projection over the rotation schedule.

    Thread-safe: only the lazy extension of the event list takes a lock.
    Already materialized windows never change.
    """

    def __init__(self, config: ScheduleConfig):
        self.config = config

        self._events: List[RotationEvent] = []
        self._event_times: List[datetime] = []
        self._windows: Dict[int, List[ActiveWindow]] = {
            coin_id: [] for coin_id in range(1, config.total_coins + 1)
        }
        self._window_starts: Dict[int, List[datetime]] = {
            coin_id: [] for coin_id in range(1, config.total_coins + 1)
        }

        for window in initial_windows(config):
            self._add_window(window)

        self._stream = iter_rotation_events(config)
        self._extend_lock = threading.Lock()

    def _add_window(self, window: ActiveWindow) -> None:
        self._windows[window.coin_id].append(window)
        self._window_starts[window.coin_id].append(window.activated_at)

    def _covers(self, at: datetime) -> bool:
        # Every window opening at or before `at` is known once an event after `at` exists
        return bool(self._event_times) and self._event_times[-1] > at

    def _check_horizon(self, at: datetime) -> datetime:
        at = ensure_utc(at)
        if at > self.config.horizon:
            raise ScheduleHorizonError(at, self.config.horizon)
        return at

    def _ensure_covered(self, at: datetime) -> None:
        if self._covers(at):
            return

        with self._extend_lock:
            added = 0
            while not self._covers(at):
                event = next(self._stream, None)
                if event is None:
                    break
                self._add_window(event.window)
                self._events.append(event)
                self._event_times.append(event.timestamp)
                added += 1

        if added:
            logger.debug(
                f"Rotation events extended by {added} (total {len(self._events)}, "
                f"horizon {self._event_times[-1].isoformat()})"
            )

    @property
    def materialized_events(self) -> int:
        return len(self._events)

    def is_known_coin(self, coin_id: int) -> bool:
        return 1 <= coin_id <= self.config.total_coins

    def active_window_for(self, coin_id: int, at: datetime) -> Optional[ActiveWindow]:
        """
        Window of coin_id that contains `at`, or None if the coin is inactive.

        Raises:
            ScheduleHorizonError: `at` is beyond the schedule horizon
        """
        at = self._check_horizon(at)
        if not self.is_known_coin(coin_id):
            return None

        self._ensure_covered(at)

        starts = self._window_starts[coin_id]
        position = bisect_right(starts, at) - 1
        if position < 0:
            return None

        window = self._windows[coin_id][position]
        return window if window.contains(at) else None

    def is_active(self, coin_id: int, at: datetime) -> bool:
        return self.active_window_for(coin_id, at) is not None

    def active_coins(self, at: datetime) -> List[ActiveWindow]:
        """All open windows at `at`, sorted by expiry."""
        at = self._check_horizon(at)
        windows = []
        for coin_id in range(1, self.config.total_coins + 1):
            window = self.active_window_for(coin_id, at)
            if window is not None:
                windows.append(window)
        return sorted(windows, key=lambda w: (w.expires_at, w.coin_id))

    def inactive_coins(self, at: datetime) -> List[int]:
        active_ids = {w.coin_id for w in self.active_coins(at)}
        return [c for c in range(1, self.config.total_coins + 1) if c not in active_ids]

    def next_event(self, at: datetime) -> Optional[RotationEvent]:
        """First rotation event strictly after `at`."""
        at = self._check_horizon(at)
        self._ensure_covered(at)
        position = bisect_right(self._event_times, at)
        if position >= len(self._events):
            return None
        return self._events[position]

    def events_between(self, start: datetime, end: datetime) -> List[RotationEvent]:
        """Rotation events with start <= timestamp < end."""
        start, end = ensure_utc(start), self._check_horizon(end)
        if end <= start:
            return []
        self._ensure_covered(end)
        lo = bisect_left(self._event_times, start)
        hi = bisect_left(self._event_times, end)
        return self._events[lo:hi]
