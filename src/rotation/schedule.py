"""
Coin Rotation Schedule Generator

Deterministic simulation of which coins are active at any point in time.

The universe holds `total_coins` coins, `active_coins` of them are active at
once and each activation lasts `activation_duration_days`. Rotations happen
every `activation_duration / active_coins`, so one full activation window
contains exactly `active_coins` evenly spaced rotation events.

Seeding (staggered ramp):
    window k (1..active_coins) expires at start + step * k
    and was activated at expires_at - activation_duration

Each rotation event:
    1. The open window with the earliest expiry (tie: lowest coin id) expires
    2. The head of the inactive FIFO queue activates
    3. The expired coin goes to the tail of the queue

Usage:
    config = ScheduleConfig(start_time=datetime(2025, 1, 1, tzinfo=UTC))
    schedule = generate_schedule(config)
    for event in itertools.islice(iter_rotation_events(config), 100):
        ...
"""

import heapq
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from itertools import islice
from typing import Any, Dict, Iterator, List, Optional

from src.errors import ConfigurationError
from src.rotation.clock import ensure_utc, parse_timestamp
from src.utils import get_logger

logger = get_logger(__name__)

HOUR = timedelta(hours=1)

DEFAULT_TOTAL_COINS = 20
DEFAULT_ACTIVE_COINS = 15
DEFAULT_ACTIVATION_DAYS = 20
DEFAULT_MAX_HORIZON_DAYS = 36500


@dataclass(frozen=True)
class ScheduleConfig:
    """Parameters of the rotation simulation."""
    start_time: datetime
    total_coins: int = DEFAULT_TOTAL_COINS
    active_coins: int = DEFAULT_ACTIVE_COINS
    activation_duration_days: float = DEFAULT_ACTIVATION_DAYS
    event_count: Optional[int] = None  # None = one full rotation (total_coins events)
    max_horizon_days: float = DEFAULT_MAX_HORIZON_DAYS  # queries past start + horizon are refused

    def __post_init__(self):
        if not isinstance(self.start_time, datetime):
            raise ConfigurationError(f"start_time must be a datetime, got {self.start_time!r}")
        object.__setattr__(self, 'start_time', ensure_utc(self.start_time))

        if self.total_coins <= 0:
            raise ConfigurationError("Total coins must be greater than 0")
        if self.active_coins <= 0:
            raise ConfigurationError("Active coins must be greater than 0")
        if self.active_coins >= self.total_coins:
            raise ConfigurationError("Active coins must be less than total coins")
        if self.activation_duration_days <= 0:
            raise ConfigurationError("Activation duration must be greater than 0 days")
        if self.event_count is not None and self.event_count < 0:
            raise ConfigurationError("Event count must not be negative")
        if self.step <= timedelta(0):
            raise ConfigurationError(
                f"Activation duration {self.activation_duration_days}d is too short "
                f"for {self.active_coins} active coins"
            )
        if self.max_horizon_days <= 0:
            raise ConfigurationError("Schedule horizon must be greater than 0 days")
        try:
            # Windows opened just before the horizon must still be representable
            self.horizon + 2 * self.activation_duration
        except OverflowError as e:
            raise ConfigurationError(
                f"Schedule horizon of {self.max_horizon_days}d from "
                f"{self.start_time.isoformat()} exceeds the representable time range"
            ) from e

    @property
    def activation_duration(self) -> timedelta:
        return timedelta(days=self.activation_duration_days)

    @property
    def horizon(self) -> datetime:
        """Last instant the rotation state answers queries for."""
        return self.start_time + timedelta(days=self.max_horizon_days)

    @property
    def step(self) -> timedelta:
        """Time between two consecutive rotation events."""
        return self.activation_duration / self.active_coins

    @classmethod
    def from_config(cls, config, start_time: Optional[datetime] = None) -> 'ScheduleConfig':
        """
        Build from the `schedule` section of the application config.

        Args:
            config: Config object (or anything with dot-path get())
            start_time: Overrides schedule.start_time

        Raises:
            ConfigurationError: If the section is missing or invalid
        """
        section = config.get('schedule')
        if not isinstance(section, dict):
            raise ConfigurationError("Missing 'schedule' section in configuration")

        if start_time is None:
            raw_start = section.get('start_time')
            if raw_start is None:
                raise ConfigurationError("schedule.start_time is required")
            try:
                start_time = parse_timestamp(raw_start)
            except ValueError as e:
                raise ConfigurationError(f"Invalid schedule.start_time: {e}") from e

        try:
            return cls(
                start_time=start_time,
                total_coins=int(section.get('total_coins', DEFAULT_TOTAL_COINS)),
                active_coins=int(section.get('active_coins', DEFAULT_ACTIVE_COINS)),
                activation_duration_days=float(
                    section.get('activation_duration_days', DEFAULT_ACTIVATION_DAYS)
                ),
                event_count=(
                    int(section['event_count'])
                    if section.get('event_count') is not None else None
                ),
                max_horizon_days=float(
                    section.get('max_horizon_days', DEFAULT_MAX_HORIZON_DAYS)
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid schedule configuration: {e}") from e


@dataclass(frozen=True)
class ActiveWindow:
    """Half-open interval [activated_at, expires_at) during which a coin is active."""
    coin_id: int
    activated_at: datetime
    expires_at: datetime

    def contains(self, at: datetime) -> bool:
        return self.activated_at <= at < self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'coin_id': self.coin_id,
            'activated_at': self.activated_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
        }


@dataclass(frozen=True)
class RotationEvent:
    """One expiration + activation step of the rotation."""
    index: int
    timestamp: datetime
    expiring_coin: int
    activating_coin: int
    activation_ends_at: datetime

    @property
    def window(self) -> ActiveWindow:
        """Window opened by this event for the activating coin"""
        return ActiveWindow(self.activating_coin, self.timestamp, self.activation_ends_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'index': self.index,
            'timestamp': self.timestamp.isoformat(),
            'expiring_coin': self.expiring_coin,
            'activating_coin': self.activating_coin,
            'activation_ends_at': self.activation_ends_at.isoformat(),
        }


@dataclass(frozen=True)
class CoinState:
    """Presentation record of a coin in the initial partition"""
    id: int
    status: str  # 'active' or 'inactive'
    activated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'status': self.status,
            'activated_at': self.activated_at.isoformat() if self.activated_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class ScheduleMetadata:
    generated_at: datetime
    step_hours: float
    activation_duration_days: float
    total_coins: int
    active_coins: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generated_at': self.generated_at.isoformat(),
            'step_hours': self.step_hours,
            'activation_duration_days': self.activation_duration_days,
            'total_coins': self.total_coins,
            'active_coins': self.active_coins,
        }


@dataclass(frozen=True)
class ScheduleResult:
    metadata: ScheduleMetadata
    active: List[CoinState] = field(default_factory=list)
    inactive: List[CoinState] = field(default_factory=list)
    events: List[RotationEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metadata': self.metadata.to_dict(),
            'initial_state': {
                'active': [coin.to_dict() for coin in self.active],
                'inactive': [coin.to_dict() for coin in self.inactive],
            },
            'events': [event.to_dict() for event in self.events],
        }


def initial_windows(config: ScheduleConfig) -> List[ActiveWindow]:
    """Staggered windows of coins 1..active_coins at start_time, by coin id."""
    duration = config.activation_duration
    step = config.step
    windows = []
    for k in range(1, config.active_coins + 1):
        # step * k from the start instant, never accumulated
        expires_at = config.start_time + step * k
        windows.append(ActiveWindow(k, expires_at - duration, expires_at))
    return windows


def iter_rotation_events(config: ScheduleConfig) -> Iterator[RotationEvent]:
    """
    Unbounded, restartable stream of rotation events.

    Each call starts a fresh simulation from start_time; the stream is a pure
    function of config. It ends once the next window would close past the
    largest representable datetime.
    """
    duration = config.activation_duration

    # (expires_at, coin_id) orders by expiry, ties by lowest coin id
    open_windows = [(w.expires_at, w.coin_id) for w in initial_windows(config)]
    heapq.heapify(open_windows)

    inactive = deque(range(config.active_coins + 1, config.total_coins + 1))

    index = 0
    while open_windows:
        expires_at, expiring_coin = heapq.heappop(open_windows)
        # Empty queue only in degenerate setups: the same coin re-activates
        try:
            activation_ends_at = expires_at + duration
        except OverflowError:
            logger.warning(f"Rotation stream ends after {index} events at {expires_at.isoformat()}")
            return
        activating_coin = inactive.popleft() if inactive else expiring_coin
        index += 1

        yield RotationEvent(
            index=index,
            timestamp=expires_at,
            expiring_coin=expiring_coin,
            activating_coin=activating_coin,
            activation_ends_at=activation_ends_at,
        )

        inactive.append(expiring_coin)
        heapq.heappush(open_windows, (activation_ends_at, activating_coin))


def generate_schedule(config: ScheduleConfig, event_count: Optional[int] = None) -> ScheduleResult:
    """
    Generate the initial partition and the first N rotation events.

    Args:
        config: Rotation parameters
        event_count: Overrides config.event_count (default: total_coins)

    Returns:
        ScheduleResult with the initial active set sorted by expiry
    """
    if event_count is None:
        event_count = config.event_count if config.event_count is not None else config.total_coins
    if event_count < 0:
        raise ConfigurationError("Event count must not be negative")

    windows = initial_windows(config)
    active = [
        CoinState(w.coin_id, 'active', w.activated_at, w.expires_at)
        for w in sorted(windows, key=lambda w: (w.expires_at, w.coin_id))
    ]
    inactive = [
        CoinState(coin_id, 'inactive')
        for coin_id in range(config.active_coins + 1, config.total_coins + 1)
    ]
    events = list(islice(iter_rotation_events(config), event_count))

    metadata = ScheduleMetadata(
        generated_at=config.start_time,
        step_hours=config.step / HOUR,
        activation_duration_days=config.activation_duration_days,
        total_coins=config.total_coins,
        active_coins=config.active_coins,
    )

    logger.debug(
        f"Generated schedule: {config.active_coins}/{config.total_coins} coins, "
        f"step {metadata.step_hours:.2f}h, {len(events)} events"
    )

    return ScheduleResult(metadata=metadata, active=active, inactive=inactive, events=events)
