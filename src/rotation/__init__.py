"""
ROTATION Module - Coin rotation scheduling

Components:
- Clock: current-time source (system or fixed)
- Schedule: deterministic generator of the active/inactive partition and events
- RotationState: "is coin X active at T" queries over the schedule
"""

from src.rotation.clock import Clock, SystemClock, FixedClock
from src.rotation.schedule import (
    ActiveWindow,
    CoinState,
    RotationEvent,
    ScheduleConfig,
    ScheduleResult,
    generate_schedule,
    iter_rotation_events,
)
from src.rotation.state import RotationState

__all__ = [
    'Clock',
    'SystemClock',
    'FixedClock',
    'ActiveWindow',
    'CoinState',
    'RotationEvent',
    'ScheduleConfig',
    'ScheduleResult',
    'generate_schedule',
    'iter_rotation_events',
    'RotationState',
]
