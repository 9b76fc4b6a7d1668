"""
Coin rotation endpoints.
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from src.api.dependencies import get_context
from src.api.schemas import (
    ActiveCoinsResponse,
    ActiveWindowResponse,
    CoinStatusResponse,
    RotationEventResponse,
    ScheduleResponse,
)
from src.context import SpotlightContext
from src.rotation import generate_schedule
from src.rotation.clock import ensure_utc

router = APIRouter()

MAX_SCHEDULE_EVENTS = 10_000


def _resolve_at(ctx: SpotlightContext, at: Optional[datetime]) -> datetime:
    return ensure_utc(at) if at is not None else ctx.clock.now()


@router.get("/schedule", response_model=ScheduleResponse)
def get_schedule(
    events: Optional[int] = Query(default=None, ge=0, le=MAX_SCHEDULE_EVENTS),
    ctx: SpotlightContext = Depends(get_context)
):
    """
    Initial active/inactive partition and the first N rotation events.

    events defaults to schedule.event_count (one full rotation if unset).
    """
    return generate_schedule(ctx.schedule_config, events).to_dict()


@router.get("/coins/active", response_model=ActiveCoinsResponse)
def get_active_coins(
    at: Optional[datetime] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    """Open windows at `at` (default: now), inactive ids and the next rotation"""
    at = _resolve_at(ctx, at)
    windows = ctx.rotation.active_coins(at)
    next_event = ctx.rotation.next_event(at)

    return ActiveCoinsResponse(
        at=at,
        active=[ActiveWindowResponse(**w.to_dict()) for w in windows],
        inactive=ctx.rotation.inactive_coins(at),
        next_event=RotationEventResponse(**next_event.to_dict()) if next_event else None,
    )


@router.get("/coins/{coin_id}", response_model=CoinStatusResponse)
def get_coin_status(
    coin_id: int,
    at: Optional[datetime] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    """Whether a coin is active at `at`, with its current window"""
    if not ctx.rotation.is_known_coin(coin_id):
        raise HTTPException(status_code=404, detail=f"Unknown coin {coin_id}")

    at = _resolve_at(ctx, at)
    window = ctx.rotation.active_window_for(coin_id, at)

    return CoinStatusResponse(
        coin_id=coin_id,
        at=at,
        active=window is not None,
        window=ActiveWindowResponse(**window.to_dict()) if window else None,
    )
