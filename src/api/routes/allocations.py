"""
Allocation endpoints.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_context
from src.api.schemas import AllocationCreateRequest, AllocationResponse, CloseExpiredResponse
from src.context import SpotlightContext
from src.rotation.clock import ensure_utc

router = APIRouter()


@router.post("/allocations", response_model=AllocationResponse, status_code=201)
def create_allocation(request: AllocationCreateRequest, ctx: SpotlightContext = Depends(get_context)):
    """Debit the account and commit funds to an active coin"""
    return ctx.allocations.allocate(request.account_id, request.coin_id, request.amount)


@router.get("/allocations", response_model=List[AllocationResponse])
def list_allocations(
    account_id: Optional[int] = None,
    status: Optional[str] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    try:
        return ctx.retry_read(ctx.allocations.list_allocations, account_id, status)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/allocations/close-expired", response_model=CloseExpiredResponse)
def close_expired_allocations(
    at: Optional[datetime] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    at = ensure_utc(at) if at is not None else ctx.clock.now()
    closed = ctx.allocations.close_expired(at)
    return CloseExpiredResponse(closed=closed, at=at)


@router.post("/allocations/{allocation_id}/cancel", response_model=AllocationResponse)
def cancel_allocation(allocation_id: int, ctx: SpotlightContext = Depends(get_context)):
    """Cancel an active allocation and refund it"""
    return ctx.allocations.cancel(allocation_id)
