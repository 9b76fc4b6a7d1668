"""
Withdrawal endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_context
from src.api.schemas import (
    WithdrawalCreateRequest,
    WithdrawalResolveRequest,
    WithdrawalResponse,
)
from src.context import SpotlightContext

router = APIRouter()


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=201)
def create_withdrawal(request: WithdrawalCreateRequest, ctx: SpotlightContext = Depends(get_context)):
    """Reserve funds and create a pending withdrawal"""
    return ctx.withdrawals.request_withdrawal(
        request.account_id,
        request.amount,
        request.address,
        request.network,
        request.comment,
    )


@router.get("/withdrawals", response_model=List[WithdrawalResponse])
def list_withdrawals(
    status: Optional[str] = None,
    account_id: Optional[int] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    try:
        return ctx.retry_read(ctx.withdrawals.list_withdrawals, status, account_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/withdrawals/{withdrawal_id}/resolve", response_model=WithdrawalResponse)
def resolve_withdrawal(
    withdrawal_id: int,
    request: WithdrawalResolveRequest,
    ctx: SpotlightContext = Depends(get_context)
):
    """Admin decision: completed (terminal) or rejected (refund)"""
    return ctx.withdrawals.resolve(withdrawal_id, request.decision)


@router.post("/withdrawals/{withdrawal_id}/cancel", response_model=WithdrawalResponse)
def cancel_withdrawal(withdrawal_id: int, ctx: SpotlightContext = Depends(get_context)):
    return ctx.withdrawals.cancel(withdrawal_id)
