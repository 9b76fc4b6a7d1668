"""
Account and balance endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from src.api.dependencies import get_context
from src.api.schemas import (
    AccountCreateRequest,
    AccountResponse,
    BalanceUpdateRequest,
    LedgerEntryResponse,
)
from src.context import SpotlightContext

router = APIRouter()


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(request: AccountCreateRequest, ctx: SpotlightContext = Depends(get_context)):
    try:
        return ctx.accounts.open_account(
            request.email,
            initial_balance=request.initial_balance,
            account_type=request.account_type,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/accounts", response_model=List[AccountResponse])
def list_accounts(email: Optional[str] = None, ctx: SpotlightContext = Depends(get_context)):
    """Admin listing, optional email substring filter"""
    return ctx.retry_read(ctx.accounts.list_accounts, email)


@router.get("/accounts/{account_id}", response_model=AccountResponse)
def get_account(account_id: int, ctx: SpotlightContext = Depends(get_context)):
    return ctx.retry_read(ctx.accounts.get_account, account_id)


@router.put("/accounts/{account_id}/balance", response_model=AccountResponse)
def set_account_balance(
    account_id: int,
    request: BalanceUpdateRequest,
    ctx: SpotlightContext = Depends(get_context)
):
    """Admin balance edit, journaled as an adjustment"""
    ctx.ledger.set_balance(account_id, request.balance)
    return ctx.accounts.get_account(account_id)


@router.get("/accounts/{account_id}/ledger", response_model=List[LedgerEntryResponse])
def get_account_ledger(account_id: int, ctx: SpotlightContext = Depends(get_context)):
    ctx.retry_read(ctx.accounts.get_account, account_id)
    return ctx.retry_read(ctx.ledger.entries, account_id)
