"""
Deposit and network endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends

from src.api.dependencies import get_context
from src.api.schemas import DepositCreateRequest, DepositResponse, NetworkResponse
from src.context import SpotlightContext
from src.funds import NETWORKS

router = APIRouter()


@router.get("/networks", response_model=List[NetworkResponse])
def list_networks():
    """Deposit networks with their display addresses"""
    return [network.to_dict() for network in NETWORKS.values()]


@router.post("/deposits", response_model=DepositResponse, status_code=201)
def create_deposit(request: DepositCreateRequest, ctx: SpotlightContext = Depends(get_context)):
    """Admin-confirmed deposit: recorded and credited together"""
    return ctx.deposits.record_deposit(request.account_id, request.amount, request.network)


@router.get("/deposits", response_model=List[DepositResponse])
def list_deposits(
    account_id: Optional[int] = None,
    email: Optional[str] = None,
    ctx: SpotlightContext = Depends(get_context)
):
    return ctx.retry_read(ctx.deposits.list_deposits, account_id, email)
