"""
Pydantic schemas for API request/response models
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# SCHEDULE
# =============================================================================

class ScheduleMetadataResponse(BaseModel):
    generated_at: datetime
    step_hours: float
    activation_duration_days: float
    total_coins: int
    active_coins: int


class CoinStateResponse(BaseModel):
    id: int
    status: str  # active, inactive
    activated_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class InitialStateResponse(BaseModel):
    active: List[CoinStateResponse]
    inactive: List[CoinStateResponse]


class RotationEventResponse(BaseModel):
    index: int
    timestamp: datetime
    expiring_coin: int
    activating_coin: int
    activation_ends_at: datetime


class ScheduleResponse(BaseModel):
    metadata: ScheduleMetadataResponse
    initial_state: InitialStateResponse
    events: List[RotationEventResponse]


class ActiveWindowResponse(BaseModel):
    coin_id: int
    activated_at: datetime
    expires_at: datetime


class CoinStatusResponse(BaseModel):
    coin_id: int
    at: datetime
    active: bool
    window: Optional[ActiveWindowResponse] = None


class ActiveCoinsResponse(BaseModel):
    at: datetime
    active: List[ActiveWindowResponse]
    inactive: List[int]
    next_event: Optional[RotationEventResponse] = None


# =============================================================================
# ACCOUNTS / LEDGER
# =============================================================================

class AccountCreateRequest(BaseModel):
    email: str
    initial_balance: Decimal = Decimal("0.00")
    account_type: Literal["user", "admin"] = "user"


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    account_type: str
    balance: Decimal
    created_at: datetime


class BalanceUpdateRequest(BaseModel):
    balance: Decimal


class LedgerEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    amount: Decimal
    balance_after: Decimal
    reason: str
    reference_id: Optional[int] = None
    created_at: datetime


# =============================================================================
# ALLOCATIONS
# =============================================================================

class AllocationCreateRequest(BaseModel):
    account_id: int
    coin_id: int = Field(ge=1)
    amount: Decimal


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    coin_id: int
    amount: Decimal
    status: str
    created_at: datetime
    expires_at: datetime
    closed_at: Optional[datetime] = None


class CloseExpiredResponse(BaseModel):
    closed: int
    at: datetime


# =============================================================================
# WITHDRAWALS / DEPOSITS
# =============================================================================

class WithdrawalCreateRequest(BaseModel):
    account_id: int
    amount: Decimal
    address: str
    network: str
    comment: Optional[str] = None


class WithdrawalResolveRequest(BaseModel):
    decision: Literal["completed", "rejected"]


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    amount: Decimal
    network: str
    address: str
    comment: Optional[str] = None
    status: str
    created_at: datetime
    resolved_at: Optional[datetime] = None


class DepositCreateRequest(BaseModel):
    account_id: int
    amount: Decimal
    network: Optional[str] = None


class DepositResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    account_id: int
    amount: Decimal
    network: Optional[str] = None
    status: str
    created_at: datetime


class NetworkResponse(BaseModel):
    key: str
    label: str
    address: str
    description: str


class ErrorResponse(BaseModel):
    error: str
    detail: str
