"""
Error taxonomy for Spotlight

Every error raised by the scheduler, the ledger and the services derives from
SpotlightError so that outer layers (API, CLI) can map them in one place.

Recoverable errors (InsufficientFundsError, CoinNotActiveError, ...) are
reported to the caller. ConfigurationError is fatal and surfaces at setup time.
"""

from decimal import Decimal
from typing import Optional


class SpotlightError(Exception):
    """Base class for all Spotlight errors."""


class ConfigurationError(SpotlightError):
    """Invalid scheduler or application configuration (Fast Fail)."""


class StorageUnavailableError(SpotlightError):
    """
    The durable record store could not be reached.

    Propagated to the caller, which decides whether to retry.
    The core never retries non-idempotent mutations itself.
    """


# =============================================================================
# ROTATION
# =============================================================================

class ScheduleHorizonError(SpotlightError):
    """Queried instant lies beyond the schedule horizon (schedule.max_horizon_days)."""

    def __init__(self, at, horizon):
        self.at = at
        self.horizon = horizon
        super().__init__(
            f"Instant {at.isoformat()} is beyond the schedule horizon {horizon.isoformat()}"
        )


# =============================================================================
# LEDGER
# =============================================================================

class LedgerError(SpotlightError):
    """Base class for balance ledger errors."""


class InvalidAmountError(LedgerError):
    """Amount is not a positive value with at most 2 decimal places."""


class AccountNotFoundError(LedgerError):
    """No account exists for the given identifier."""

    def __init__(self, account_id):
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class AccountExistsError(LedgerError):
    """An account with this email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Account already exists: {email}")


class InsufficientFundsError(LedgerError):
    """Debit amount exceeds the balance at the time of the call."""

    def __init__(self, account_id, amount: Decimal, balance: Optional[Decimal] = None):
        self.account_id = account_id
        self.amount = amount
        self.balance = balance
        message = f"Insufficient funds on account {account_id}: requested {amount}"
        if balance is not None:
            message += f", available {balance}"
        super().__init__(message)


# =============================================================================
# ALLOCATIONS
# =============================================================================

class AllocationError(SpotlightError):
    """Base class for allocation errors."""


class CoinNotActiveError(AllocationError):
    """Targeted coin has no open activation window at the requested instant."""

    def __init__(self, coin_id: int, at=None):
        self.coin_id = coin_id
        self.at = at
        suffix = f" at {at.isoformat()}" if at is not None else ""
        super().__init__(f"Coin {coin_id} is not active{suffix}")


class AllocationNotFoundError(AllocationError):
    """No allocation exists for the given identifier."""

    def __init__(self, allocation_id):
        self.allocation_id = allocation_id
        super().__init__(f"Allocation {allocation_id} not found")


class AllocationNotActiveError(AllocationError):
    """Allocation was already closed or cancelled."""

    def __init__(self, allocation_id, status: str):
        self.allocation_id = allocation_id
        self.status = status
        super().__init__(f"Allocation {allocation_id} is {status}, expected active")


# =============================================================================
# WITHDRAWALS
# =============================================================================

class WithdrawalError(SpotlightError):
    """Base class for withdrawal errors."""


class InvalidNetworkError(WithdrawalError):
    """Unknown network key or empty destination address."""


class WithdrawalNotFoundError(WithdrawalError):
    """No withdrawal exists for the given identifier."""

    def __init__(self, withdrawal_id):
        self.withdrawal_id = withdrawal_id
        super().__init__(f"Withdrawal {withdrawal_id} not found")


class WithdrawalAlreadyResolvedError(WithdrawalError):
    """Withdrawal left the pending state already; callers treat it as a no-op."""

    def __init__(self, withdrawal_id, status: str):
        self.withdrawal_id = withdrawal_id
        self.status = status
        super().__init__(f"Withdrawal {withdrawal_id} already resolved ({status})")
