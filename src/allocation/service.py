"""
Allocation Service

Orchestrates one user allocation:
1. The coin must be active at the requested instant (RotationState)
2. Debit the ledger and insert the Allocation in ONE transaction
3. Allocation.expires_at = expiry of the coin's current window (snapshot)

No allocation exists without its debit and no debit without its allocation:
both are committed together or rolled back together.

Usage:
    service = AllocationService(rotation_state, ledger)
    allocation = service.allocate(account_id, coin_id=3, amount="25.00")
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.database.connection import get_session, get_session_factory
from src.database.models import Allocation, utcnow
from src.errors import (
    AccountNotFoundError,
    AllocationNotActiveError,
    AllocationNotFoundError,
    CoinNotActiveError,
)
from src.ledger import BalanceLedger, to_amount
from src.rotation.clock import Clock, SystemClock, ensure_utc
from src.rotation.state import RotationState
from src.utils import get_logger

logger = get_logger(__name__)

ALLOCATION_STATUSES = ("active", "closed", "cancelled")


class AllocationService:
    """Creates, lists, closes and cancels allocations"""

    def __init__(
        self,
        rotation_state: RotationState,
        ledger: BalanceLedger,
        clock: Optional[Clock] = None,
        session_factory: Optional[sessionmaker] = None
    ):
        self.rotation_state = rotation_state
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self._session_factory = session_factory or get_session_factory()

    def allocate(self, account_id, coin_id: int, amount, at: Optional[datetime] = None) -> Allocation:
        """
        Commit funds to a coin's current activation window.

        Args:
            account_id: Account identifier
            coin_id: Coin id (1..total_coins)
            amount: Positive amount, at most 2 decimal places
            at: Instant of the request (default: clock.now())

        Returns:
            The persisted active Allocation

        Raises:
            InvalidAmountError: bad amount
            CoinNotActiveError: coin has no open window at `at`
            InsufficientFundsError: amount > balance (nothing persisted)
            AccountNotFoundError: unknown account
        """
        amount = to_amount(amount)
        at = ensure_utc(at) if at is not None else self.clock.now()

        window = self.rotation_state.active_window_for(coin_id, at)
        if window is None:
            logger.info(f"Allocation refused: coin {coin_id} not active at {at.isoformat()}")
            raise CoinNotActiveError(coin_id, at)

        allocation = Allocation(
            account_id=account_id,
            coin_id=coin_id,
            amount=amount,
            status="active",
            created_at=at,
            expires_at=window.expires_at,
        )

        with get_session(self._session_factory) as session:
            session.add(allocation)
            try:
                session.flush()
            except IntegrityError as e:
                # accounts.id foreign key
                raise AccountNotFoundError(account_id) from e
            # Raises before commit if funds are insufficient: the insert rolls back
            self.ledger.debit(
                account_id,
                amount,
                reason="allocation",
                reference_id=allocation.id,
                session=session,
            )

        logger.info(
            f"Allocation {allocation.id}: account {account_id} -> coin {coin_id}, "
            f"{amount} until {window.expires_at.isoformat()}"
        )
        return allocation

    def get_allocation(self, allocation_id) -> Allocation:
        with get_session(self._session_factory) as session:
            allocation = session.get(Allocation, allocation_id)

        if allocation is None:
            raise AllocationNotFoundError(allocation_id)
        return allocation

    def list_allocations(self, account_id=None, status: Optional[str] = None) -> List[Allocation]:
        """Allocations newest first"""
        if status is not None and status not in ALLOCATION_STATUSES:
            raise ValueError(f"status must be one of {ALLOCATION_STATUSES}, got '{status}'")

        with get_session(self._session_factory) as session:
            query = select(Allocation).order_by(Allocation.created_at.desc(), Allocation.id.desc())
            if account_id is not None:
                query = query.where(Allocation.account_id == account_id)
            if status is not None:
                query = query.where(Allocation.status == status)
            return list(session.execute(query).scalars())

    def close_expired(self, at: Optional[datetime] = None) -> int:
        """
        Mark active allocations whose window is over as closed.

        No balance effect. Safe to run repeatedly and concurrently.

        Returns:
            Number of allocations closed
        """
        at = ensure_utc(at) if at is not None else self.clock.now()

        with get_session(self._session_factory) as session:
            result = session.execute(
                update(Allocation)
                .where(Allocation.status == "active", Allocation.expires_at <= at)
                .values(status="closed", closed_at=at)
                .execution_options(synchronize_session=False)
            )
            closed = result.rowcount

        if closed > 0:
            logger.info(f"Closed {closed} expired allocations (as of {at.isoformat()})")
        return closed

    def cancel(self, allocation_id) -> Allocation:
        """
        Cancel an active allocation and refund its amount.

        The status flip is conditional on `active`, so a concurrent cancel or
        close can never produce a second refund.

        Raises:
            AllocationNotFoundError: unknown allocation
            AllocationNotActiveError: allocation already closed or cancelled
        """
        with get_session(self._session_factory) as session:
            result = session.execute(
                update(Allocation)
                .where(Allocation.id == allocation_id, Allocation.status == "active")
                .values(status="cancelled", closed_at=utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                status = session.execute(
                    select(Allocation.status).where(Allocation.id == allocation_id)
                ).scalar_one_or_none()
                if status is None:
                    raise AllocationNotFoundError(allocation_id)
                raise AllocationNotActiveError(allocation_id, status)

            allocation = session.execute(
                select(Allocation).where(Allocation.id == allocation_id)
            ).scalar_one()

            self.ledger.credit(
                allocation.account_id,
                allocation.amount,
                reason="allocation_refund",
                reference_id=allocation.id,
                session=session,
            )

        logger.info(f"Allocation {allocation_id} cancelled, {allocation.amount} refunded")
        return allocation
