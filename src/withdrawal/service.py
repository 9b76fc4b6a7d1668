"""
Withdrawal Service

Request: funds are reserved immediately (ledger debit) and a pending
Withdrawal is recorded, in one transaction.

Resolve (admin):
- completed: terminal, no balance effect (funds already left the ledger)
- rejected:  funds are credited back, in the same transaction as the status flip

The status flip is a conditional UPDATE on status = 'pending', so resolving
twice can never credit twice.

Usage:
    service = WithdrawalService(ledger)
    withdrawal = service.request_withdrawal(account_id, "40.00", "TQEV...", "tron")
    service.resolve(withdrawal.id, "rejected")
"""

from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.database.connection import get_session, get_session_factory
from src.database.models import Withdrawal, utcnow
from src.errors import (
    AccountNotFoundError,
    InvalidNetworkError,
    WithdrawalAlreadyResolvedError,
    WithdrawalNotFoundError,
)
from src.funds.networks import get_network
from src.ledger import BalanceLedger, to_amount
from src.utils import get_logger

logger = get_logger(__name__)

WITHDRAWAL_DECISIONS = ("completed", "rejected")
WITHDRAWAL_STATUSES = ("pending",) + WITHDRAWAL_DECISIONS


class WithdrawalService:
    """Withdrawal requests and their admin resolution"""

    def __init__(self, ledger: BalanceLedger, session_factory: Optional[sessionmaker] = None):
        self.ledger = ledger
        self._session_factory = session_factory or get_session_factory()

    def request_withdrawal(
        self,
        account_id,
        amount,
        address: str,
        network: str,
        comment: Optional[str] = None
    ) -> Withdrawal:
        """
        Reserve funds and create a pending withdrawal.

        Raises:
            InvalidAmountError: bad amount
            InvalidNetworkError: unknown network or empty address
            InsufficientFundsError: amount > balance (nothing persisted)
            AccountNotFoundError: unknown account
        """
        amount = to_amount(amount)
        network_info = get_network(network)

        address = (address or '').strip()
        if not address:
            raise InvalidNetworkError("Withdrawal address must not be empty")

        comment = (comment or '').strip() or None

        withdrawal = Withdrawal(
            account_id=account_id,
            amount=amount,
            network=network_info.key,
            address=address,
            comment=comment,
            status="pending",
        )

        with get_session(self._session_factory) as session:
            session.add(withdrawal)
            try:
                session.flush()
            except IntegrityError as e:
                raise AccountNotFoundError(account_id) from e
            self.ledger.debit(
                account_id,
                amount,
                reason="withdrawal",
                reference_id=withdrawal.id,
                session=session,
            )

        logger.info(
            f"Withdrawal {withdrawal.id} requested: account {account_id}, "
            f"{amount} via {network_info.key}"
        )
        return withdrawal

    def resolve(self, withdrawal_id, decision: str) -> Withdrawal:
        """
        Resolve a pending withdrawal.

        Args:
            withdrawal_id: Withdrawal identifier
            decision: 'completed' or 'rejected'

        Returns:
            The resolved Withdrawal

        Raises:
            ValueError: unknown decision
            WithdrawalNotFoundError: unknown withdrawal
            WithdrawalAlreadyResolvedError: withdrawal is no longer pending
        """
        if decision not in WITHDRAWAL_DECISIONS:
            raise ValueError(f"decision must be one of {WITHDRAWAL_DECISIONS}, got '{decision}'")

        with get_session(self._session_factory) as session:
            result = session.execute(
                update(Withdrawal)
                .where(Withdrawal.id == withdrawal_id, Withdrawal.status == "pending")
                .values(status=decision, resolved_at=utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                status = session.execute(
                    select(Withdrawal.status).where(Withdrawal.id == withdrawal_id)
                ).scalar_one_or_none()
                if status is None:
                    raise WithdrawalNotFoundError(withdrawal_id)
                raise WithdrawalAlreadyResolvedError(withdrawal_id, status)

            withdrawal = session.execute(
                select(Withdrawal).where(Withdrawal.id == withdrawal_id)
            ).scalar_one()

            if decision == "rejected":
                self.ledger.credit(
                    withdrawal.account_id,
                    withdrawal.amount,
                    reason="withdrawal_refund",
                    reference_id=withdrawal.id,
                    session=session,
                )

        logger.info(f"Withdrawal {withdrawal_id} resolved: {decision} ({withdrawal.amount})")
        return withdrawal

    def cancel(self, withdrawal_id) -> Withdrawal:
        """Cancelling a pending withdrawal is the same as rejecting it"""
        return self.resolve(withdrawal_id, "rejected")

    def get_withdrawal(self, withdrawal_id) -> Withdrawal:
        with get_session(self._session_factory) as session:
            withdrawal = session.get(Withdrawal, withdrawal_id)

        if withdrawal is None:
            raise WithdrawalNotFoundError(withdrawal_id)
        return withdrawal

    def list_withdrawals(self, status: Optional[str] = None, account_id=None) -> List[Withdrawal]:
        """Withdrawals newest first, optionally filtered"""
        if status is not None and status not in WITHDRAWAL_STATUSES:
            raise ValueError(f"status must be one of {WITHDRAWAL_STATUSES}, got '{status}'")

        with get_session(self._session_factory) as session:
            query = select(Withdrawal).order_by(Withdrawal.created_at.desc(), Withdrawal.id.desc())
            if status is not None:
                query = query.where(Withdrawal.status == status)
            if account_id is not None:
                query = query.where(Withdrawal.account_id == account_id)
            return list(session.execute(query).scalars())
