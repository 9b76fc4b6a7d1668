"""
Deposit Service

Admin-confirmed top-ups: the deposit row and the ledger credit are written
in one transaction.

Usage:
    deposits = DepositService(ledger)
    deposits.record_deposit(account_id, "250.00", network="tron")
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.database.connection import get_session, get_session_factory
from src.database.models import Account, Deposit
from src.errors import AccountNotFoundError
from src.funds.networks import get_network
from src.ledger import BalanceLedger, to_amount
from src.utils import get_logger

logger = get_logger(__name__)


class DepositService:
    """Records deposits and credits the ledger"""

    def __init__(self, ledger: BalanceLedger, session_factory: Optional[sessionmaker] = None):
        self.ledger = ledger
        self._session_factory = session_factory or get_session_factory()

    def record_deposit(self, account_id, amount, network: Optional[str] = None) -> Deposit:
        """
        Record a confirmed deposit and credit the account.

        Raises:
            InvalidAmountError: bad amount
            InvalidNetworkError: unknown network key
            AccountNotFoundError: unknown account (nothing persisted)
        """
        amount = to_amount(amount)
        network_key = get_network(network).key if network else None

        deposit = Deposit(
            account_id=account_id,
            amount=amount,
            network=network_key,
            status="completed",
        )

        with get_session(self._session_factory) as session:
            session.add(deposit)
            try:
                session.flush()
            except IntegrityError as e:
                raise AccountNotFoundError(account_id) from e
            balance = self.ledger.credit(
                account_id,
                amount,
                reason="deposit",
                reference_id=deposit.id,
                session=session,
            )

        logger.info(f"Deposit {deposit.id}: {amount} to account {account_id}, balance {balance}")
        return deposit

    def list_deposits(self, account_id=None, email_filter: Optional[str] = None) -> List[Deposit]:
        """Deposits newest first; email_filter matches a substring of the owner's email"""
        with get_session(self._session_factory) as session:
            query = select(Deposit).order_by(Deposit.created_at.desc(), Deposit.id.desc())
            if account_id is not None:
                query = query.where(Deposit.account_id == account_id)
            if email_filter:
                query = query.join(Account, Account.id == Deposit.account_id).where(
                    Account.email.contains(email_filter.strip().lower())
                )
            return list(session.execute(query).scalars())
