"""
Balance Ledger

Owns the authoritative balance of every account.

Every mutation is a single conditional UPDATE evaluated by the database:

    UPDATE accounts SET balance = balance - :amount
    WHERE id = :account_id AND balance >= :amount

so two concurrent debits can never both observe a balance that covers them.
No balance is read to decide a write unless the transaction already holds
the row (set_balance touches it first).

Each mutation writes a LedgerEntry in the same transaction, which keeps
    balance - initial_balance == sum(credits) - sum(debits)

Usage:
    ledger = BalanceLedger()
    ledger.credit(account_id, "100.00", reason="deposit")
    ledger.debit(account_id, Decimal("40.00"), reason="withdrawal")

    # Join an outer transaction (debit + record insert commit together)
    with get_session() as session:
        session.add(record)
        session.flush()
        ledger.debit(account_id, amount, reason="allocation",
                     reference_id=record.id, session=session)
"""

from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Iterator, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from src.database.connection import get_session, get_session_factory
from src.database.models import CENT, Account, LedgerEntry, utcnow
from src.errors import AccountNotFoundError, InsufficientFundsError, InvalidAmountError
from src.utils import get_logger

logger = get_logger(__name__)


def _parse_decimal(value) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")
    try:
        if isinstance(value, str):
            # Clients send "12,50" as well as "12.50"
            return Decimal(value.replace(',', '.').strip())
        if isinstance(value, float):
            return Decimal(str(value))
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise InvalidAmountError(f"Invalid amount: {value!r}") from e


def _check_precision(amount: Decimal, raw) -> Decimal:
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount: {raw!r}")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError(f"Amount {raw!r} has more than 2 decimal places")
    return amount.quantize(CENT)


def to_amount(value) -> Decimal:
    """
    Normalize a mutation amount: positive, at most 2 decimal places.

    Raises:
        InvalidAmountError: If the value is not a positive fixed-point amount
    """
    amount = _check_precision(_parse_decimal(value), value)
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than 0, got {value!r}")
    return amount


def to_balance(value) -> Decimal:
    """Normalize a balance value: non-negative, at most 2 decimal places."""
    amount = _check_precision(_parse_decimal(value), value)
    if amount < 0:
        raise InvalidAmountError(f"Balance must not be negative, got {value!r}")
    return amount


class BalanceLedger:
    """
    Atomic debit/credit operations on account balances.

    Operations on the same account are serialized by the database (row lock
    taken by the conditional UPDATE); different accounts proceed concurrently.
    Every method accepts an optional session to join the caller's transaction.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_factory()

    @contextmanager
    def _transaction(self, session: Optional[Session]) -> Iterator[Session]:
        if session is not None:
            yield session
        else:
            with get_session(self._session_factory) as own_session:
                yield own_session

    @staticmethod
    def _balance_of(session: Session, account_id) -> Optional[Decimal]:
        return session.execute(
            select(Account.balance).where(Account.id == account_id)
        ).scalar_one_or_none()

    @staticmethod
    def _journal(session: Session, account_id, kind: str, amount: Decimal,
                 balance_after: Decimal, reason: str, reference_id) -> LedgerEntry:
        entry = LedgerEntry(
            account_id=account_id,
            kind=kind,
            amount=amount,
            balance_after=balance_after,
            reason=reason,
            reference_id=reference_id,
        )
        session.add(entry)
        return entry

    def debit(self, account_id, amount, *, reason: str = "debit",
              reference_id: Optional[int] = None,
              session: Optional[Session] = None) -> Decimal:
        """
        Atomically subtract amount if the balance covers it.

        Returns:
            New balance

        Raises:
            InvalidAmountError: amount not positive / more than 2 decimals
            AccountNotFoundError: unknown account
            InsufficientFundsError: amount > balance at call time (nothing mutated)
        """
        amount = to_amount(amount)

        with self._transaction(session) as s:
            result = s.execute(
                update(Account)
                .where(Account.id == account_id, Account.balance >= amount)
                .values(balance=Account.balance - amount, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                balance = self._balance_of(s, account_id)
                if balance is None:
                    raise AccountNotFoundError(account_id)
                logger.info(
                    f"Debit refused on account {account_id}: {amount} > {balance} ({reason})"
                )
                raise InsufficientFundsError(account_id, amount, balance)

            # Same transaction still holds the row, this read sees our write
            new_balance = self._balance_of(s, account_id)
            self._journal(s, account_id, "debit", amount, new_balance, reason, reference_id)

        logger.info(f"Debited {amount} from account {account_id} ({reason}), balance {new_balance}")
        return new_balance

    def credit(self, account_id, amount, *, reason: str = "credit",
               reference_id: Optional[int] = None,
               session: Optional[Session] = None) -> Decimal:
        """
        Atomically add amount to the balance.

        Returns:
            New balance

        Raises:
            InvalidAmountError: amount not positive (caller error)
            AccountNotFoundError: unknown account
        """
        amount = to_amount(amount)

        with self._transaction(session) as s:
            result = s.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(balance=Account.balance + amount, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )

            if result.rowcount == 0:
                raise AccountNotFoundError(account_id)

            new_balance = self._balance_of(s, account_id)
            self._journal(s, account_id, "credit", amount, new_balance, reason, reference_id)

        logger.info(f"Credited {amount} to account {account_id} ({reason}), balance {new_balance}")
        return new_balance

    def read_balance(self, account_id, session: Optional[Session] = None) -> Decimal:
        """
        Snapshot read of the balance.

        Raises:
            AccountNotFoundError: unknown account
        """
        with self._transaction(session) as s:
            balance = self._balance_of(s, account_id)

        if balance is None:
            raise AccountNotFoundError(account_id)
        return balance

    def set_balance(self, account_id, target, *, reason: str = "adjustment",
                    session: Optional[Session] = None) -> Decimal:
        """
        Admin balance edit.

        The transaction opens with a write on the account row (row lock on
        PostgreSQL, database write lock on SQLite), so no other mutation can
        commit between reading the current balance and applying the
        difference. The difference is applied as one credit or debit entry,
        so the edit still shows up in the journal.

        Returns:
            New balance (== target)
        """
        target = to_balance(target)

        with self._transaction(session) as s:
            touched = s.execute(
                update(Account)
                .where(Account.id == account_id)
                .values(updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if touched.rowcount == 0:
                raise AccountNotFoundError(account_id)

            current = self._balance_of(s, account_id)
            delta = target - current
            if delta > 0:
                new_balance = self.credit(account_id, delta, reason=reason, session=s)
            elif delta < 0:
                new_balance = self.debit(account_id, -delta, reason=reason, session=s)
            else:
                new_balance = current

        logger.info(f"Balance of account {account_id} set to {new_balance} (was {current})")
        return new_balance

    def entries(self, account_id, session: Optional[Session] = None) -> List[LedgerEntry]:
        """Journal of an account, oldest first"""
        with self._transaction(session) as s:
            return list(
                s.execute(
                    select(LedgerEntry)
                    .where(LedgerEntry.account_id == account_id)
                    .order_by(LedgerEntry.id)
                ).scalars()
            )

    def verify_conservation(self, account_id) -> bool:
        """Check balance - initial_balance == credits - debits for one account"""
        with self._transaction(None) as s:
            account = s.get(Account, account_id)
            if account is None:
                raise AccountNotFoundError(account_id)

            net = Decimal("0.00")
            for entry in self.entries(account_id, session=s):
                net += entry.amount if entry.kind == "credit" else -entry.amount

            balanced = account.balance - account.initial_balance == net

        if not balanced:
            logger.error(
                f"Conservation violated on account {account_id}: "
                f"balance {account.balance}, initial {account.initial_balance}, journal net {net}"
            )
        return balanced
