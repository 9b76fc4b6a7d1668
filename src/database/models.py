"""
SQLAlchemy Models for Spotlight

Database schema for:
- Accounts (authoritative balances)
- Ledger entries (journal of every balance mutation)
- Allocations (funds committed to a coin's activation window)
- Deposits and withdrawals
"""

from datetime import datetime, UTC
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import (
    BigInteger, CheckConstraint, Column, DateTime, Enum, ForeignKey, Index,
    Integer, String, Text
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

CENT = Decimal("0.01")


def utcnow() -> datetime:
    return datetime.now(UTC)


class Money(TypeDecorator):
    """
    Fixed-point amount with 2 decimal places, stored as integer minor units.

    Integer storage keeps `balance >= :amount` comparisons exact on every
    backend (SQLite has no native decimal type).
    """
    impl = BigInteger
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        return int((value.quantize(CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return (Decimal(value) / 100).quantize(CENT)


class UTCDateTime(TypeDecorator):
    """DateTime that always round-trips as aware UTC (SQLite drops tzinfo)."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


# ==============================================================================
# ACCOUNTS
# ==============================================================================

class Account(Base):
    """
    User account with its authoritative balance

    The balance is mutated only by BalanceLedger through conditional updates.
    Conservation: balance - initial_balance = sum(credits) - sum(debits)
    """
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String(255), unique=True, nullable=False, index=True)
    account_type = Column(
        Enum("user", "admin", name="account_type"),
        nullable=False,
        default="user"
    )

    balance = Column(Money, nullable=False, default=Decimal("0.00"))
    initial_balance = Column(Money, nullable=False, default=Decimal("0.00"))

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    entries = relationship("LedgerEntry", back_populates="account")
    allocations = relationship("Allocation", back_populates="account")
    deposits = relationship("Deposit", back_populates="account")
    withdrawals = relationship("Withdrawal", back_populates="account")

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_account_balance_non_negative"),
    )

    def __repr__(self):
        return f"<Account(id={self.id}, email={self.email}, balance={self.balance})>"


class LedgerEntry(Base):
    """
    Journal row written in the same transaction as a balance mutation

    kind: debit | credit
    reason: allocation, allocation_refund, withdrawal, withdrawal_refund,
            deposit, adjustment
    """
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    kind = Column(Enum("debit", "credit", name="ledger_entry_kind"), nullable=False)
    amount = Column(Money, nullable=False)
    balance_after = Column(Money, nullable=False)

    reason = Column(String(50), nullable=False)
    reference_id = Column(Integer, nullable=True)
    # Id of the allocation/withdrawal/deposit row that caused the entry

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)

    account = relationship("Account", back_populates="entries")

    __table_args__ = (
        Index('idx_ledger_account_created', 'account_id', 'created_at'),
        CheckConstraint("amount > 0", name="ck_ledger_amount_positive"),
    )

    def __repr__(self):
        return f"<LedgerEntry(account={self.account_id}, {self.kind} {self.amount}, reason={self.reason})>"


# ==============================================================================
# ALLOCATIONS
# ==============================================================================

class Allocation(Base):
    """
    Funds committed to a coin's current activation window

    expires_at is copied from the coin's window at creation and never
    recomputed. Lifecycle: active → closed (window over) | cancelled (refunded)
    """
    __tablename__ = "allocations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    coin_id = Column(Integer, nullable=False, index=True)

    amount = Column(Money, nullable=False)

    status = Column(
        Enum("active", "closed", "cancelled", name="allocation_status"),
        nullable=False,
        default="active",
        index=True
    )

    created_at = Column(UTCDateTime, default=utcnow, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
    closed_at = Column(UTCDateTime, nullable=True)

    account = relationship("Account", back_populates="allocations")

    __table_args__ = (
        Index('idx_allocation_status_expires', 'status', 'expires_at'),
        CheckConstraint("amount > 0", name="ck_allocation_amount_positive"),
    )

    def __repr__(self):
        return f"<Allocation(id={self.id}, coin={self.coin_id}, amount={self.amount}, status={self.status})>"


# ==============================================================================
# DEPOSITS / WITHDRAWALS
# ==============================================================================

class Deposit(Base):
    """Top-up confirmed by an admin and credited to the account"""
    __tablename__ = "deposits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    amount = Column(Money, nullable=False)
    network = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default="completed")

    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)

    account = relationship("Account", back_populates="deposits")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_deposit_amount_positive"),
    )

    def __repr__(self):
        return f"<Deposit(id={self.id}, account={self.account_id}, amount={self.amount})>"


class Withdrawal(Base):
    """
    Withdrawal request

    Funds are reserved (debited) when the request is created.
    Lifecycle: pending → completed | rejected (rejected credits the funds back)
    """
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)

    amount = Column(Money, nullable=False)
    network = Column(String(20), nullable=False)
    address = Column(String(255), nullable=False)
    comment = Column(Text, nullable=True)

    status = Column(
        Enum("pending", "completed", "rejected", name="withdrawal_status"),
        nullable=False,
        default="pending",
        index=True
    )

    created_at = Column(UTCDateTime, default=utcnow, nullable=False, index=True)
    resolved_at = Column(UTCDateTime, nullable=True)

    account = relationship("Account", back_populates="withdrawals")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_withdrawal_amount_positive"),
    )

    def __repr__(self):
        return f"<Withdrawal(id={self.id}, amount={self.amount}, status={self.status})>"
