"""
Account Registry

Creates accounts and resolves them by id or email. The auth/session layer
is outside Spotlight; it hands the services an account id obtained here.

Usage:
    registry = AccountRegistry()
    account = registry.open_account("user@example.com", initial_balance="100.00")
    same = registry.find_by_email(" User@Example.com ")
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from src.database.connection import get_session, get_session_factory
from src.database.models import Account
from src.errors import AccountExistsError, AccountNotFoundError
from src.ledger import to_balance
from src.utils import get_logger

logger = get_logger(__name__)

ACCOUNT_TYPES = ("user", "admin")


def normalize_email(email: str) -> str:
    """Trimmed, lower-cased email; raises ValueError if it is not plausible"""
    if not isinstance(email, str):
        raise ValueError(f"Invalid email: {email!r}")
    normalized = email.strip().lower()
    if '@' not in normalized or normalized.startswith('@') or normalized.endswith('@'):
        raise ValueError(f"Invalid email: {email!r}")
    return normalized


class AccountRegistry:
    """Insert-with-uniqueness and lookups for Account rows"""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory or get_session_factory()

    def open_account(self, email: str, initial_balance="0.00", account_type: str = "user") -> Account:
        """
        Create an account.

        Raises:
            ValueError: invalid email or account type
            InvalidAmountError: negative or over-precise initial balance
            AccountExistsError: email already registered
        """
        email = normalize_email(email)
        if account_type not in ACCOUNT_TYPES:
            raise ValueError(f"account_type must be one of {ACCOUNT_TYPES}, got '{account_type}'")
        balance = to_balance(initial_balance)

        account = Account(
            email=email,
            account_type=account_type,
            balance=balance,
            initial_balance=balance,
        )

        try:
            with get_session(self._session_factory) as session:
                session.add(account)
                session.flush()
        except IntegrityError as e:
            raise AccountExistsError(email) from e

        logger.info(f"Opened account {account.id} for {email} (initial balance {balance})")
        return account

    def get_account(self, account_id) -> Account:
        with get_session(self._session_factory) as session:
            account = session.get(Account, account_id)

        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def find_by_email(self, email: str) -> Optional[Account]:
        try:
            email = normalize_email(email)
        except ValueError:
            return None

        with get_session(self._session_factory) as session:
            return session.execute(
                select(Account).where(Account.email == email)
            ).scalar_one_or_none()

    def require_by_email(self, email: str) -> Account:
        account = self.find_by_email(email)
        if account is None:
            raise AccountNotFoundError(email)
        return account

    def list_accounts(self, email_filter: Optional[str] = None) -> List[Account]:
        """Accounts newest first, optionally filtered by email substring"""
        with get_session(self._session_factory) as session:
            query = select(Account).order_by(Account.created_at.desc(), Account.id.desc())
            if email_filter:
                query = query.where(Account.email.contains(email_filter.strip().lower()))
            return list(session.execute(query).scalars())
