"""
Database module for Spotlight

Provides:
- SQLAlchemy models
- Database connection management
- Session management
"""

from .models import Base, Account, LedgerEntry, Allocation, Deposit, Withdrawal, Money
from .connection import (
    build_engine,
    create_session_factory,
    get_engine,
    get_session,
    get_session_factory,
    init_db,
    reset_engine,
)

__all__ = [
    "Base",
    "Account",
    "LedgerEntry",
    "Allocation",
    "Deposit",
    "Withdrawal",
    "Money",
    "build_engine",
    "create_session_factory",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_db",
    "reset_engine",
]
