"""
ACCOUNTS Module - Account lookup by opaque identifier or email
"""

from src.accounts.registry import AccountRegistry, normalize_email

__all__ = ['AccountRegistry', 'normalize_email']
