"""
LEDGER Module - Authoritative account balances

Single Responsibility: atomic debit/credit of account balances
"""

from src.ledger.ledger import BalanceLedger, to_amount, to_balance

__all__ = ['BalanceLedger', 'to_amount', 'to_balance']
