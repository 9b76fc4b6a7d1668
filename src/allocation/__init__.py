"""
ALLOCATION Module - Funds committed to active coins

Single Responsibility: couple the ledger debit with the allocation record
"""

from src.allocation.service import AllocationService

__all__ = ['AllocationService']
