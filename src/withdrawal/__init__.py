"""
WITHDRAWAL Module - Reserve funds on request, finalize or refund on admin decision
"""

from src.withdrawal.service import WithdrawalService, WITHDRAWAL_DECISIONS

__all__ = ['WithdrawalService', 'WITHDRAWAL_DECISIONS']
