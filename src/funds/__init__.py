"""
Funds Module

Deposit networks catalogue and admin-confirmed deposits.
"""

from src.funds.deposits import DepositService
from src.funds.networks import NETWORKS, NetworkInfo, get_network

__all__ = ['DepositService', 'NETWORKS', 'NetworkInfo', 'get_network']
