"""
API route modules
"""
from .coins import router as coins_router
from .accounts import router as accounts_router
from .allocations import router as allocations_router
from .withdrawals import router as withdrawals_router
from .deposits import router as deposits_router

__all__ = [
    "coins_router",
    "accounts_router",
    "allocations_router",
    "withdrawals_router",
    "deposits_router",
]
