"""
State management for QuadSwap
"""

from .balances import BalanceTable, TrackedBalances
from .pairs import Bucket, PairState, PairTable, Reserves, compute_pair_id
from .lp import LPPosition, LPTable

__all__ = [
    "BalanceTable",
    "TrackedBalances",
    "Bucket",
    "PairState",
    "PairTable",
    "Reserves",
    "compute_pair_id",
    "LPPosition",
    "LPTable",
]
