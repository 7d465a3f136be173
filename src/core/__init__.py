"""
Core QuadSwap algorithms

The engine itself lives in `src.core.engine`; this package re-exports the
leaf kernels that have no state dependencies.
"""

from .errors import (
    DivisionByZero,
    DuplicateAsset,
    InvalidPath,
    LengthMismatch,
    MinimumLiquidity,
    OrderError,
    Overflow,
    PairNotFound,
    PaymentError,
    PaymentUnderpaid,
    PrecisionError,
    QuadSwapError,
    Reentrancy,
    SelfRecipient,
    StateError,
    ValidationError,
    ZeroAmount,
)
from .precision_math import MAX_UINT128, MAX_UINT256, cbrt, div_up, full_mul_div, full_mul_div_up
from .oracle import PRICE_SCALE, accumulate, spot_cbrt_price, twap_cbrt_price

__all__ = [
    "DivisionByZero",
    "DuplicateAsset",
    "InvalidPath",
    "LengthMismatch",
    "MinimumLiquidity",
    "OrderError",
    "Overflow",
    "PairNotFound",
    "PaymentError",
    "PaymentUnderpaid",
    "PrecisionError",
    "QuadSwapError",
    "Reentrancy",
    "SelfRecipient",
    "StateError",
    "ValidationError",
    "ZeroAmount",
    "MAX_UINT128",
    "MAX_UINT256",
    "cbrt",
    "div_up",
    "full_mul_div",
    "full_mul_div_up",
    "PRICE_SCALE",
    "accumulate",
    "spot_cbrt_price",
    "twap_cbrt_price",
]
