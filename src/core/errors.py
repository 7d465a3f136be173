"""Exception types for the QuadSwap engine.

Every engine operation either commits in full or raises one of these; the
engine's call guard rolls back all state before the exception propagates.
"""

from __future__ import annotations


class QuadSwapError(Exception):
    """Base class for all engine failures."""


# -- Validation --------------------------------------------------------------

class ValidationError(QuadSwapError, ValueError):
    """Raised when call arguments are malformed."""


class OrderError(ValidationError):
    """Raised when an asset pair is not in canonical (strictly ascending) order."""


class SelfRecipient(ValidationError):
    """Raised when the engine itself is named as recipient."""


class ZeroAmount(ValidationError):
    """Raised when an operation would move nothing."""


class LengthMismatch(ValidationError):
    """Raised when parallel argument lists differ in length."""


class InvalidPath(ValidationError):
    """Raised when a swap path is too short or contains a degenerate hop."""


class DuplicateAsset(ValidationError):
    """Raised when a flash borrow names the same asset twice."""


# -- State -------------------------------------------------------------------

class StateError(QuadSwapError):
    """Raised when the pair state does not admit the requested transition."""


class PairNotFound(StateError):
    """Raised when an operation targets a pair that was never created."""


class MinimumLiquidity(StateError):
    """Raised when a reserve would drop to zero or a bootstrap deposit is too small."""


class Reentrancy(StateError):
    """Raised when a mutating operation is entered while another one is running."""


# -- Arithmetic --------------------------------------------------------------

class PrecisionError(QuadSwapError, ArithmeticError):
    """Base class for PrecisionMath failures."""


class Overflow(PrecisionError, OverflowError):
    """Raised when a value does not fit its fixed result width."""


class DivisionByZero(PrecisionError, ZeroDivisionError):
    """Raised on a zero divisor."""


# -- Payment -----------------------------------------------------------------

class PaymentError(QuadSwapError):
    """Base class for payment protocol failures."""


class PaymentUnderpaid(PaymentError):
    """Raised when a payment handler delivered less than was owed."""

    def __init__(self, item: str, owed: int, received: int) -> None:
        self.item = item
        self.owed = owed
        self.received = received
        super().__init__(f"underpaid {item}: owed {owed}, received {received}")
