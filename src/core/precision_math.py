"""
Fixed-width integer arithmetic for the QuadSwap engine.

Python ints are unbounded, so the double-width product `x * y` is always exact;
what this module adds is the *width discipline* of the on-ledger numbers:
- operands and results of multiply-divide live in [0, 2**256),
- reserves live in [0, 2**128),
- every division states its rounding direction.

All functions are pure and deterministic. Failures raise `Overflow` or
`DivisionByZero` from `src.core.errors`.
"""

from __future__ import annotations

from .errors import DivisionByZero, Overflow


UINT128_BITS = 128
UINT256_BITS = 256
MAX_UINT128 = (1 << UINT128_BITS) - 1
MAX_UINT256 = (1 << UINT256_BITS) - 1


def _require_uint256(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > MAX_UINT256:
        raise Overflow(f"{name} outside uint256: {value}")


def _require_divisor(d: int) -> None:
    if d == 0:
        raise DivisionByZero("division by zero")


def full_mul_div(x: int, y: int, d: int) -> int:
    """
    Compute `floor(x * y / d)` without losing the high half of the product.

    Raises:
        DivisionByZero: if d == 0
        Overflow: if an operand or the quotient does not fit in 256 bits
    """
    _require_uint256("x", x)
    _require_uint256("y", y)
    _require_uint256("d", d)
    _require_divisor(d)
    q = (x * y) // d
    if q > MAX_UINT256:
        raise Overflow(f"mul_div quotient exceeds uint256: {x} * {y} / {d}")
    return q


def full_mul_div_up(x: int, y: int, d: int) -> int:
    """`full_mul_div` rounded toward positive infinity."""
    q = full_mul_div(x, y, d)
    if (x * y) % d != 0:
        if q == MAX_UINT256:
            raise Overflow(f"mul_div_up quotient exceeds uint256: {x} * {y} / {d}")
        q += 1
    return q


def div_up(x: int, d: int) -> int:
    """Ceiling division of a non-negative numerator."""
    _require_uint256("x", x)
    _require_uint256("d", d)
    _require_divisor(d)
    return (x + d - 1) // d


def cbrt(x: int) -> int:
    """
    Integer cube root, floor semantics.

    Total over all non-negative ints: the initial guess `2**ceil(bits/3)` is
    always >= the true root, so Newton's iteration descends monotonically and
    stops at the floor. A final bracket step pins `r**3 <= x < (r+1)**3`.
    """
    if not isinstance(x, int) or isinstance(x, bool):
        raise TypeError("x must be an int")
    if x < 0:
        raise ValueError(f"cbrt of negative value: {x}")
    if x < 8:
        return 0 if x == 0 else 1

    r = 1 << ((x.bit_length() + 2) // 3)
    while True:
        nxt = (2 * r + x // (r * r)) // 3
        if nxt >= r:
            break
        r = nxt

    while r * r * r > x:
        r -= 1
    while (r + 1) * (r + 1) * (r + 1) <= x:
        r += 1
    return r


def to_uint128(name: str, value: int) -> int:
    """Width cast for values stored in 128-bit reserve slots."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > MAX_UINT128:
        raise Overflow(f"{name} does not fit in uint128: {value}")
    return value
