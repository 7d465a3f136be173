"""
Cube-root price oracle kernel.

Each pair carries a cumulative sum of `cbrt(price) * seconds`, where
`price = total_reserve1 * PRICE_SCALE / total_reserve0`. The accumulator is a
fixed-width counter that wraps modulo 2**256; it is never a price itself.
Consumers take two reads at known times and difference them:

    twap = ((cumulative_end - cumulative_start) mod 2**256) // elapsed

Taking the cube root before averaging damps the leverage a short-lived
reserve skew has on the average.
"""

from __future__ import annotations

from .errors import DivisionByZero
from .precision_math import UINT256_BITS, cbrt, full_mul_div


PRICE_SCALE = 10**18
ACCUMULATOR_MODULUS = 1 << UINT256_BITS


def spot_cbrt_price(total_reserve0: int, total_reserve1: int) -> int:
    """`cbrt(total_reserve1 * PRICE_SCALE / total_reserve0)` with floor rounding."""
    return cbrt(full_mul_div(total_reserve1, PRICE_SCALE, total_reserve0))


def accumulate(
    price_cumulative: int,
    *,
    total_reserve0: int,
    total_reserve1: int,
    last_update_time: int,
    now: int,
) -> int:
    """
    Advance the accumulator by the time elapsed since `last_update_time`.

    Returns the accumulator unchanged when no time has passed (or the clock
    went backwards); the reserves used are the ones that were in force over
    the elapsed interval.
    """
    elapsed = now - last_update_time
    if elapsed <= 0:
        return price_cumulative
    delta = spot_cbrt_price(total_reserve0, total_reserve1) * elapsed
    return (price_cumulative + delta) % ACCUMULATOR_MODULUS


def twap_cbrt_price(cumulative_start: int, cumulative_end: int, elapsed: int) -> int:
    """Time-weighted average cube-root price between two accumulator reads."""
    if elapsed <= 0:
        raise DivisionByZero(f"elapsed must be positive: {elapsed}")
    return ((cumulative_end - cumulative_start) % ACCUMULATOR_MODULUS) // elapsed
