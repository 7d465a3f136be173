"""
Four-bucket swap kernel (one hop).

Pricing runs on the aggregate reserve of each asset (long + short), so the
curve is a plain constant product:

    new_in  = reserve_in + amount_in
    new_out = floor(reserve_out * reserve_in / new_in)
    gross   = reserve_out - new_out

Both sides then keep their pre-swap long/short split of the new total, and the
directional fee mechanic is applied on top:
- fee_out = ceil(gross * fee_num / fee_den) stays in the output asset's long
  bucket (buyers of an asset reward its longs);
- fee_in = ceil(amount_in * fee_num / fee_den) moves from the input asset's
  long bucket to its short bucket (sellers of an asset reward its shorts),
  but only when the rescaled long bucket is strictly larger than fee_in.

The trader receives gross - fee_out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..state.pairs import Bucket, Reserves
from .errors import ZeroAmount
from .precision_math import full_mul_div, full_mul_div_up


SWAP_FEE_NUM = 3
FEE_DEN = 1000


@dataclass(frozen=True)
class HopResult:
    side_in: int
    amount_in: int
    gross_out: int
    fee_in: int
    fee_out: int
    amount_out: int
    # False when the input-side long bucket was too small to carry fee_in.
    fee_in_applied: bool
    reserves_before: Reserves
    reserves_after: Reserves
    k_before: int
    k_pre_fee: int


def rescale_split(long: int, short: int, new_total: int) -> Tuple[int, int]:
    """
    Scale a long/short split to `new_total`, keeping the long share.

    new_long = floor(long * new_total / (long + short)); the remainder goes to short.
    """
    new_long = full_mul_div(long, new_total, long + short)
    return new_long, new_total - new_long


def swap_hop(
    reserves: Reserves,
    *,
    side_in: int,
    amount_in: int,
    fee_num: int = SWAP_FEE_NUM,
    fee_den: int = FEE_DEN,
) -> HopResult:
    """
    Exact-in swap of `amount_in` of asset `side_in` against a four-bucket pair.

    Raises:
        ZeroAmount: if amount_in is zero or the hop would pay out nothing
        ValueError: on malformed inputs
    """
    if side_in not in (0, 1):
        raise ValueError(f"side_in must be 0 or 1: {side_in}")
    if amount_in < 0:
        raise ValueError(f"amount_in must be non-negative: {amount_in}")
    if amount_in == 0:
        raise ZeroAmount("amount_in must be positive")
    side_out = 1 - side_in

    in_long_b, in_short_b = Bucket.of(side_in, True), Bucket.of(side_in, False)
    out_long_b, out_short_b = Bucket.of(side_out, True), Bucket.of(side_out, False)

    reserve_in = reserves.side_total(side_in)
    reserve_out = reserves.side_total(side_out)
    if reserve_in <= 0 or reserve_out <= 0:
        raise ValueError("cannot swap against an empty reserve")

    new_reserve_in = reserve_in + amount_in
    new_reserve_out = full_mul_div(reserve_out, reserve_in, new_reserve_in)
    gross_out = reserve_out - new_reserve_out

    in_long, in_short = rescale_split(reserves.get(in_long_b), reserves.get(in_short_b), new_reserve_in)
    out_long, out_short = rescale_split(reserves.get(out_long_b), reserves.get(out_short_b), new_reserve_out)

    fee_out = full_mul_div_up(gross_out, fee_num, fee_den)
    out_long += fee_out

    fee_in = full_mul_div_up(amount_in, fee_num, fee_den)
    fee_in_applied = in_long > fee_in
    if fee_in_applied:
        in_long -= fee_in
        in_short += fee_in

    amount_out = gross_out - fee_out
    if amount_out <= 0:
        raise ZeroAmount(f"swap of {amount_in} pays out nothing")

    after = (
        reserves.with_bucket(in_long_b, in_long)
        .with_bucket(in_short_b, in_short)
        .with_bucket(out_long_b, out_long)
        .with_bucket(out_short_b, out_short)
    )
    return HopResult(
        side_in=side_in,
        amount_in=amount_in,
        gross_out=gross_out,
        fee_in=fee_in,
        fee_out=fee_out,
        amount_out=amount_out,
        fee_in_applied=fee_in_applied,
        reserves_before=reserves,
        reserves_after=after,
        k_before=reserve_in * reserve_out,
        k_pre_fee=new_reserve_in * new_reserve_out,
    )
