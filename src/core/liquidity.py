"""
Liquidity kernels: issuance, fee-bearing redemption, long/short rebalance.

All four buckets are accounted independently: a deposit into long0 only ever
prices against the long0 reserve and long0 supply.

Rounding always favours the pool:
- issuance and payouts round down,
- redemption fees round up.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ..state.lp import LPPosition
from ..state.pairs import Bucket, Reserves
from .errors import MinimumLiquidity, ZeroAmount
from .oracle import PRICE_SCALE
from .precision_math import full_mul_div, full_mul_div_up


# Smallest per-bucket amount accepted when a pair is created.
MINIMUM_LIQUIDITY = 1000
# LP units minted per bucket on pair creation, whatever was deposited.
BOOTSTRAP_LIQUIDITY = 1_000_000

WITHDRAW_FEE_NUM = 3
FEE_DEN = 1000
PROTOCOL_SHARE_NUM = 20
PROTOCOL_SHARE_DEN = 100


def bootstrap_mint(
    amounts: Reserves,
    *,
    minimum_liquidity: int = MINIMUM_LIQUIDITY,
    bootstrap_liquidity: int = BOOTSTRAP_LIQUIDITY,
) -> LPPosition:
    """
    LP minted by the first deposit into a pair.

    Every bucket must receive at least `minimum_liquidity`; each bucket then
    mints the fixed `bootstrap_liquidity`, decoupled from the deposit size so a
    first depositor cannot pick the unit price of LP.
    """
    for bucket in Bucket:
        amount = amounts.get(bucket)
        if amount < minimum_liquidity:
            raise MinimumLiquidity(
                f"initial {bucket.name.lower()} deposit {amount} < minimum {minimum_liquidity}"
            )
    return LPPosition(*(bootstrap_liquidity for _ in Bucket))


def proportional_mint(amounts: Reserves, reserves: Reserves, supply: LPPosition) -> LPPosition:
    """
    LP minted by a deposit into an existing pair.

    liq[b] = floor(amount[b] * supply[b] / reserve[b]) for each bucket b.

    Raises ZeroAmount if a non-zero amount would mint nothing, which covers
    dust deposits and buckets whose supply has been fully redeemed.
    """
    minted = []
    for bucket in Bucket:
        amount = amounts.get(bucket)
        if amount == 0:
            minted.append(0)
            continue
        liq = full_mul_div(amount, supply.get(bucket), reserves.get(bucket))
        if liq == 0:
            raise ZeroAmount(f"deposit of {amount} into {bucket.name.lower()} mints no LP")
        minted.append(liq)
    return LPPosition(*minted)


@dataclass(frozen=True)
class RedemptionResult:
    bucket_out: Tuple[int, int, int, int]
    fees: LPPosition
    protocol_mint: LPPosition
    reserves_after: Reserves

    @property
    def amount0(self) -> int:
        return self.bucket_out[Bucket.LONG0] + self.bucket_out[Bucket.SHORT0]

    @property
    def amount1(self) -> int:
        return self.bucket_out[Bucket.LONG1] + self.bucket_out[Bucket.SHORT1]


def redeem(
    liquidity: LPPosition,
    reserves: Reserves,
    supply: LPPosition,
    *,
    fee_num: int = WITHDRAW_FEE_NUM,
    fee_den: int = FEE_DEN,
    protocol_share_num: int = PROTOCOL_SHARE_NUM,
    protocol_share_den: int = PROTOCOL_SHARE_DEN,
) -> RedemptionResult:
    """
    Compute payouts for redeeming `liquidity` against pre-burn `supply`.

    Per non-zero bucket:
        fee = ceil(liq * fee_num / fee_den)
        out = 0 if fee >= liq else floor((liq - fee) * reserve / supply)
        protocol_mint = floor(fee * protocol_share_num / protocol_share_den)

    The reserve drops only by `out`; the fee's share of the reserve stays
    behind for the remaining holders.
    """
    outs = [0, 0, 0, 0]
    fees = [0, 0, 0, 0]
    protocol = [0, 0, 0, 0]
    after = reserves
    for bucket in Bucket:
        liq = liquidity.get(bucket)
        if liq == 0:
            continue
        total = supply.get(bucket)
        if liq > total:
            raise ValueError(f"cannot redeem {liq} of {bucket.name.lower()} supply {total}")
        fee = full_mul_div_up(liq, fee_num, fee_den)
        out = 0
        if fee < liq:
            out = full_mul_div(liq - fee, reserves.get(bucket), total)
        outs[bucket] = out
        fees[bucket] = fee
        protocol[bucket] = full_mul_div(fee, protocol_share_num, protocol_share_den)
        after = after.with_bucket(bucket, after.get(bucket) - out)
    return RedemptionResult(
        bucket_out=(outs[0], outs[1], outs[2], outs[3]),
        fees=LPPosition(*fees),
        protocol_mint=LPPosition(*protocol),
        reserves_after=after,
    )


def exchange_rate(supply: int, reserve: int, *, scale: int = PRICE_SCALE) -> int:
    """LP units per reserve unit, scaled: floor(supply * scale / reserve)."""
    return full_mul_div(supply, scale, reserve)


@dataclass(frozen=True)
class RebalanceLeg:
    source: Bucket
    liquidity_in: int
    reserve_moved: int
    liquidity_out: int


def rebalance_leg(
    reserves: Reserves,
    supply: LPPosition,
    *,
    source: Bucket,
    liquidity_in: int,
    scale: int = PRICE_SCALE,
) -> Tuple[RebalanceLeg, Reserves]:
    """
    Convert `liquidity_in` units of `source` into the opposite bucket.

    The source bucket gives up `floor(reserve_src * liq / supply_src)`, which is
    credited to the destination reserve and minted there at the destination's
    current rate. Raises MinimumLiquidity if the source reserve would be emptied
    and ZeroAmount if the conversion would mint nothing.
    """
    dest = source.opposite()
    total = supply.get(source)
    if liquidity_in > total:
        raise ValueError(f"cannot convert {liquidity_in} of {source.name.lower()} supply {total}")
    reserve_src = reserves.get(source)
    reserve_dst = reserves.get(dest)
    moved = full_mul_div(reserve_src, liquidity_in, total)
    if reserve_src - moved <= 0:
        raise MinimumLiquidity(f"rebalance would empty {source.name.lower()}")
    rate = exchange_rate(supply.get(dest), reserve_dst, scale=scale)
    minted = full_mul_div(moved, rate, scale)
    if minted == 0:
        raise ZeroAmount(f"converting {liquidity_in} of {source.name.lower()} mints no {dest.name.lower()} LP")
    after = reserves.with_bucket(source, reserve_src - moved).with_bucket(dest, reserve_dst + moved)
    leg = RebalanceLeg(source=source, liquidity_in=liquidity_in, reserve_moved=moved, liquidity_out=minted)
    return leg, after
