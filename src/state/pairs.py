"""
Pair state management for four-bucket pairs.

A pair is keyed by an ordered asset pair and holds one reserve per bucket:
long/short exposure for asset0 and for asset1.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Dict, Optional, Tuple

import hashlib

from ..core.errors import MinimumLiquidity, OrderError, PairNotFound
from ..core.oracle import accumulate
from ..core.precision_math import to_uint128
from .balances import Amount, AssetId

# Type alias
PairId = str


class Bucket(IntEnum):
    """Index into a four-field reserve or LP record."""

    LONG0 = 0
    SHORT0 = 1
    LONG1 = 2
    SHORT1 = 3

    def opposite(self) -> "Bucket":
        """The other direction on the same asset."""
        return Bucket(int(self) ^ 1)

    @classmethod
    def of(cls, side: int, long: bool) -> "Bucket":
        return cls(2 * side + (0 if long else 1))


@dataclass(frozen=True)
class Reserves:
    """Fixed four-bucket record; one field per `Bucket`."""

    long0: Amount = 0
    short0: Amount = 0
    long1: Amount = 0
    short1: Amount = 0

    def get(self, bucket: Bucket) -> Amount:
        return self.as_tuple()[bucket]

    def with_bucket(self, bucket: Bucket, value: Amount) -> "Reserves":
        values = list(self.as_tuple())
        values[bucket] = value
        return Reserves(*values)

    def side_total(self, side: int) -> Amount:
        """Long plus short reserve of one asset."""
        if side == 0:
            return self.long0 + self.short0
        return self.long1 + self.short1

    def as_tuple(self) -> Tuple[Amount, Amount, Amount, Amount]:
        return (self.long0, self.short0, self.long1, self.short1)

    def is_zero(self) -> bool:
        return not any(self.as_tuple())


def compute_pair_id(asset0: AssetId, asset1: AssetId) -> PairId:
    """
    Deterministically compute a pair_id for an ordered asset pair.

    pair_id = "0x" || sha256("QuadSwapPair" || asset0 || 0x00 || asset1)
    """
    if asset0 >= asset1:
        raise OrderError(f"Assets must be in canonical order: {asset0} < {asset1}")
    pair_id_data = b"QuadSwapPair" + asset0.encode("utf-8") + b"\x00" + asset1.encode("utf-8")
    return "0x" + hashlib.sha256(pair_id_data).hexdigest()


@dataclass(frozen=True)
class PairState:
    """
    State of one four-bucket pair.

    Attributes:
        pair_id: Identifier derived from (asset0, asset1)
        asset0: First asset (must be < asset1)
        asset1: Second asset
        reserves: Per-bucket reserves, each in uint128
        last_update_time: Clock reading of the last mutation
        price_cumulative: Cube-root price accumulator (mod 2**256)
    """

    pair_id: PairId
    asset0: AssetId
    asset1: AssetId
    reserves: Reserves
    last_update_time: int
    price_cumulative: int = 0

    def __post_init__(self) -> None:
        if self.asset0 >= self.asset1:
            raise OrderError(f"Assets must be in canonical order: {self.asset0} < {self.asset1}")

    def side_of(self, asset: AssetId) -> int:
        """Return 0 or 1 for an asset of this pair."""
        if asset == self.asset0:
            return 0
        if asset == self.asset1:
            return 1
        raise ValueError(f"Asset {asset} not in pair {self.pair_id}")

    def __repr__(self) -> str:
        return (
            f"PairState(pair_id={self.pair_id[:16]}..., "
            f"assets=({self.asset0}, {self.asset1}), "
            f"reserves={self.reserves.as_tuple()}, "
            f"last_update_time={self.last_update_time})"
        )


class PairTable:
    """
    Mutable mapping pair_id -> PairState.

    Pairs are never removed. All reserve writes go through `update_pair`, which
    also advances the oracle accumulator.
    """

    def __init__(self) -> None:
        self._pairs: Dict[PairId, PairState] = {}

    def get(self, pair_id: PairId) -> Optional[PairState]:
        return self._pairs.get(pair_id)

    def require(self, pair_id: PairId) -> PairState:
        pair = self._pairs.get(pair_id)
        if pair is None:
            raise PairNotFound(f"unknown pair: {pair_id}")
        return pair

    def get_reserves(self, pair_id: PairId) -> Tuple[Amount, Amount, Amount, Amount]:
        """Return the four reserves; all zero for an unknown pair."""
        pair = self._pairs.get(pair_id)
        if pair is None:
            return (0, 0, 0, 0)
        return pair.reserves.as_tuple()

    def create(self, asset0: AssetId, asset1: AssetId, reserves: Reserves, now: int) -> PairState:
        """Register a new pair (Unknown -> Active)."""
        pair_id = compute_pair_id(asset0, asset1)
        if pair_id in self._pairs:
            raise ValueError(f"pair already exists: {pair_id}")
        check_reserves(reserves)
        pair = PairState(
            pair_id=pair_id,
            asset0=asset0,
            asset1=asset1,
            reserves=reserves,
            last_update_time=now,
        )
        self._pairs[pair_id] = pair
        return pair

    def update_pair(self, pair_id: PairId, reserves: Reserves, now: int) -> PairState:
        """
        Accumulate the oracle over the elapsed interval, then write new reserves.

        Raises:
            PairNotFound: unknown pair
            Overflow: a reserve does not fit in uint128
            MinimumLiquidity: a reserve would be zero
        """
        pair = self.require(pair_id)
        cumulative = accumulate(
            pair.price_cumulative,
            total_reserve0=pair.reserves.side_total(0),
            total_reserve1=pair.reserves.side_total(1),
            last_update_time=pair.last_update_time,
            now=now,
        )
        check_reserves(reserves)
        updated = replace(
            pair,
            reserves=reserves,
            last_update_time=max(now, pair.last_update_time),
            price_cumulative=cumulative,
        )
        self._pairs[pair_id] = updated
        return updated

    def __len__(self) -> int:
        return len(self._pairs)

    def snapshot(self) -> Dict[PairId, PairState]:
        # PairState is frozen, so a shallow copy is a full checkpoint.
        return dict(self._pairs)

    def restore(self, snapshot: Dict[PairId, PairState]) -> None:
        self._pairs = dict(snapshot)

    def __repr__(self) -> str:
        return f"PairTable({len(self._pairs)} pairs)"


def check_reserves(reserves: Reserves) -> None:
    """Fail unless every bucket is strictly positive and fits in uint128."""
    for bucket in Bucket:
        name = f"reserve {bucket.name.lower()}"
        value = reserves.get(bucket)
        if value <= 0:
            raise MinimumLiquidity(f"{name} would be {value}")
        to_uint128(name, value)
