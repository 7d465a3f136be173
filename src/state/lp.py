"""
LP position ledger for QuadSwap pairs.

Positions are scoped per pair_id and carry one component per bucket. The
engine only mints, burns and reads; transfers and operator approvals exist so
holders can let a payment handler burn on their behalf.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from .balances import Address, Amount
from .pairs import Bucket, PairId


@dataclass(frozen=True)
class LPPosition:
    """Four LP components: claims on long0, short0, long1, short1."""

    long0: Amount = 0
    short0: Amount = 0
    long1: Amount = 0
    short1: Amount = 0

    def __post_init__(self) -> None:
        for name, v in zip(("long0", "short0", "long1", "short1"), self.as_tuple()):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @classmethod
    def single(cls, bucket: Bucket, amount: Amount) -> "LPPosition":
        values = [0, 0, 0, 0]
        values[bucket] = amount
        return cls(*values)

    def get(self, bucket: Bucket) -> Amount:
        return self.as_tuple()[bucket]

    def as_tuple(self) -> Tuple[Amount, Amount, Amount, Amount]:
        return (self.long0, self.short0, self.long1, self.short1)

    def is_zero(self) -> bool:
        return not any(self.as_tuple())

    def __add__(self, other: "LPPosition") -> "LPPosition":
        return LPPosition(*(a + b for a, b in zip(self.as_tuple(), other.as_tuple())))

    def __sub__(self, other: "LPPosition") -> "LPPosition":
        # Raises ValueError through __post_init__ if any component goes negative.
        return LPPosition(*(a - b for a, b in zip(self.as_tuple(), other.as_tuple())))


_ZERO = LPPosition()


class LPTable:
    """
    LP ledger mapping (holder, pair_id) -> LPPosition, with per-pair total supply.

    Notes:
    - Components are always non-negative.
    - Zero positions are omitted to keep the table sparse.
    - For every pair and bucket, the sum of holder balances equals total supply.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Address, PairId], LPPosition] = {}
        self._supply: Dict[PairId, LPPosition] = {}
        self._operators: Dict[Tuple[Address, Address], bool] = {}

    def balance_of(self, holder: Address, pair_id: PairId) -> LPPosition:
        """Get LP position for (holder, pair_id). Returns zeros if not found."""
        return self._balances.get((holder, pair_id), _ZERO)

    def total_supply(self, pair_id: PairId) -> LPPosition:
        return self._supply.get(pair_id, _ZERO)

    def is_operator(self, owner: Address, operator: Address) -> bool:
        return owner == operator or self._operators.get((owner, operator), False)

    def set_operator(self, owner: Address, operator: Address, approved: bool) -> None:
        """Allow (or revoke) `operator` to burn and transfer `owner`'s positions."""
        if approved:
            self._operators[(owner, operator)] = True
        else:
            self._operators.pop((owner, operator), None)

    def mint(self, holder: Address, pair_id: PairId, amounts: LPPosition) -> None:
        """Credit `amounts` to holder and to total supply."""
        if amounts.is_zero():
            return
        self._set(holder, pair_id, self.balance_of(holder, pair_id) + amounts)
        self._supply[pair_id] = self.total_supply(pair_id) + amounts

    def burn(self, operator: Address, holder: Address, pair_id: PairId, amounts: LPPosition) -> None:
        """
        Destroy `amounts` of holder's position.

        Raises:
            PermissionError: If operator may not act for holder
            ValueError: If any component exceeds the holder's balance
        """
        self._require_operator(holder, operator)
        current = self.balance_of(holder, pair_id)
        try:
            remaining = current - amounts
        except ValueError as exc:
            raise ValueError(
                f"Insufficient LP balance: {current.as_tuple()} - {amounts.as_tuple()}"
            ) from exc
        self._set(holder, pair_id, remaining)
        self._supply[pair_id] = self.total_supply(pair_id) - amounts

    def transfer(
        self,
        operator: Address,
        sender: Address,
        recipient: Address,
        pair_id: PairId,
        amounts: LPPosition,
    ) -> None:
        """Move LP components between holders; total supply is unchanged."""
        self._require_operator(sender, operator)
        current = self.balance_of(sender, pair_id)
        try:
            remaining = current - amounts
        except ValueError as exc:
            raise ValueError(
                f"Insufficient LP balance: {current.as_tuple()} - {amounts.as_tuple()}"
            ) from exc
        self._set(sender, pair_id, remaining)
        self._set(recipient, pair_id, self.balance_of(recipient, pair_id) + amounts)

    def verify_supply_conservation(self) -> bool:
        """Check that holder balances sum to total supply for every pair and bucket."""
        sums: Dict[PairId, LPPosition] = {}
        for (_holder, pair_id), position in self._balances.items():
            sums[pair_id] = sums.get(pair_id, _ZERO) + position
        pair_ids = set(sums) | set(self._supply)
        return all(sums.get(p, _ZERO) == self._supply.get(p, _ZERO) for p in pair_ids)

    def snapshot(self) -> Tuple[dict, dict, dict]:
        return dict(self._balances), dict(self._supply), dict(self._operators)

    def restore(self, snapshot: Tuple[dict, dict, dict]) -> None:
        balances, supply, operators = snapshot
        self._balances = dict(balances)
        self._supply = dict(supply)
        self._operators = dict(operators)

    def _require_operator(self, owner: Address, operator: Address) -> None:
        if not self.is_operator(owner, operator):
            raise PermissionError(f"{operator} is not an operator for {owner}")

    def _set(self, holder: Address, pair_id: PairId, position: LPPosition) -> None:
        if position.is_zero():
            self._balances.pop((holder, pair_id), None)
        else:
            self._balances[(holder, pair_id)] = position

    def __repr__(self) -> str:
        return f"LPTable({len(self._balances)} positions, {len(self._supply)} pairs)"
