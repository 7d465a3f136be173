"""
Request-then-verify payment protocol.

The engine never pulls funds itself. It tells the caller's handler what is
owed, lets the handler settle it however it likes, and then checks the
observable effect:

1. snapshot the engine's asset balances (or the pair's LP total supply),
2. call the handler synchronously,
3. require `after - before >= owed` for every item.
"""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ..state.balances import Address, Amount, AssetId, BalanceTable
from ..state.lp import LPPosition, LPTable
from ..state.pairs import Bucket, PairId
from .errors import PaymentUnderpaid


@runtime_checkable
class PaymentHandler(Protocol):
    """Caller-side collaborator invoked while an engine call is in progress."""

    address: Address

    def provide_assets(self, to: Address, assets: Sequence[AssetId], amounts: Sequence[Amount]) -> None:
        """Deliver `amounts[i]` of `assets[i]` to `to` before returning."""
        ...

    def burn_lp_position(
        self,
        to: Address,
        pair_id: PairId,
        long0: Amount,
        short0: Amount,
        long1: Amount,
        short1: Amount,
    ) -> None:
        """Burn the given LP components of `pair_id` before returning."""
        ...


class PaymentVerifier:
    """Runs the payment protocol against the engine's view of the ledgers."""

    def __init__(self, *, address: Address, balances: BalanceTable, lp: LPTable) -> None:
        self._address = address
        self._balances = balances
        self._lp = lp

    def snapshot_assets(self, assets: Sequence[AssetId]) -> List[Amount]:
        return [self._balances.get(self._address, asset) for asset in assets]

    def require_assets(
        self,
        handler: PaymentHandler,
        assets: Sequence[AssetId],
        amounts: Sequence[Amount],
        *,
        before: Optional[Sequence[Amount]] = None,
    ) -> None:
        """
        Ask `handler` for `amounts` of `assets` and verify delivery.

        `before` overrides the snapshot when the caller took it earlier (for
        instance before paying out a flash loan or running swap hops).
        """
        if before is None:
            before = self.snapshot_assets(assets)
        handler.provide_assets(self._address, list(assets), list(amounts))
        after = self.snapshot_assets(assets)
        for asset, owed, b, a in zip(assets, amounts, before, after):
            received = a - b
            if received < owed:
                raise PaymentUnderpaid(f"asset {asset}", owed, received)

    def require_burn(self, handler: PaymentHandler, pair_id: PairId, position: LPPosition) -> LPPosition:
        """
        Ask `handler` to burn `position` and verify total supply fell by at least that much.

        Returns the pre-burn total supply.
        """
        before = self._lp.total_supply(pair_id)
        handler.burn_lp_position(self._address, pair_id, *position.as_tuple())
        after = self._lp.total_supply(pair_id)
        for bucket in Bucket:
            owed = position.get(bucket)
            burned = before.get(bucket) - after.get(bucket)
            if burned < owed:
                raise PaymentUnderpaid(f"lp {bucket.name.lower()} of {pair_id}", owed, burned)
        return before
