"""
QuadSwap market engine (imperative shell).

Wires the pure kernels to the state tables:
- `deposit` / `withdraw` issue and redeem four-bucket LP positions,
- `swap` routes an exact-in amount along a path of pairs,
- `flash_borrow` lends assets that must be repaid with a fee in the same call,
- `rebalance` converts a holder's long position into short (or back) in place.

Every mutating operation runs under a call guard: re-entry is rejected, and
any exception restores all tables to their state at entry before it
propagates. Records are published only after the call commits.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple

from structlog import get_logger

from ..state.balances import Address, Amount, AssetId, BalanceTable, TrackedBalances
from ..state.lp import LPPosition, LPTable
from ..state.pairs import Bucket, PairId, PairState, PairTable, Reserves, check_reserves, compute_pair_id
from .config import EngineConfig
from .errors import (
    DuplicateAsset,
    InvalidPath,
    LengthMismatch,
    Reentrancy,
    SelfRecipient,
    ValidationError,
    ZeroAmount,
)
from .events import Burn, EventLog, FlashBorrow, Mint, PairCreated, Rebalance, Swap
from .liquidity import bootstrap_mint, proportional_mint, rebalance_leg, redeem
from .oracle import PRICE_SCALE
from .payment import PaymentHandler, PaymentVerifier
from .precision_math import full_mul_div_up, to_uint128
from .swap import HopResult, swap_hop

logger = get_logger()


def _require_amount(name: str, value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{name} must be an int")
    if value < 0:
        raise ValidationError(f"{name} must be non-negative: {value}")
    return value


class MarketEngine:
    """Four-bucket AMM over in-memory asset and LP ledgers."""

    def __init__(
        self,
        *,
        balances: BalanceTable,
        config: Optional[EngineConfig] = None,
        lp: Optional[LPTable] = None,
        pairs: Optional[PairTable] = None,
    ) -> None:
        self.config = config if config is not None else EngineConfig()
        self.address: Address = self.config.address
        self.balances = balances
        self.lp = lp if lp is not None else LPTable()
        self.pairs = pairs if pairs is not None else PairTable()
        self.tracked = TrackedBalances()
        self.events = EventLog()
        self._payments = PaymentVerifier(address=self.address, balances=self.balances, lp=self.lp)
        self._busy = False
        self._log = logger.new(engine=self.address)

    # -- Read surface ----------------------------------------------------------

    def get_pair_id(self, asset0: AssetId, asset1: AssetId) -> PairId:
        return compute_pair_id(asset0, asset1)

    def get_reserves(self, pair_id: PairId) -> Tuple[Amount, Amount, Amount, Amount]:
        return self.pairs.get_reserves(pair_id)

    def get_pair(self, pair_id: PairId) -> Optional[PairState]:
        return self.pairs.get(pair_id)

    def tracked_balance(self, asset: AssetId) -> Amount:
        return self.tracked.get(asset)

    def surplus(self, asset: AssetId) -> int:
        """Observable engine balance not accounted for by the tracked balance."""
        return self.balances.get(self.address, asset) - self.tracked.get(asset)

    @property
    def busy(self) -> bool:
        return self._busy

    def quote_swap(self, path: Sequence[AssetId], amount_in: Amount) -> List[HopResult]:
        """Simulate `swap` hop by hop without touching state."""
        path = self._check_path(path, amount_in)
        scratch = {}
        hops: List[HopResult] = []
        amount = amount_in
        for asset_in, asset_out in zip(path, path[1:]):
            pair, side_in = self._resolve_hop(asset_in, asset_out)
            reserves = scratch.get(pair.pair_id, pair.reserves)
            hop = self._hop(reserves, side_in, amount)
            check_reserves(hop.reserves_after)
            scratch[pair.pair_id] = hop.reserves_after
            hops.append(hop)
            amount = hop.amount_out
        return hops

    # -- Mutating surface ------------------------------------------------------

    def deposit(
        self,
        caller: PaymentHandler,
        to: Address,
        asset0: AssetId,
        asset1: AssetId,
        long0: Amount,
        short0: Amount,
        long1: Amount,
        short1: Amount,
    ) -> Tuple[PairId, Amount, Amount, Amount, Amount]:
        """
        Deposit into the four buckets of (asset0, asset1), creating the pair if needed.

        Returns (pair_id, liq_long0, liq_short0, liq_long1, liq_short1).
        """
        with self._call("deposit", caller):
            pair_id = compute_pair_id(asset0, asset1)
            self._require_recipient(to)
            amounts = Reserves(
                _require_amount("long0", long0),
                _require_amount("short0", short0),
                _require_amount("long1", long1),
                _require_amount("short1", short1),
            )
            now = self._now()

            pair = self.pairs.get(pair_id)
            if pair is None:
                minted = bootstrap_mint(
                    amounts,
                    minimum_liquidity=self.config.minimum_liquidity,
                    bootstrap_liquidity=self.config.bootstrap_liquidity,
                )
                new_reserves = amounts
            else:
                if amounts.is_zero():
                    raise ZeroAmount("deposit of nothing")
                minted = proportional_mint(amounts, pair.reserves, self.lp.total_supply(pair_id))
                new_reserves = Reserves(*(r + a for r, a in zip(pair.reserves.as_tuple(), amounts.as_tuple())))
            for bucket in Bucket:
                to_uint128(f"reserve {bucket.name.lower()}", new_reserves.get(bucket))

            total0 = amounts.side_total(0)
            total1 = amounts.side_total(1)
            self._payments.require_assets(caller, [asset0, asset1], [total0, total1])

            if pair is None:
                self.pairs.create(asset0, asset1, new_reserves, now)
                self.events.emit(
                    PairCreated(actor=caller.address, to=to, pair_id=pair_id, asset0=asset0, asset1=asset1)
                )
            else:
                self.pairs.update_pair(pair_id, new_reserves, now)
            self.tracked.add(asset0, total0)
            self.tracked.add(asset1, total1)

            self.lp.mint(to, pair_id, minted)
            if not minted.is_zero():
                self.events.emit(Mint(actor=caller.address, to=to, pair_id=pair_id, liquidity=minted))
            self._log.debug(
                "deposit",
                pair_id=pair_id,
                created=pair is None,
                amounts=amounts.as_tuple(),
                minted=minted.as_tuple(),
            )
        return (pair_id, *minted.as_tuple())

    def withdraw(
        self,
        caller: PaymentHandler,
        to: Address,
        asset0: AssetId,
        asset1: AssetId,
        liq_long0: Amount,
        liq_short0: Amount,
        liq_long1: Amount,
        liq_short1: Amount,
    ) -> Tuple[PairId, Amount, Amount]:
        """
        Redeem LP units for the underlying assets, less the withdrawal fee.

        Returns (pair_id, amount0, amount1).
        """
        with self._call("withdraw", caller):
            pair_id = compute_pair_id(asset0, asset1)
            self.pairs.require(pair_id)
            liquidity = LPPosition(
                _require_amount("liq_long0", liq_long0),
                _require_amount("liq_short0", liq_short0),
                _require_amount("liq_long1", liq_long1),
                _require_amount("liq_short1", liq_short1),
            )
            if liquidity.is_zero():
                raise ZeroAmount("withdrawal of nothing")
            now = self._now()

            supply = self._payments.require_burn(caller, pair_id, liquidity)
            pair = self.pairs.require(pair_id)
            result = redeem(
                liquidity,
                pair.reserves,
                supply,
                fee_num=self.config.withdraw_fee_num,
                fee_den=self.config.fee_den,
                protocol_share_num=self.config.protocol_share_num,
                protocol_share_den=self.config.protocol_share_den,
            )

            self.pairs.update_pair(pair_id, result.reserves_after, now)
            self.lp.mint(self.config.protocol_address, pair_id, result.protocol_mint)
            self.tracked.add(asset0, -result.amount0)
            self.tracked.add(asset1, -result.amount1)
            self.balances.transfer(self.address, to, asset0, result.amount0)
            self.balances.transfer(self.address, to, asset1, result.amount1)

            self.events.emit(
                Burn(
                    actor=caller.address,
                    to=to,
                    pair_id=pair_id,
                    liquidity=liquidity,
                    amount0=result.amount0,
                    amount1=result.amount1,
                )
            )
            if not result.protocol_mint.is_zero():
                self.events.emit(
                    Mint(
                        actor=caller.address,
                        to=self.config.protocol_address,
                        pair_id=pair_id,
                        liquidity=result.protocol_mint,
                    )
                )
            self._log.debug(
                "withdraw",
                pair_id=pair_id,
                burned=liquidity.as_tuple(),
                fees=result.fees.as_tuple(),
                amount0=result.amount0,
                amount1=result.amount1,
            )
        return pair_id, result.amount0, result.amount1

    def swap(self, caller: PaymentHandler, to: Address, path: Sequence[AssetId], amount_in: Amount) -> Amount:
        """
        Exact-in swap along `path`; hops execute left to right, each one
        committing before the next reads.

        Returns the amount of `path[-1]` paid to `to`.
        """
        with self._call("swap", caller):
            path = self._check_path(path, amount_in)
            self._require_recipient(to)
            now = self._now()
            before = self._payments.snapshot_assets([path[0]])

            amount = amount_in
            for asset_in, asset_out in zip(path, path[1:]):
                pair, side_in = self._resolve_hop(asset_in, asset_out)
                hop = self._hop(pair.reserves, side_in, amount)
                self.pairs.update_pair(pair.pair_id, hop.reserves_after, now)
                self.tracked.add(asset_in, amount)
                self.tracked.add(asset_out, -hop.amount_out)
                self.events.emit(
                    Swap(
                        actor=caller.address,
                        to=to,
                        pair_id=pair.pair_id,
                        asset_in=asset_in,
                        asset_out=asset_out,
                        amount_in=amount,
                        amount_out=hop.amount_out,
                        fee_in=hop.fee_in if hop.fee_in_applied else 0,
                        fee_out=hop.fee_out,
                    )
                )
                if not hop.fee_in_applied:
                    self._log.info(
                        "swap input fee skipped",
                        pair_id=pair.pair_id,
                        asset_in=asset_in,
                        fee_in=hop.fee_in,
                    )
                amount = hop.amount_out

            self._payments.require_assets(caller, [path[0]], [amount_in], before=before)
            self.balances.transfer(self.address, to, path[-1], amount)
            self._log.debug("swap", path=path, amount_in=amount_in, amount_out=amount)
        return amount

    def flash_borrow(
        self,
        caller: PaymentHandler,
        to: Address,
        assets: Sequence[AssetId],
        amounts: Sequence[Amount],
    ) -> None:
        """Lend `amounts` of `assets` to `to`; the caller must repay each plus the flash fee."""
        with self._call("flash_borrow", caller):
            assets = list(assets)
            amounts = list(amounts)
            if len(assets) != len(amounts):
                raise LengthMismatch(f"{len(assets)} assets but {len(amounts)} amounts")
            if not assets:
                raise ZeroAmount("flash borrow of nothing")
            if len(set(assets)) != len(assets):
                raise DuplicateAsset(f"flash borrow repeats an asset: {assets}")
            for asset, amount in zip(assets, amounts):
                if _require_amount(f"amount of {asset}", amount) == 0:
                    raise ZeroAmount(f"flash borrow of zero {asset}")

            fees = [full_mul_div_up(a, self.config.flash_fee_num, self.config.fee_den) for a in amounts]
            for asset, amount in zip(assets, amounts):
                self.balances.transfer(self.address, to, asset, amount)

            before = self._payments.snapshot_assets(assets)
            owed = [a + f for a, f in zip(amounts, fees)]
            self._payments.require_assets(caller, assets, owed, before=before)
            for asset, fee in zip(assets, fees):
                self.tracked.add(asset, fee)

            self.events.emit(
                FlashBorrow(
                    actor=caller.address,
                    to=to,
                    assets=tuple(assets),
                    amounts=tuple(amounts),
                    fees=tuple(fees),
                )
            )
            self._log.debug("flash_borrow", assets=assets, amounts=amounts, fees=fees)

    def rebalance(
        self,
        caller: PaymentHandler,
        to: Address,
        asset0: AssetId,
        asset1: AssetId,
        long_to_short0: bool,
        liquidity0: Amount,
        long_to_short1: bool,
        liquidity1: Amount,
    ) -> Tuple[PairId, Amount, Amount]:
        """
        Convert LP between the long and short bucket of each asset.

        `long_to_short0` picks the direction for asset0 (True: long -> short),
        `liquidity0` is the quantity of source LP to convert; likewise for asset1.
        Returns (pair_id, minted0, minted1) in the destination buckets.
        """
        with self._call("rebalance", caller):
            pair_id = compute_pair_id(asset0, asset1)
            self.pairs.require(pair_id)
            _require_amount("liquidity0", liquidity0)
            _require_amount("liquidity1", liquidity1)
            if liquidity0 == 0 and liquidity1 == 0:
                raise ZeroAmount("rebalance of nothing")
            now = self._now()

            sources = (
                (0, Bucket.of(0, bool(long_to_short0)), liquidity0),
                (1, Bucket.of(1, bool(long_to_short1)), liquidity1),
            )
            burned = LPPosition()
            for _side, source, liq in sources:
                burned = burned + LPPosition.single(source, liq)
            supply = self._payments.require_burn(caller, pair_id, burned)

            reserves = self.pairs.require(pair_id).reserves
            minted = LPPosition()
            out = [0, 0]
            for side, source, liq in sources:
                if liq == 0:
                    continue
                leg, reserves = rebalance_leg(reserves, supply, source=source, liquidity_in=liq, scale=PRICE_SCALE)
                minted = minted + LPPosition.single(source.opposite(), leg.liquidity_out)
                out[side] = leg.liquidity_out

            self.pairs.update_pair(pair_id, reserves, now)
            self.lp.mint(to, pair_id, minted)
            self.events.emit(
                Rebalance(
                    actor=caller.address,
                    to=to,
                    pair_id=pair_id,
                    liquidity_in=burned,
                    liquidity_out=minted,
                )
            )
            self._log.debug("rebalance", pair_id=pair_id, burned=burned.as_tuple(), minted=minted.as_tuple())
        return pair_id, out[0], out[1]

    # -- Internals -------------------------------------------------------------

    @contextmanager
    def _call(self, op: str, caller: PaymentHandler) -> Iterator[None]:
        if self._busy:
            raise Reentrancy(f"{op} called while another engine call is in progress")
        self._busy = True
        checkpoint = (
            self.pairs.snapshot(),
            self.tracked.snapshot(),
            self.lp.snapshot(),
            self.balances.snapshot(),
        )
        try:
            yield
        except Exception as exc:
            pairs, tracked, lp, balances = checkpoint
            self.pairs.restore(pairs)
            self.tracked.restore(tracked)
            self.lp.restore(lp)
            self.balances.restore(balances)
            self.events.discard()
            self._log.info("call rolled back", op=op, actor=caller.address, error=type(exc).__name__)
            raise
        finally:
            self._busy = False
        self.events.commit()

    def _now(self) -> int:
        return int(self.config.clock())

    def _require_recipient(self, to: Address) -> None:
        if to == self.address:
            raise SelfRecipient("recipient must not be the engine")

    def _check_path(self, path: Sequence[AssetId], amount_in: Amount) -> List[AssetId]:
        path = list(path)
        if len(path) < 2:
            raise InvalidPath(f"path needs at least two assets: {path}")
        if _require_amount("amount_in", amount_in) == 0:
            raise ZeroAmount("amount_in must be positive")
        return path

    def _resolve_hop(self, asset_in: AssetId, asset_out: AssetId) -> Tuple[PairState, int]:
        if asset_in == asset_out:
            raise InvalidPath(f"hop swaps {asset_in} for itself")
        asset0, asset1 = sorted((asset_in, asset_out))
        pair = self.pairs.require(compute_pair_id(asset0, asset1))
        return pair, pair.side_of(asset_in)

    def _hop(self, reserves: Reserves, side_in: int, amount: Amount) -> HopResult:
        return swap_hop(
            reserves,
            side_in=side_in,
            amount_in=amount,
            fee_num=self.config.swap_fee_num,
            fee_den=self.config.fee_den,
        )

    def __repr__(self) -> str:
        return f"MarketEngine(address={self.address!r}, pairs={len(self.pairs)})"
