# [TESTER] v1

from __future__ import annotations

import pytest

from src.core.errors import (
    MinimumLiquidity,
    OrderError,
    Overflow,
    PairNotFound,
    PaymentUnderpaid,
    SelfRecipient,
    ZeroAmount,
)
from src.core.events import Burn, EventKind, Mint, PairCreated, Rebalance
from src.core.precision_math import MAX_UINT128
from src.state.lp import LPPosition


def test_bootstrap_deposit_creates_pair(engine, alice) -> None:
    funded = engine.balances.get("alice", "A")
    pair_id, *minted = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)

    assert pair_id == engine.get_pair_id("A", "B")
    assert minted == [1_000_000] * 4
    assert engine.get_reserves(pair_id) == (2000, 2000, 2000, 2000)
    assert engine.lp.balance_of("alice", pair_id) == LPPosition(*minted)
    assert engine.tracked_balance("A") == 4000
    assert engine.tracked_balance("B") == 4000
    assert engine.balances.get("alice", "A") == funded - 4000
    assert alice.calls == [("provide_assets", "quadswap", ("A", "B"), (4000, 4000))]

    pair = engine.get_pair(pair_id)
    assert pair is not None
    assert pair.last_update_time == 1_000
    assert pair.price_cumulative == 0

    kinds = [r.kind for r in engine.events.history]
    assert kinds == [EventKind.PAIR_CREATED, EventKind.MINT]
    created, mint = engine.events.history
    assert created == PairCreated(actor="alice", to="alice", pair_id=pair_id, asset0="A", asset1="B")
    assert mint == Mint(actor="alice", to="alice", pair_id=pair_id, liquidity=LPPosition(*minted))


def test_deposit_into_existing_pair_is_per_bucket(engine, alice, bob) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 1000, 1000, 1000, 1000)
    _, l0, s0, l1, s1 = engine.deposit(bob, "bob", "A", "B", 2000, 0, 0, 0)

    assert (l0, s0, l1, s1) == (2_000_000, 0, 0, 0)
    assert engine.get_reserves(pair_id) == (3000, 1000, 1000, 1000)
    assert engine.lp.total_supply(pair_id) == LPPosition(3_000_000, 1_000_000, 1_000_000, 1_000_000)
    assert engine.lp.verify_supply_conservation()


def test_deposit_validation(engine, alice, state_of) -> None:
    with pytest.raises(OrderError):
        engine.deposit(alice, "alice", "B", "A", 2000, 2000, 2000, 2000)
    with pytest.raises(SelfRecipient):
        engine.deposit(alice, "quadswap", "A", "B", 2000, 2000, 2000, 2000)
    with pytest.raises(MinimumLiquidity):
        engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 999)

    engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    before = state_of(engine)
    with pytest.raises(ZeroAmount):
        engine.deposit(alice, "alice", "A", "B", 0, 0, 0, 0)
    with pytest.raises(Overflow):
        engine.deposit(alice, "alice", "A", "B", MAX_UINT128, 0, 0, 0)
    assert state_of(engine) == before


def test_underpaid_deposit_rolls_back(engine, alice, state_of) -> None:
    before = state_of(engine)
    alice.shortfall = 1
    with pytest.raises(PaymentUnderpaid) as info:
        engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    assert info.value.owed == 4000
    assert info.value.received == 3999
    assert state_of(engine) == before
    assert engine.get_pair(engine.get_pair_id("A", "B")) is None


def test_withdraw_of_one_unit_pays_nothing(engine, alice) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 1000, 1000, 1000, 1000)

    assert engine.withdraw(alice, "alice", "A", "B", 1, 0, 0, 0) == (pair_id, 0, 0)
    assert engine.lp.total_supply(pair_id).long0 == 999_999
    assert engine.lp.balance_of("quadswap-protocol", pair_id).is_zero()
    assert engine.get_reserves(pair_id) == (1000, 1000, 1000, 1000)

    last = engine.events.history[-1]
    assert isinstance(last, Burn)
    assert last.liquidity == LPPosition(long0=1)
    assert (last.amount0, last.amount1) == (0, 0)


def test_withdraw_charges_fee_and_mints_protocol_share(engine, alice) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)

    assert engine.withdraw(alice, "carol", "A", "B", 500_000, 0, 0, 0) == (pair_id, 997, 0)

    assert engine.get_reserves(pair_id) == (1003, 2000, 2000, 2000)
    assert engine.lp.balance_of("alice", pair_id) == LPPosition(500_000, 1_000_000, 1_000_000, 1_000_000)
    assert engine.lp.balance_of("quadswap-protocol", pair_id) == LPPosition(long0=300)
    assert engine.lp.total_supply(pair_id).long0 == 500_300
    assert engine.balances.get("carol", "A") == 997
    assert engine.tracked_balance("A") == 3003
    assert engine.surplus("A") == 0

    burn, protocol = engine.events.history[-2:]
    assert isinstance(burn, Burn) and burn.to == "carol"
    assert protocol == Mint(
        actor="alice", to="quadswap-protocol", pair_id=pair_id, liquidity=LPPosition(long0=300)
    )


def test_withdraw_of_whole_bucket_leaves_fee_in_reserve(engine, alice) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    _, amount0, amount1 = engine.withdraw(alice, "alice", "A", "B", 0, 0, 0, 1_000_000)

    # fee 3000, out floor(997000 * 2000 / 1e6)
    assert (amount0, amount1) == (0, 1994)
    assert engine.get_reserves(pair_id)[3] == 6
    assert engine.lp.total_supply(pair_id).short1 == 600


def test_withdraw_validation(engine, alice, state_of) -> None:
    with pytest.raises(PairNotFound):
        engine.withdraw(alice, "alice", "A", "B", 1, 0, 0, 0)
    engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    before = state_of(engine)
    with pytest.raises(ZeroAmount):
        engine.withdraw(alice, "alice", "A", "B", 0, 0, 0, 0)
    with pytest.raises(OrderError):
        engine.withdraw(alice, "alice", "B", "A", 1, 0, 0, 0)

    alice.burn_shortfall = 1
    with pytest.raises(PaymentUnderpaid):
        engine.withdraw(alice, "alice", "A", "B", 10_000, 0, 0, 0)
    assert state_of(engine) == before


def test_rebalance_long_to_short(engine, alice) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)

    assert engine.rebalance(alice, "alice", "A", "B", True, 250_000, False, 0) == (pair_id, 250_000, 0)
    assert engine.get_reserves(pair_id) == (1500, 2500, 2000, 2000)
    assert engine.lp.balance_of("alice", pair_id) == LPPosition(750_000, 1_250_000, 1_000_000, 1_000_000)

    record = engine.events.history[-1]
    assert record == Rebalance(
        actor="alice",
        to="alice",
        pair_id=pair_id,
        liquidity_in=LPPosition(long0=250_000),
        liquidity_out=LPPosition(short0=250_000),
    )


def test_rebalance_both_sides(engine, alice) -> None:
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)

    assert engine.rebalance(alice, "bob", "A", "B", True, 250_000, False, 100_000) == (pair_id, 250_000, 100_000)
    assert engine.get_reserves(pair_id) == (1500, 2500, 2200, 1800)
    assert engine.lp.balance_of("bob", pair_id) == LPPosition(short0=250_000, long1=100_000)
    assert engine.lp.verify_supply_conservation()
    # Asset totals do not move.
    assert engine.tracked_balance("A") == 4000
    assert engine.tracked_balance("B") == 4000


def test_rebalance_validation(engine, alice, state_of) -> None:
    with pytest.raises(PairNotFound):
        engine.rebalance(alice, "alice", "A", "B", True, 1, True, 0)
    engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    before = state_of(engine)
    with pytest.raises(ZeroAmount):
        engine.rebalance(alice, "alice", "A", "B", True, 0, True, 0)
    with pytest.raises(MinimumLiquidity):
        engine.rebalance(alice, "alice", "A", "B", True, 1_000_000, True, 0)
    assert state_of(engine) == before


def _drain_long0_supply(engine, alice) -> str:
    """Leave long0 with a positive reserve and no LP holders."""
    pair_id, *_ = engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)
    engine.rebalance(alice, "alice", "A", "B", True, 999_999, False, 0)
    # fee 1 >= liq 1, protocol share rounds to zero
    engine.withdraw(alice, "alice", "A", "B", 1, 0, 0, 0)
    assert engine.lp.total_supply(pair_id).long0 == 0
    assert engine.get_reserves(pair_id)[0] == 1
    return pair_id


def test_deposit_into_bucket_without_supply_is_rejected(engine, alice, bob, state_of) -> None:
    _drain_long0_supply(engine, alice)
    before = state_of(engine)

    with pytest.raises(ZeroAmount):
        engine.deposit(bob, "bob", "A", "B", 10**6, 0, 0, 0)
    assert state_of(engine) == before


def test_rebalance_into_bucket_without_supply_is_rejected(engine, alice, state_of) -> None:
    _drain_long0_supply(engine, alice)
    before = state_of(engine)

    with pytest.raises(ZeroAmount):
        engine.rebalance(alice, "alice", "A", "B", False, 1000, False, 0)
    assert state_of(engine) == before
