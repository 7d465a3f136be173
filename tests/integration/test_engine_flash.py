# [TESTER] v1

from __future__ import annotations

import pytest

from src.core.errors import DuplicateAsset, LengthMismatch, PaymentUnderpaid, ValidationError, ZeroAmount
from src.core.events import FlashBorrow


@pytest.fixture
def funded_pair(engine, alice):
    return engine.deposit(alice, "alice", "A", "B", 2000, 2000, 2000, 2000)[0]


def test_flash_borrow_with_exact_repayment(engine, alice, funded_pair) -> None:
    alice_a = engine.balances.get("alice", "A")
    alice_b = engine.balances.get("alice", "B")

    engine.flash_borrow(alice, "alice", ["A", "B"], [1000, 2000])

    # Fees are ceil(amount / 1000).
    assert engine.balances.get("alice", "A") == alice_a - 1
    assert engine.balances.get("alice", "B") == alice_b - 2
    assert engine.tracked_balance("A") == 4001
    assert engine.tracked_balance("B") == 4002
    assert engine.surplus("A") == 0
    assert alice.calls[-1] == ("provide_assets", "quadswap", ("A", "B"), (1001, 2002))
    assert engine.events.history[-1] == FlashBorrow(
        actor="alice", to="alice", assets=("A", "B"), amounts=(1000, 2000), fees=(1, 2)
    )
    # Reserves are untouched.
    assert engine.get_reserves(funded_pair) == (2000, 2000, 2000, 2000)


def test_flash_fee_rounds_up(engine, alice, funded_pair) -> None:
    engine.flash_borrow(alice, "alice", ["A"], [1])
    assert engine.tracked_balance("A") == 4001


def test_flash_borrow_to_third_party(engine, alice, funded_pair) -> None:
    engine.flash_borrow(alice, "carol", ["A"], [500])
    assert engine.balances.get("carol", "A") == 500
    assert engine.balances.get("quadswap", "A") == 4001


def test_underpaid_flash_borrow_undoes_payout(engine, alice, funded_pair, state_of) -> None:
    before = state_of(engine)
    alice.shortfall = 1

    with pytest.raises(PaymentUnderpaid) as info:
        engine.flash_borrow(alice, "alice", ["A"], [1000])
    assert (info.value.owed, info.value.received) == (1001, 1000)
    assert state_of(engine) == before


@pytest.mark.parametrize(
    "assets, amounts, error",
    [
        (["A", "B"], [1], LengthMismatch),
        ([], [], ZeroAmount),
        (["A", "A"], [1, 1], DuplicateAsset),
        (["A"], [0], ZeroAmount),
        (["A"], [-1], ValidationError),
    ],
)
def test_flash_borrow_validation(engine, alice, funded_pair, assets, amounts, error) -> None:
    with pytest.raises(error):
        engine.flash_borrow(alice, "alice", assets, amounts)
