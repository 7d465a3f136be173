# [TESTER] v1

from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import pytest

from src.core.config import EngineConfig
from src.core.engine import MarketEngine
from src.state.balances import BalanceTable
from src.state.lp import LPPosition

ASSETS = ("A", "B", "C")
FUNDING = 10**15


class FakeClock:
    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def advance(self, seconds: int) -> None:
        self.now += seconds

    def __call__(self) -> int:
        return self.now


class ScriptedHandler:
    """
    Payment handler that settles from its own ledger account.

    `shortfall` is withheld from every asset payment, `burn_shortfall` from
    every LP burn; `hook` runs inside the callback before settling.
    """

    def __init__(self, address: str, engine: MarketEngine) -> None:
        self.address = address
        self.engine = engine
        self.shortfall = 0
        self.burn_shortfall = 0
        self.hook: Optional[Callable[[], None]] = None
        self.calls: List[tuple] = []

    def provide_assets(self, to: str, assets: Sequence[str], amounts: Sequence[int]) -> None:
        self.calls.append(("provide_assets", to, tuple(assets), tuple(amounts)))
        if self.hook is not None:
            self.hook()
        for asset, amount in zip(assets, amounts):
            self.engine.balances.transfer(self.address, to, asset, max(amount - self.shortfall, 0))

    def burn_lp_position(
        self, to: str, pair_id: str, long0: int, short0: int, long1: int, short1: int
    ) -> None:
        self.calls.append(("burn_lp_position", to, pair_id, (long0, short0, long1, short1)))
        if self.hook is not None:
            self.hook()
        position = LPPosition(
            *(max(v - self.burn_shortfall, 0) for v in (long0, short0, long1, short1))
        )
        self.engine.lp.burn(self.address, self.address, pair_id, position)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def balances() -> BalanceTable:
    table = BalanceTable()
    for holder in ("alice", "bob"):
        for asset in ASSETS:
            table.set(holder, asset, FUNDING)
    return table


@pytest.fixture
def engine(balances: BalanceTable, clock: FakeClock) -> MarketEngine:
    return MarketEngine(balances=balances, config=EngineConfig(clock=clock))


@pytest.fixture
def alice(engine: MarketEngine) -> ScriptedHandler:
    return ScriptedHandler("alice", engine)


@pytest.fixture
def bob(engine: MarketEngine) -> ScriptedHandler:
    return ScriptedHandler("bob", engine)


def engine_state(engine: MarketEngine) -> tuple:
    """Everything a rolled-back call must leave untouched."""
    return (
        engine.pairs.snapshot(),
        engine.tracked.snapshot(),
        engine.lp.snapshot(),
        engine.balances.snapshot(),
        engine.events.history,
    )


@pytest.fixture
def state_of() -> Callable[[MarketEngine], tuple]:
    return engine_state


@pytest.fixture
def make_handler() -> Callable[[str, MarketEngine], ScriptedHandler]:
    return ScriptedHandler
