"""
Records of engine state transitions.

Records raised during a call are buffered and only published once the call
commits; a rolled-back call publishes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from ..state.lp import LPPosition


class EventKind(Enum):
    PAIR_CREATED = "PairCreated"
    MINT = "Mint"
    BURN = "Burn"
    SWAP = "Swap"
    REBALANCE = "Rebalance"
    FLASH_BORROW = "FlashBorrow"


@dataclass(frozen=True)
class PairCreated:
    actor: str
    to: str
    pair_id: str
    asset0: str
    asset1: str
    kind: EventKind = EventKind.PAIR_CREATED


@dataclass(frozen=True)
class Mint:
    actor: str
    to: str
    pair_id: str
    liquidity: LPPosition
    kind: EventKind = EventKind.MINT


@dataclass(frozen=True)
class Burn:
    actor: str
    to: str
    pair_id: str
    liquidity: LPPosition
    amount0: int
    amount1: int
    kind: EventKind = EventKind.BURN


@dataclass(frozen=True)
class Swap:
    actor: str
    to: str
    pair_id: str
    asset_in: str
    asset_out: str
    amount_in: int
    amount_out: int
    fee_in: int
    fee_out: int
    kind: EventKind = EventKind.SWAP


@dataclass(frozen=True)
class Rebalance:
    actor: str
    to: str
    pair_id: str
    liquidity_in: LPPosition
    liquidity_out: LPPosition
    kind: EventKind = EventKind.REBALANCE


@dataclass(frozen=True)
class FlashBorrow:
    actor: str
    to: str
    assets: Tuple[str, ...]
    amounts: Tuple[int, ...]
    fees: Tuple[int, ...]
    kind: EventKind = EventKind.FLASH_BORROW


Record = PairCreated | Mint | Burn | Swap | Rebalance | FlashBorrow
Subscriber = Callable[[Record], None]


class EventLog:
    """Committed record history plus a pub/sub bus keyed by `EventKind`."""

    def __init__(self) -> None:
        self._history: List[Record] = []
        self._pending: List[Record] = []
        self._subscribers: Dict[Optional[EventKind], List[Subscriber]] = {}

    def subscribe(self, fn: Subscriber, kind: Optional[EventKind] = None) -> None:
        """Call `fn` for each committed record (of `kind`, or of every kind if None)."""
        fns = self._subscribers.setdefault(kind, [])
        if fn not in fns:
            fns.append(fn)

    def unsubscribe(self, fn: Subscriber, kind: Optional[EventKind] = None) -> None:
        fns = self._subscribers.get(kind, [])
        if fn in fns:
            fns.remove(fn)

    def emit(self, record: Record) -> None:
        self._pending.append(record)

    def commit(self) -> None:
        """Publish buffered records in emission order."""
        pending, self._pending = self._pending, []
        for record in pending:
            self._history.append(record)
            for fn in self._subscribers.get(None, []) + self._subscribers.get(record.kind, []):
                fn(record)

    def discard(self) -> None:
        self._pending = []

    @property
    def history(self) -> Tuple[Record, ...]:
        return tuple(self._history)

    def of_kind(self, kind: EventKind) -> List[Record]:
        return [r for r in self._history if r.kind == kind]

    def __len__(self) -> int:
        return len(self._history)
