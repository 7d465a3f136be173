"""
Engine configuration.

`EngineConfig` is a frozen dataclass with safe defaults; deployments that
keep parameters in a file can load them with `load_config(path)` (YAML
mapping, unknown keys rejected).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from .liquidity import (
    BOOTSTRAP_LIQUIDITY,
    FEE_DEN,
    MINIMUM_LIQUIDITY,
    PROTOCOL_SHARE_DEN,
    PROTOCOL_SHARE_NUM,
    WITHDRAW_FEE_NUM,
)
from .swap import SWAP_FEE_NUM


def _wall_clock() -> int:
    return int(time.time())


@dataclass(frozen=True)
class EngineConfig:
    # Account the engine holds funds under in the asset ledger.
    address: str = "quadswap"
    # Holder of the protocol's share of withdrawal fees.
    protocol_address: str = "quadswap-protocol"

    # Fees are num / fee_den, rounded up.
    swap_fee_num: int = SWAP_FEE_NUM
    withdraw_fee_num: int = WITHDRAW_FEE_NUM
    flash_fee_num: int = 1
    fee_den: int = FEE_DEN
    # Share of each withdrawal fee (in LP units) re-minted to protocol_address.
    protocol_share_num: int = PROTOCOL_SHARE_NUM
    protocol_share_den: int = PROTOCOL_SHARE_DEN

    # Pair bootstrap.
    minimum_liquidity: int = MINIMUM_LIQUIDITY
    bootstrap_liquidity: int = BOOTSTRAP_LIQUIDITY

    # Integer-seconds clock used for the price accumulator.
    clock: Callable[[], int] = field(default=_wall_clock, compare=False)

    def __post_init__(self) -> None:
        for name in ("address", "protocol_address"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v:
                raise ValueError(f"{name} must be a non-empty string")
        if self.address == self.protocol_address:
            raise ValueError("protocol_address must differ from the engine address")
        for name in (
            "swap_fee_num",
            "withdraw_fee_num",
            "flash_fee_num",
            "fee_den",
            "protocol_share_num",
            "protocol_share_den",
            "minimum_liquidity",
            "bootstrap_liquidity",
        ):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool) or v < 0:
                raise ValueError(f"{name} must be a non-negative int, got {v!r}")
        if self.fee_den == 0 or self.protocol_share_den == 0:
            raise ValueError("fee denominators must be positive")
        for name in ("swap_fee_num", "withdraw_fee_num", "flash_fee_num"):
            if getattr(self, name) >= self.fee_den:
                raise ValueError(f"{name} must be below fee_den ({self.fee_den})")
        if self.protocol_share_num > self.protocol_share_den:
            raise ValueError("protocol share must not exceed 100%")
        if self.minimum_liquidity <= 0 or self.bootstrap_liquidity <= 0:
            raise ValueError("minimum_liquidity and bootstrap_liquidity must be positive")
        if not callable(self.clock):
            raise ValueError("clock must be callable")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], **overrides: Any) -> "EngineConfig":
        """Build a config from plain data; `clock` can only be passed as an override."""
        allowed = {f.name for f in fields(cls)} - {"clock"}
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**{**dict(data), **overrides})


def load_config(path: Path | str, **overrides: Any) -> EngineConfig:
    """Load an `EngineConfig` from a YAML file holding a single mapping."""
    obj = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if obj is None:
        obj = {}
    if not isinstance(obj, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return EngineConfig.from_mapping(obj, **overrides)
