"""
Deployment file schema.

A deployment file (YAML or JSON) describes both assets, the exchange rate,
the three durations, the depositor and the partner table:

    reward_asset: {symbol: RWD, decimals: 18}
    exchange_asset: {symbol: USDC, decimals: 6}
    exchange_rate: 2000        # 20.00 with rate_decimals 2
    funding_window: 14d
    cliff: 183d
    vesting: 183d
    depositor: "0xdep..."
    partners:
      - {address: "0xa...", allocation: 10000000000000}

Shape and sign are validated here. Domain rules (zero allocations,
duplicate partners, zero rate) are left to the engine so they surface with
the engine's error codes.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Union

import yaml
from pydantic import BaseModel, Field, conint, constr, field_validator

from .core.config import SECONDS_PER_DAY, SETTINGS
from .core.engine import PartnershipConfig

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_UNIT_SECONDS = {
    "": 1,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": SECONDS_PER_DAY,
    "w": 7 * SECONDS_PER_DAY,
}


def parse_duration(value: Union[int, str]) -> int:
    """Seconds from an int or a string like ``"14d"``, ``"12h"``, ``"90"``."""
    if isinstance(value, bool):
        raise ValueError("duration must be an integer or a string such as '14d'")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("duration cannot be negative")
        return value
    if isinstance(value, str):
        match = _DURATION_RE.match(value.lower())
        if match:
            return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    raise ValueError(f"invalid duration {value!r}")


class AssetSpec(BaseModel):
    symbol: constr(min_length=1)
    decimals: conint(ge=0, le=77) = 18
    name: str | None = None


class PartnerSpec(BaseModel):
    address: constr(min_length=1)
    allocation: conint(ge=0)


class DeploymentSpec(BaseModel):
    reward_asset: AssetSpec
    exchange_asset: AssetSpec
    exchange_rate: conint(ge=0)
    rate_decimals: conint(ge=0) = SETTINGS.rate_decimals
    funding_window: int
    cliff: int
    vesting: int
    depositor: constr(min_length=1)
    partners: list[PartnerSpec] = Field(min_length=1)
    start_time: conint(ge=0) = 0

    @field_validator("funding_window", "cliff", "vesting", mode="before")
    @classmethod
    def _parse_duration(cls, value: Any) -> int:
        return parse_duration(value)

    def to_config(self) -> PartnershipConfig:
        return PartnershipConfig(
            reward_asset=self.reward_asset.symbol,
            exchange_asset=self.exchange_asset.symbol,
            exchange_rate=self.exchange_rate,
            rate_decimals=self.rate_decimals,
            funding_window_duration=self.funding_window,
            cliff_duration=self.cliff,
            vesting_duration=self.vesting,
            depositor=self.depositor,
        )

    @property
    def partner_addresses(self) -> list[str]:
        return [partner.address for partner in self.partners]

    @property
    def allocations(self) -> list[int]:
        return [partner.allocation for partner in self.partners]


def load_deployment(path: Union[str, Path]) -> DeploymentSpec:
    """Read a YAML or JSON deployment file and validate it."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: deployment file must contain a mapping")
    return DeploymentSpec.model_validate(data)
