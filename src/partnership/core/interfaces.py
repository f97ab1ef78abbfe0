"""
Collaborator interfaces consumed by the partnership engine.

The engine never moves balances itself: it talks to an ``AssetLedger``
bound to the engine's own address, and reads time from a ``Clock``.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class AssetLedger(Protocol):
    """
    Asset movements performed on behalf of the engine.

    ``transfer`` sends from the engine's own holdings; ``transfer_from`` pulls
    from ``sender`` using an allowance granted to the engine. Both return
    ``True`` on success and ``False`` (or raise) on failure.
    """

    def decimals(self, asset: str) -> int:
        ...

    def transfer_from(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        ...

    def transfer(self, asset: str, recipient: str, amount: int) -> bool:
        ...

    def balance_of(self, asset: str, holder: str) -> int:
        ...


@runtime_checkable
class Clock(Protocol):
    """Monotonically non-decreasing second-resolution time source."""

    def now(self) -> int:
        ...


class SystemClock:
    """Wall-clock time in whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Deterministic clock for tests and simulations.

    Refuses to move backwards so the non-decreasing guarantee holds.
    """

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("Clock cannot start before 0")
        self._now = start

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ValueError(f"Clock cannot move backwards ({timestamp} < {self._now})")
        self._now = timestamp
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Cannot advance by a negative duration")
        self._now += seconds
        return self._now
