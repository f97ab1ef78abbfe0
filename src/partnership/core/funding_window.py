"""
Funding window state machine.

The phase is never stored: it is derived on every read from the single
``started_at`` timestamp (the moment the funding window closes) and the
current time.

    UNINITIALIZED --deposit--> OPEN --(now >= started_at)--> CLOSED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .allocations import normalize_address
from .exceptions import (
    AlreadyDeposited,
    OnlyDepositor,
    PartnerPeriodEnded,
    PartnershipNotStarted,
)
from .safe_math import checked_add

logger = logging.getLogger(__name__)


class PhaseKind(Enum):
    """Lifecycle phase of the funding window."""
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class FundingPhase:
    """Tagged phase value: ``started_at`` is 0 only for UNINITIALIZED."""

    kind: PhaseKind
    started_at: int = 0

    @property
    def is_uninitialized(self) -> bool:
        return self.kind is PhaseKind.UNINITIALIZED

    @property
    def is_open(self) -> bool:
        return self.kind is PhaseKind.OPEN

    @property
    def is_closed(self) -> bool:
        return self.kind is PhaseKind.CLOSED

    @classmethod
    def uninitialized(cls) -> "FundingPhase":
        return cls(PhaseKind.UNINITIALIZED)

    @classmethod
    def open(cls, started_at: int) -> "FundingPhase":
        return cls(PhaseKind.OPEN, started_at)

    @classmethod
    def closed(cls, started_at: int) -> "FundingPhase":
        return cls(PhaseKind.CLOSED, started_at)


class FundingWindow:
    """
    Governs the one-time deposit and the partner funding window.

    ``started_at`` is 0 until the depositor deposits, then fixed forever at
    ``deposit_time + window_duration``.
    """

    def __init__(self, depositor: str, window_duration: int) -> None:
        if window_duration < 0:
            raise ValueError("Funding window duration cannot be negative")
        self.depositor = normalize_address(depositor)
        self.window_duration = window_duration
        self.started_at = 0

    def phase(self, now: int) -> FundingPhase:
        if self.started_at == 0:
            return FundingPhase.uninitialized()
        if now < self.started_at:
            return FundingPhase.open(self.started_at)
        return FundingPhase.closed(self.started_at)

    def open(self, caller: str, now: int) -> int:
        """
        Transition UNINITIALIZED -> OPEN.

        Returns the new ``started_at``. The caller check runs first so a
        non-depositor always sees OnlyDepositor.
        """
        if normalize_address(caller) != self.depositor:
            raise OnlyDepositor(
                "Only the depositor can deposit", details={"caller": caller}
            )
        if self.started_at != 0:
            raise AlreadyDeposited(
                "Deposit already made", details={"started_at": self.started_at}
            )
        # a zero-length window opening at t=0 would leave the sentinel at 0
        started_at = max(checked_add(now, self.window_duration, name="started_at"), 1)
        self.started_at = started_at
        logger.info(
            "Funding window opened",
            extra={
                "event": "partnership.window_opened",
                "opened_at": now,
                "closes_at": started_at,
            },
        )
        return started_at

    def require_open(self, now: int) -> FundingPhase:
        current = self.phase(now)
        if current.is_uninitialized:
            raise PartnershipNotStarted("Depositor has not deposited yet")
        if current.is_closed:
            raise PartnerPeriodEnded(
                "Funding window has closed",
                details={"closed_at": current.started_at, "now": now},
            )
        return current

    def require_closed(self, now: int) -> FundingPhase:
        current = self.phase(now)
        if not current.is_closed:
            raise PartnershipNotStarted(
                "Partnership has not started",
                details={"started_at": current.started_at, "now": now},
                recoverable=True,
            )
        return current
