"""Observable partnership events."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator

logger = logging.getLogger(__name__)


class EventType(Enum):
    DEPOSITED = "Deposited"
    PARTNERSHIP_FORMED = "PartnershipFormed"
    FUNDING_RECEIVED = "FundingReceived"
    DEPOSIT_TOKEN_CLAIMED = "DepositTokenClaimed"


@dataclass(frozen=True)
class PartnershipEvent:
    """
    One emitted event.

    ``args`` carries the event fields by name:
        Deposited(depositor, reward_amount)
        PartnershipFormed(partner, exchange_amount)
        FundingReceived(depositor, exchange_amount, reward_amount_returned)
        DepositTokenClaimed(partner, reward_amount)
    """

    event_type: EventType
    args: dict[str, Any]
    timestamp: int
    index: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event_type.value,
            "args": dict(self.args),
            "timestamp": self.timestamp,
            "index": self.index,
        }


@dataclass
class EventLog:
    """Append-only event list, mirrored to the structured logger."""

    events: list[PartnershipEvent] = field(default_factory=list)

    def emit(self, event_type: EventType, timestamp: int, **args: Any) -> PartnershipEvent:
        event = PartnershipEvent(
            event_type=event_type,
            args=args,
            timestamp=timestamp,
            index=len(self.events),
        )
        self.events.append(event)
        logger.info(
            "Event %s",
            event_type.value,
            extra={"event": f"partnership.{event_type.value}", "event_args": args},
        )
        return event

    def of_type(self, event_type: EventType) -> list[PartnershipEvent]:
        return [event for event in self.events if event.event_type is event_type]

    def truncate(self, length: int) -> None:
        del self.events[length:]

    @property
    def last(self) -> PartnershipEvent | None:
        return self.events[-1] if self.events else None

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self) -> Iterator[PartnershipEvent]:
        return iter(self.events)
