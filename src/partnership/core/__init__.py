"""
Partnership core.

- FixedPointConverter: exchange-asset to reward-asset conversion
- AllocationRegistry: immutable partner allocation table
- FundingWindow: deposit and funding-window phases
- VestingScheduleCalculator: cliff plus linear vesting
- ClaimLedger: per-partner remaining balance and checkpoint
- Partnership: the engine composing all of the above
"""

from .allocations import AllocationRegistry
from .claim_ledger import ClaimLedger, PartnerAccount
from .engine import Partnership, PartnershipConfig, SweepResult
from .events import EventLog, EventType, PartnershipEvent
from .exceptions import PartnershipError
from .fixed_point import FixedPointConverter
from .funding_window import FundingPhase, FundingWindow, PhaseKind
from .interfaces import AssetLedger, Clock, ManualClock, SystemClock
from .results import OperationResult
from .vesting import VestingScheduleCalculator

__all__ = [
    # Engine
    "Partnership",
    "PartnershipConfig",
    "SweepResult",
    "OperationResult",
    "PartnershipError",
    # Components
    "AllocationRegistry",
    "ClaimLedger",
    "PartnerAccount",
    "FixedPointConverter",
    "FundingPhase",
    "FundingWindow",
    "PhaseKind",
    "VestingScheduleCalculator",
    # Events
    "EventLog",
    "EventType",
    "PartnershipEvent",
    # Collaborators
    "AssetLedger",
    "Clock",
    "ManualClock",
    "SystemClock",
]
