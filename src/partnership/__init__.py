"""
Partnership - allocation-based funding and vesting engine.

A depositor commits a reward asset for a fixed list of partners; each
partner funds a matching amount of an exchange asset during a funding
window and then vests reward asset linearly after a cliff.

Main Components:
- core: fixed-point conversion, allocation registry, funding window,
  vesting schedule, claim ledger and the Partnership engine
- contracts: in-memory ERC20 tokens and the token-backed asset ledger
- cli: schedule previews and end-to-end simulations
"""

__version__ = "0.1.0"
__author__ = "Partnership Development Team"

from .core import (
    OperationResult,
    Partnership,
    PartnershipConfig,
    PartnershipError,
    SweepResult,
)

__all__ = [
    "OperationResult",
    "Partnership",
    "PartnershipConfig",
    "PartnershipError",
    "SweepResult",
]
