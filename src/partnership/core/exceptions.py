"""
Partnership-specific exception hierarchy.

Every failure the engine can report has a typed exception with a stable
``code``. Internal helpers raise these; the public engine operations catch
them at their boundary and hand them back inside an ``OperationResult``.
"""

from __future__ import annotations
from typing import Optional, Any, Dict


class PartnershipError(Exception):
    """Base exception for all partnership errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
        recoverable: Whether resubmitting later could succeed
    """

    code: str = "PartnershipError"

    def __init__(
        self,
        message: str = "",
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        message = message or self.code
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": dict(self.details),
            "recoverable": self.recoverable,
        }


# ==================== Configuration Errors ====================


class ConfigurationError(PartnershipError):
    """Raised when construction parameters or environment settings are invalid.

    Fatal to instance creation.
    """

    code = "ConfigurationError"


class LengthMismatch(ConfigurationError):
    """Partner and allocation lists differ in length."""

    code = "LengthMismatch"


class AllocationCannotBeZero(ConfigurationError):
    """An allocation entry is not strictly positive."""

    code = "AllocationCannotBeZero"


class DuplicatePartner(ConfigurationError):
    """The same partner address appears more than once."""

    code = "DuplicatePartner"


class InvalidExchangeRate(ConfigurationError):
    """Exchange rate is zero, so no conversion is possible."""

    code = "InvalidExchangeRate"


# ==================== Authorization Errors ====================


class AuthorizationError(PartnershipError):
    """Raised when the caller lacks the identity an operation requires."""

    code = "AuthorizationError"


class OnlyDepositor(AuthorizationError):
    code = "OnlyDepositor"


class OnlyPartner(AuthorizationError):
    code = "OnlyPartner"


# ==================== Phase-Ordering Errors ====================


class PhaseError(PartnershipError):
    """Raised when an operation is invoked outside its valid window.

    These are recoverable in the sense that the same call may succeed once
    the clock has moved on (except the "already done" variants).
    """

    code = "PhaseError"


class AlreadyDeposited(PhaseError):
    code = "AlreadyDeposited"


class PartnerPeriodEnded(PhaseError):
    code = "PartnerPeriodEnded"


class PartnerAlreadyFunded(PhaseError):
    code = "PartnerAlreadyFunded"


class PartnershipNotStarted(PhaseError):
    code = "PartnershipNotStarted"


class BeforeCliff(PhaseError):
    code = "BeforeCliff"


class OnlyPartnersWithBalance(PhaseError):
    code = "OnlyPartnersWithBalance"


class NothingToClaim(PhaseError):
    """Claimable amount is zero because the checkpoint cliff has not elapsed."""

    code = "NothingToClaim"


# ==================== Arithmetic Errors ====================


class ArithmeticFailure(PartnershipError):
    """Raised when fixed-point arithmetic cannot produce an exact bounded result."""

    code = "ArithmeticFailure"


class ArithmeticOverflow(ArithmeticFailure):
    """Operand or result left the unsigned 256-bit range."""

    code = "ArithmeticOverflow"


# ==================== External Ledger Errors ====================


class LedgerError(PartnershipError):
    """Raised when the asset ledger collaborator misbehaves."""

    code = "LedgerError"


class TransferFailed(LedgerError):
    """A transfer or transfer_from reported failure."""

    code = "TransferFailed"
