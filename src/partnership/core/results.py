"""Tagged success/failure results returned by engine operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .exceptions import PartnershipError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """
    Outcome of one engine operation.

    Exactly one of ``value`` (on success) or ``error`` (on failure) is
    meaningful. ``unwrap()`` returns the value or raises the error.
    """

    ok: bool
    value: T | None = None
    error: PartnershipError | None = None

    @classmethod
    def success(cls, value: T | None = None) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: PartnershipError) -> "OperationResult[T]":
        return cls(ok=False, error=error)

    @property
    def code(self) -> str | None:
        """Stable error code, ``None`` on success."""
        return self.error.code if self.error is not None else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"success": True, "value": self.value}
        return {"success": False, "error": self.error.to_dict() if self.error else None}
