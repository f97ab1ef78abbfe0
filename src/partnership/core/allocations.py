"""
Immutable per-partner allocation table.

Allocations are expressed in exchange-asset units and fixed at
construction. A partner's allocation is both the amount they must fund and
(after conversion) the reward-asset entitlement they vest.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Sequence

from .exceptions import AllocationCannotBeZero, DuplicatePartner, LengthMismatch
from .fixed_point import FixedPointConverter
from .safe_math import checked_add, require_uint256

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Addresses compare case-insensitively."""
    return address.strip().lower()


class AllocationRegistry:
    """
    Partner -> allocation mapping with precomputed totals.

    Raises at construction:
        LengthMismatch: partners and allocations differ in length
        AllocationCannotBeZero: an allocation is not > 0
        DuplicatePartner: an address repeats (compared case-insensitively)
    """

    def __init__(
        self,
        partners: Sequence[str],
        allocations: Sequence[int],
        converter: FixedPointConverter,
    ) -> None:
        if len(partners) != len(allocations):
            raise LengthMismatch(
                "Partners and allocations must have the same length",
                details={"partners": len(partners), "allocations": len(allocations)},
            )

        table: dict[str, int] = {}
        total = 0
        for index, (partner, amount) in enumerate(zip(partners, allocations)):
            address = normalize_address(partner)
            if not address:
                raise AllocationCannotBeZero(
                    "Partner address cannot be empty", details={"index": index}
                )
            require_uint256(amount, name="allocation")
            if amount == 0:
                raise AllocationCannotBeZero(
                    f"Allocation for {address} must be greater than zero",
                    details={"index": index, "partner": address},
                )
            if address in table:
                raise DuplicatePartner(
                    f"Partner {address} listed more than once",
                    details={"index": index, "partner": address},
                )
            table[address] = amount
            total = checked_add(total, amount, name="total_allocation")

        self._allocations: Mapping[str, int] = MappingProxyType(table)
        self._converter = converter
        self.total_allocation_exchange_units = total
        self.total_allocation_reward_units = converter.convert_exchange_to_reward(total)

        logger.info(
            "Allocation registry created",
            extra={
                "event": "partnership.registry_created",
                "partners": len(table),
                "total_exchange_units": total,
                "total_reward_units": self.total_allocation_reward_units,
            },
        )

    def allocation_of(self, partner: str) -> int:
        """Exchange-asset allocation of ``partner``; 0 for unknown addresses."""
        return self._allocations.get(normalize_address(partner), 0)

    def reward_allocation_of(self, partner: str) -> int:
        """Allocation converted to reward-asset units (0 for unknown addresses)."""
        amount = self.allocation_of(partner)
        if amount == 0:
            return 0
        return self._converter.convert_exchange_to_reward(amount)

    def is_partner(self, partner: str) -> bool:
        return self.allocation_of(partner) != 0

    @property
    def partners(self) -> tuple[str, ...]:
        return tuple(self._allocations)

    def items(self) -> Iterable[tuple[str, int]]:
        return self._allocations.items()

    def __iter__(self) -> Iterator[str]:
        return iter(self._allocations)

    def __len__(self) -> int:
        return len(self._allocations)

    def __contains__(self, partner: object) -> bool:
        return isinstance(partner, str) and self.is_partner(partner)
