"""
Per-partner claim accounting.

Tracks remaining reward-asset balance and the vesting checkpoint of every
partner who funded. Accounts are opened once (on funding) and only ever
decremented afterwards.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any

from .allocations import normalize_address
from .exceptions import OnlyPartnersWithBalance, PartnerAlreadyFunded
from .safe_math import checked_sub

logger = logging.getLogger(__name__)


@dataclass
class PartnerAccount:
    """Claim state of one funded partner."""

    entitlement: int  # reward units granted at funding
    balance: int  # reward units not yet claimed
    last_withdrawn_at: int
    funded_at: int
    claimed: int = 0
    claim_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "entitlement": self.entitlement,
            "balance": self.balance,
            "last_withdrawn_at": self.last_withdrawn_at,
            "funded_at": self.funded_at,
            "claimed": self.claimed,
            "claim_count": self.claim_count,
        }


class ClaimLedger:
    """Source of truth for how much each partner still has to vest."""

    def __init__(self) -> None:
        self._accounts: dict[str, PartnerAccount] = {}

    def open_account(
        self, partner: str, entitlement: int, checkpoint: int, funded_at: int
    ) -> PartnerAccount:
        address = normalize_address(partner)
        if address in self._accounts:
            raise PartnerAlreadyFunded(
                f"Partner {address} already funded", details={"partner": address}
            )
        account = PartnerAccount(
            entitlement=entitlement,
            balance=entitlement,
            last_withdrawn_at=checkpoint,
            funded_at=funded_at,
        )
        self._accounts[address] = account
        return account

    def account(self, partner: str) -> PartnerAccount | None:
        return self._accounts.get(normalize_address(partner))

    def has_funded(self, partner: str) -> bool:
        return normalize_address(partner) in self._accounts

    def balance_of(self, partner: str) -> int:
        account = self.account(partner)
        return account.balance if account else 0

    def last_withdrawn_at(self, partner: str) -> int:
        account = self.account(partner)
        return account.last_withdrawn_at if account else 0

    def record_claim(self, partner: str, amount: int, now: int) -> PartnerAccount:
        """Debit ``amount`` and move the checkpoint to ``now``."""
        account = self.account(partner)
        if account is None:
            raise OnlyPartnersWithBalance(
                "Cannot debit an account that was never opened",
                details={"partner": partner},
            )
        if now < account.last_withdrawn_at:
            raise ValueError(
                f"Claim time {now} precedes checkpoint {account.last_withdrawn_at}"
            )
        account.balance = checked_sub(account.balance, amount, name="claim")
        account.claimed += amount
        account.claim_count += 1
        account.last_withdrawn_at = now
        return account

    @property
    def total_outstanding(self) -> int:
        return sum(account.balance for account in self._accounts.values())

    def snapshot(self) -> dict[str, PartnerAccount]:
        return copy.deepcopy(self._accounts)

    def restore(self, accounts: dict[str, PartnerAccount]) -> None:
        self._accounts = accounts

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {address: account.to_dict() for address, account in self._accounts.items()}
