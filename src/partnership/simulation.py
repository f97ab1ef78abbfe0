"""
End-to-end partnership runs against in-memory tokens.

Used by the CLI to preview a deployment: mint the assets, deposit, fund
every partner that is not skipped, then replay claims on chosen days.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from .contracts.erc20 import ERC20Token
from .contracts.token_ledger import TokenLedger
from .core.allocations import normalize_address
from .core.config import SECONDS_PER_DAY
from .core.engine import Partnership, SweepResult
from .core.interfaces import ManualClock
from .core.results import OperationResult
from .schemas import DeploymentSpec

logger = logging.getLogger(__name__)

ENGINE_ADDRESS = "0x" + "50" * 20


@dataclass
class ClaimRecord:
    day: int
    partner: str
    amount: int
    code: str | None = None


@dataclass
class SimulationReport:
    total_allocation: int
    funded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    sweep: SweepResult | None = None
    claims: list[ClaimRecord] = field(default_factory=list)
    payouts: dict[str, int] = field(default_factory=dict)

    @property
    def total_claimed(self) -> int:
        return sum(self.payouts.values())


class Simulation:
    """Wires a ``DeploymentSpec`` to tokens, a manual clock and an engine."""

    def __init__(self, spec: DeploymentSpec) -> None:
        self.spec = spec
        self.clock = ManualClock(spec.start_time)
        self.reward_token = ERC20Token(
            name=spec.reward_asset.name or spec.reward_asset.symbol,
            symbol=spec.reward_asset.symbol,
            decimals=spec.reward_asset.decimals,
        )
        self.exchange_token = ERC20Token(
            name=spec.exchange_asset.name or spec.exchange_asset.symbol,
            symbol=spec.exchange_asset.symbol,
            decimals=spec.exchange_asset.decimals,
        )
        self.ledger = TokenLedger([self.reward_token, self.exchange_token], operator=ENGINE_ADDRESS)
        self.partnership = Partnership(
            spec.to_config(),
            spec.partner_addresses,
            spec.allocations,
            self.ledger,
            clock=self.clock,
        )

    def fund_depositor(self) -> None:
        amount = self.partnership.total_allocation
        self.reward_token.mint("", self.spec.depositor, amount)
        self.reward_token.approve(self.spec.depositor, ENGINE_ADDRESS, amount)

    def fund_partner(self, address: str) -> None:
        allocation = self.partnership.allocation_of(address)
        self.exchange_token.mint("", address, allocation)
        self.exchange_token.approve(address, ENGINE_ADDRESS, allocation)

    def run(
        self,
        skip: Iterable[str] = (),
        claim_days: Iterable[int] = (),
    ) -> SimulationReport:
        """
        Deposit, fund, sweep after close and claim on each ``claim_days``
        offset (days after the funding window closes).
        """
        skipped = {normalize_address(address) for address in skip}
        report = SimulationReport(total_allocation=self.partnership.total_allocation)

        self.fund_depositor()
        self._check(self.partnership.deposit(self.spec.depositor))

        for address in self.partnership.registry.partners:
            if address in skipped:
                report.skipped.append(address)
                continue
            self.fund_partner(address)
            self._check(self.partnership.enter_partnership(address))
            report.funded.append(address)

        started_at = self.partnership.partnership_started_at
        self.clock.set(started_at)
        report.sweep = self._check(self.partnership.claim_exchange_assets())

        for day in sorted(set(claim_days)):
            self.clock.set(max(self.clock.now(), started_at + day * SECONDS_PER_DAY))
            for address in report.funded:
                result = self.partnership.claim_reward_assets(address)
                amount = result.value if result.ok else 0
                report.claims.append(ClaimRecord(day, address, amount, result.code))
                report.payouts[address] = report.payouts.get(address, 0) + amount

        logger.info(
            "Simulation finished",
            extra={
                "event": "partnership.simulation_finished",
                "funded": len(report.funded),
                "skipped": len(report.skipped),
                "claimed": report.total_claimed,
            },
        )
        return report

    @staticmethod
    def _check(result: OperationResult):
        return result.unwrap()
