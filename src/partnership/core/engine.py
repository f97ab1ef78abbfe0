"""
Partnership engine.

A depositor commits reward asset for a fixed list of partners. Each partner
funds their allocation in exchange asset during the funding window, then
vests the converted reward-asset amount linearly after a cliff. After the
window closes the depositor sweeps the collected exchange asset plus any
reward asset left unfunded.

Operation flow:
    depositor -> deposit()               opens the window, pulls total reward
    partner   -> enter_partnership()     pulls allocation, opens claim account
    anyone    -> claim_exchange_assets() after close: refund + sweep to depositor
    partner   -> claim_reward_assets()   after cliff: release vested reward

Every public operation returns an ``OperationResult`` instead of raising.
Local bookkeeping happens before the external ledger call; if the ledger
call fails the operation's local changes are rolled back.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Sequence, TypeVar

from .allocations import AllocationRegistry, normalize_address
from .claim_ledger import ClaimLedger
from .config import SETTINGS
from .events import EventLog, EventType
from .exceptions import (
    BeforeCliff,
    ConfigurationError,
    NothingToClaim,
    OnlyPartner,
    OnlyPartnersWithBalance,
    PartnershipError,
    PartnershipNotStarted,
    TransferFailed,
)
from .fixed_point import FixedPointConverter
from .funding_window import FundingPhase, FundingWindow
from .interfaces import AssetLedger, Clock, SystemClock
from .results import OperationResult
from .safe_math import checked_add, checked_sub
from .vesting import VestingScheduleCalculator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PartnershipConfig:
    """Immutable construction parameters (durations in seconds)."""

    reward_asset: str
    exchange_asset: str
    exchange_rate: int
    funding_window_duration: int
    cliff_duration: int
    vesting_duration: int
    depositor: str
    rate_decimals: int = SETTINGS.rate_decimals

    def __post_init__(self) -> None:
        if not self.reward_asset or not self.exchange_asset:
            raise ConfigurationError("Both asset identifiers are required")
        if self.reward_asset == self.exchange_asset:
            raise ConfigurationError(
                "Reward and exchange asset must differ",
                details={"asset": self.reward_asset},
            )
        if not normalize_address(self.depositor):
            raise ConfigurationError("Depositor address is required")
        for name in ("funding_window_duration", "cliff_duration", "vesting_duration"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(
                    f"{name} must be a non-negative integer", details={name: value}
                )

    def to_dict(self) -> dict[str, Any]:
        return {
            "reward_asset": self.reward_asset,
            "exchange_asset": self.exchange_asset,
            "exchange_rate": self.exchange_rate,
            "rate_decimals": self.rate_decimals,
            "funding_window_duration": self.funding_window_duration,
            "cliff_duration": self.cliff_duration,
            "vesting_duration": self.vesting_duration,
            "depositor": normalize_address(self.depositor),
        }


@dataclass(frozen=True)
class SweepResult:
    """What one claim_exchange_assets call sent to the depositor."""

    exchange_amount: int
    reward_amount_returned: int


class Partnership:
    """
    Funding-and-vesting engine for one partnership.

    Args:
        config: immutable partnership parameters
        partners: partner addresses (unique)
        allocations: exchange-asset allocation per partner, index-aligned
        ledger: asset ledger bound to this engine's address
        clock: time source (defaults to wall clock)
        address: this engine's holder address on the ledger; defaults to
            the ledger's ``operator`` attribute when it has one

    Raises:
        ConfigurationError (or a subclass) on invalid parameters.
    """

    def __init__(
        self,
        config: PartnershipConfig,
        partners: Sequence[str],
        allocations: Sequence[int],
        ledger: AssetLedger,
        clock: Clock | None = None,
        address: str = "",
    ) -> None:
        self.config = config
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.address = normalize_address(
            address or getattr(ledger, "operator", "") or self._derive_address(config)
        )
        self.depositor = normalize_address(config.depositor)

        self.reward_decimals = ledger.decimals(config.reward_asset)
        self.exchange_decimals = ledger.decimals(config.exchange_asset)

        self.converter = FixedPointConverter(
            exchange_rate=config.exchange_rate,
            reward_decimals=self.reward_decimals,
            exchange_decimals=self.exchange_decimals,
            rate_decimals=config.rate_decimals,
        )
        self.registry = AllocationRegistry(partners, allocations, self.converter)
        self.window = FundingWindow(self.depositor, config.funding_window_duration)
        self.schedule = VestingScheduleCalculator(
            cliff_duration=config.cliff_duration,
            vesting_duration=config.vesting_duration,
            reward_decimals=self.reward_decimals,
        )
        self.claims = ClaimLedger()
        self.events = EventLog()

        self._total_exchanged = 0
        self._reward_returned = 0
        self._lock = threading.RLock()

        logger.info(
            "Partnership created",
            extra={
                "event": "partnership.created",
                "address": self.address,
                "depositor": self.depositor,
                "partners": len(self.registry),
                "total_allocation": self.total_allocation,
            },
        )

    @classmethod
    def deploy(
        cls,
        config: PartnershipConfig,
        partners: Sequence[str],
        allocations: Sequence[int],
        ledger: AssetLedger,
        clock: Clock | None = None,
        address: str = "",
    ) -> OperationResult["Partnership"]:
        """Construct a partnership, reporting configuration errors as a result."""
        try:
            return OperationResult.success(
                cls(config, partners, allocations, ledger, clock=clock, address=address)
            )
        except PartnershipError as exc:
            logger.warning(
                "Partnership deployment rejected: %s",
                exc.message,
                extra={"event": "partnership.deploy_rejected", "code": exc.code},
            )
            return OperationResult.failure(exc)

    @staticmethod
    def _derive_address(config: PartnershipConfig) -> str:
        digest = hashlib.sha3_256(
            f"{config.depositor}:{config.reward_asset}:{config.exchange_asset}".encode()
        ).digest()
        return f"0x{digest[-20:].hex()}"

    # ==================== Operations ====================

    def deposit(self, caller: str) -> OperationResult[int]:
        """Depositor commits the total reward allocation and opens the funding window."""
        return self._run("deposit", caller, self._deposit)

    def enter_partnership(self, caller: str) -> OperationResult[int]:
        """Partner funds their allocation; returns the reward entitlement granted."""
        return self._run("enter_partnership", caller, self._enter_partnership)

    def claim_reward_assets(self, caller: str) -> OperationResult[int]:
        """Partner claims vested reward asset; returns the amount released."""
        return self._run("claim_reward_assets", caller, self._claim_reward_assets)

    def claim_exchange_assets(self, caller: str = "") -> OperationResult[SweepResult]:
        """Send collected exchange asset and unfunded reward asset to the depositor.

        Anyone may call this; the recipient is always the depositor.
        """
        return self._run("claim_exchange_assets", caller, self._claim_exchange_assets)

    # ==================== Views ====================

    def phase(self, at: int | None = None) -> FundingPhase:
        return self.window.phase(self._now() if at is None else at)

    def allocation_of(self, partner: str) -> int:
        return self.registry.allocation_of(partner)

    def balance_of(self, partner: str) -> int:
        return self.claims.balance_of(partner)

    def last_withdrawn_at(self, partner: str) -> int:
        return self.claims.last_withdrawn_at(partner)

    def claimable_of(self, partner: str, at: int | None = None) -> int:
        """Reward units ``partner`` could claim at ``at`` (default: now)."""
        account = self.claims.account(partner)
        if account is None or self.window.started_at == 0:
            return 0
        return self.schedule.claimable(
            entitlement=account.entitlement,
            balance=account.balance,
            last_withdrawn_at=account.last_withdrawn_at,
            started_at=self.window.started_at,
            now=self._now() if at is None else at,
        )

    @property
    def total_allocation(self) -> int:
        """Total allocation in reward-asset units."""
        return self.registry.total_allocation_reward_units

    @property
    def total_allocation_exchange_units(self) -> int:
        return self.registry.total_allocation_exchange_units

    @property
    def total_exchanged(self) -> int:
        return self._total_exchanged

    @property
    def reward_returned(self) -> int:
        return self._reward_returned

    @property
    def partnership_started_at(self) -> int:
        return self.window.started_at

    @property
    def cliff_end(self) -> int:
        if self.window.started_at == 0:
            return 0
        return self.schedule.cliff_end(self.window.started_at)

    @property
    def vesting_end(self) -> int:
        if self.window.started_at == 0:
            return 0
        return self.schedule.vesting_end(self.window.started_at)

    def snapshot(self) -> dict[str, Any]:
        """Serializable view of configuration and state."""
        with self._lock:
            now = self._now()
            return {
                "address": self.address,
                "config": self.config.to_dict(),
                "decimals": {
                    "reward": self.reward_decimals,
                    "exchange": self.exchange_decimals,
                },
                "phase": self.window.phase(now).kind.value,
                "partnership_started_at": self.window.started_at,
                "total_allocation": self.total_allocation,
                "total_allocation_exchange_units": self.total_allocation_exchange_units,
                "total_exchanged": self._total_exchanged,
                "reward_returned": self._reward_returned,
                "allocations": dict(self.registry.items()),
                "accounts": self.claims.to_dict(),
                "events": len(self.events),
            }

    # ==================== Operation bodies ====================

    def _deposit(self, caller: str, now: int) -> int:
        self.window.open(caller, now)
        amount = self.total_allocation
        self._pull(self.config.reward_asset, self.depositor, amount)
        self.events.emit(
            EventType.DEPOSITED, now, depositor=self.depositor, reward_amount=amount
        )
        return amount

    def _enter_partnership(self, caller: str, now: int) -> int:
        allocation = self._require_partner(caller)
        current = self.window.require_open(now)
        reward_amount = self.converter.convert_exchange_to_reward(allocation)

        self.claims.open_account(
            caller, reward_amount, checkpoint=current.started_at, funded_at=now
        )
        self._total_exchanged = checked_add(
            self._total_exchanged, allocation, name="total_exchanged"
        )
        self._pull(self.config.exchange_asset, caller, allocation)

        self.events.emit(
            EventType.PARTNERSHIP_FORMED,
            now,
            partner=normalize_address(caller),
            exchange_amount=allocation,
        )
        return reward_amount

    def _claim_reward_assets(self, caller: str, now: int) -> int:
        self._require_partner(caller)
        started_at = self.window.started_at
        if started_at == 0:
            raise PartnershipNotStarted("Depositor has not deposited yet")
        cliff_end = self.schedule.cliff_end(started_at)
        if now < cliff_end:
            raise BeforeCliff(
                "Cliff has not passed",
                details={"cliff_end": cliff_end, "now": now},
                recoverable=True,
            )

        account = self.claims.account(caller)
        if account is None or account.balance == 0:
            raise OnlyPartnersWithBalance(
                "Partner has no reward balance", details={"partner": caller}
            )

        amount = self.schedule.claimable(
            entitlement=account.entitlement,
            balance=account.balance,
            last_withdrawn_at=account.last_withdrawn_at,
            started_at=started_at,
            now=now,
        )
        if amount == 0:
            raise NothingToClaim(
                "Nothing vested since the last claim",
                details={
                    "last_withdrawn_at": account.last_withdrawn_at,
                    "next_claim_at": account.last_withdrawn_at + self.config.cliff_duration,
                },
                recoverable=True,
            )

        # effects before the transfer: a re-entrant call sees the new checkpoint
        self.claims.record_claim(caller, amount, now)
        self._send(self.config.reward_asset, caller, amount)

        self.events.emit(
            EventType.DEPOSIT_TOKEN_CLAIMED,
            now,
            partner=normalize_address(caller),
            reward_amount=amount,
        )
        return amount

    def _claim_exchange_assets(self, caller: str, now: int) -> SweepResult:
        self.window.require_closed(now)

        funded_reward = self.converter.convert_exchange_to_reward(self._total_exchanged)
        unfunded = checked_sub(self.total_allocation, funded_reward, name="unfunded")
        refund = unfunded - self._reward_returned if unfunded > self._reward_returned else 0
        exchange_amount = self._held(self.config.exchange_asset)

        # the exchange transfer carries no local state; the refund must be the
        # last ledger call so a rollback never forgets a refund already paid
        if exchange_amount > 0:
            self._send(self.config.exchange_asset, self.depositor, exchange_amount)
        if refund > 0:
            self._reward_returned = checked_add(self._reward_returned, refund, name="returned")
            self._send(self.config.reward_asset, self.depositor, refund)

        self.events.emit(
            EventType.FUNDING_RECEIVED,
            now,
            depositor=self.depositor,
            exchange_amount=exchange_amount,
            reward_amount_returned=refund,
        )
        return SweepResult(exchange_amount=exchange_amount, reward_amount_returned=refund)

    # ==================== Helpers ====================

    def _now(self) -> int:
        timestamp = self.clock.now()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("clock must return an integer timestamp") from exc

    def _require_partner(self, caller: str) -> int:
        allocation = self.registry.allocation_of(caller)
        if allocation == 0:
            raise OnlyPartner("Caller is not a partner", details={"caller": caller})
        return allocation

    def _run(
        self, operation: str, caller: str, body: Callable[[str, int], T]
    ) -> OperationResult[T]:
        with self._lock:
            now = self._now()
            try:
                with self._transaction():
                    value = body(caller, now)
            except PartnershipError as exc:
                logger.warning(
                    "%s rejected: %s",
                    operation,
                    exc.message,
                    extra={
                        "event": f"partnership.{operation}_rejected",
                        "code": exc.code,
                        "caller": caller,
                        "now": now,
                    },
                )
                return OperationResult.failure(exc)

            logger.info(
                "%s succeeded",
                operation,
                extra={
                    "event": f"partnership.{operation}",
                    "caller": caller,
                    "now": now,
                },
            )
            return OperationResult.success(value)

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Restore local state if the enclosed block raises."""
        saved = (
            self.window.started_at,
            self._total_exchanged,
            self._reward_returned,
            self.claims.snapshot(),
            len(self.events),
        )
        try:
            yield
        except BaseException:
            (
                self.window.started_at,
                self._total_exchanged,
                self._reward_returned,
                accounts,
                event_count,
            ) = saved
            self.claims.restore(accounts)
            self.events.truncate(event_count)
            raise

    def _pull(self, asset: str, sender: str, amount: int) -> None:
        self._ledger_call(
            "transfer_from",
            lambda: self.ledger.transfer_from(
                asset, normalize_address(sender), self.address, amount
            ),
            asset=asset,
            counterparty=sender,
            amount=amount,
        )

    def _send(self, asset: str, recipient: str, amount: int) -> None:
        self._ledger_call(
            "transfer",
            lambda: self.ledger.transfer(asset, normalize_address(recipient), amount),
            asset=asset,
            counterparty=recipient,
            amount=amount,
        )

    def _held(self, asset: str) -> int:
        """This engine's balance of ``asset`` on the ledger."""
        return self._guarded(
            "balance_of",
            lambda: self.ledger.balance_of(asset, self.address),
            asset=asset,
        )

    def _guarded(self, method: str, call: Callable[[], T], **context: Any) -> T:
        try:
            return call()
        except PartnershipError:
            raise
        except Exception as exc:
            raise TransferFailed(
                f"Ledger {method} raised: {exc}",
                details={"method": method, **context},
            ) from exc

    def _ledger_call(
        self, method: str, call: Callable[[], bool], **context: Any
    ) -> None:
        succeeded = self._guarded(method, call, **context)
        if not succeeded:
            raise TransferFailed(
                f"Ledger {method} reported failure",
                details={"method": method, **context},
            )
