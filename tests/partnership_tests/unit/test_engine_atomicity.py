"""
Failure atomicity and re-entrancy tests for the Partnership engine.

The engine updates its own books before calling the ledger; a failing
ledger call must leave no local change behind, and a ledger that calls
back into the engine mid-transfer must not be able to claim twice.
"""

import threading

import pytest

from partnership.contracts.token_ledger import TokenLedger
from partnership.core.engine import Partnership
from partnership.core.events import EventType
from partnership_scenario import ALLOCATIONS, DEPOSITOR, ENGINE, PARTNERS, RWD

BIG = PARTNERS[0]


class FlakyLedger(TokenLedger):
    """Token ledger whose outgoing transfers can be switched to fail or raise."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_transfers = False
        self.raise_transfers = False
        self.failing_assets = set()
        self.raise_balance = False

    def transfer(self, asset, recipient, amount):
        if self.raise_transfers:
            raise RuntimeError("ledger offline")
        if self.fail_transfers or asset in self.failing_assets:
            return False
        return super().transfer(asset, recipient, amount)


    def balance_of(self, asset, holder):
        if self.raise_balance:
            raise RuntimeError("ledger offline")
        return super().balance_of(asset, holder)


class ReentrantLedger(TokenLedger):
    """Calls back into the engine from inside every reward transfer."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.engine = None
        self.reentry_results = []

    def transfer(self, asset, recipient, amount):
        if self.engine is not None and asset == "RWD" and recipient != DEPOSITOR:
            engine, self.engine = self.engine, None
            self.reentry_results.append(engine.claim_reward_assets(recipient))
        return super().transfer(asset, recipient, amount)


@pytest.fixture
def flaky_setup(config, reward_token, exchange_token, clock):
    ledger = FlakyLedger([reward_token, exchange_token], operator=ENGINE)
    engine = Partnership(config, PARTNERS, ALLOCATIONS, ledger, clock=clock)
    reward_token.mint("", DEPOSITOR, engine.total_allocation)
    reward_token.approve(DEPOSITOR, ENGINE, engine.total_allocation)
    engine.deposit(DEPOSITOR).unwrap()
    allocation = engine.allocation_of(BIG)
    exchange_token.mint("", BIG, allocation)
    exchange_token.approve(BIG, ENGINE, allocation)
    engine.enter_partnership(BIG).unwrap()
    return engine, ledger


def test_failed_claim_transfer_rolls_back_balance_and_checkpoint(flaky_setup, clock):
    engine, ledger = flaky_setup
    clock.set(engine.cliff_end)
    events_before = len(engine.events)

    ledger.fail_transfers = True
    result = engine.claim_reward_assets(BIG)
    assert result.code == "TransferFailed"
    assert engine.balance_of(BIG) == 500_000 * RWD
    assert engine.last_withdrawn_at(BIG) == engine.partnership_started_at
    assert len(engine.events) == events_before

    ledger.fail_transfers = False
    assert engine.claim_reward_assets(BIG).value == 250_000 * RWD


def test_raising_ledger_is_reported_as_transfer_failed(flaky_setup, clock):
    engine, ledger = flaky_setup
    clock.set(engine.partnership_started_at)
    ledger.raise_transfers = True
    result = engine.claim_exchange_assets()
    assert result.code == "TransferFailed"
    assert "ledger offline" in result.error.message
    assert engine.reward_returned == 0

    ledger.raise_transfers = False
    sweep = engine.claim_exchange_assets().unwrap()
    assert sweep.reward_amount_returned == 500_000 * RWD


def test_reentrant_claim_cannot_double_spend(config, reward_token, exchange_token, clock):
    ledger = ReentrantLedger([reward_token, exchange_token], operator=ENGINE)
    engine = Partnership(config, PARTNERS, ALLOCATIONS, ledger, clock=clock)
    reward_token.mint("", DEPOSITOR, engine.total_allocation)
    reward_token.approve(DEPOSITOR, ENGINE, engine.total_allocation)
    engine.deposit(DEPOSITOR).unwrap()
    exchange_token.mint("", BIG, engine.allocation_of(BIG))
    exchange_token.approve(BIG, ENGINE, engine.allocation_of(BIG))
    engine.enter_partnership(BIG).unwrap()

    clock.set(engine.cliff_end)
    ledger.engine = engine
    outer = engine.claim_reward_assets(BIG)

    assert outer.value == 250_000 * RWD
    assert [r.code for r in ledger.reentry_results] == ["NothingToClaim"]
    assert reward_token.balance_of(BIG) == 250_000 * RWD
    assert engine.balance_of(BIG) == 250_000 * RWD
    assert len(engine.events.of_type(EventType.DEPOSIT_TOKEN_CLAIMED)) == 1


def test_concurrent_enters_are_serialized(partnership, funded_depositor, fund_partner):
    partnership.deposit(DEPOSITOR).unwrap()
    for address in PARTNERS:
        fund_partner(address)

    results = []
    threads = [
        threading.Thread(target=lambda a=address: results.append(partnership.enter_partnership(a)))
        for address in PARTNERS
        for _ in range(3)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r.ok) == len(PARTNERS)
    assert {r.code for r in results if not r.ok} == {"PartnerAlreadyFunded"}
    assert partnership.total_exchanged == sum(ALLOCATIONS)


def test_failed_exchange_sweep_does_not_pay_refund_twice(flaky_setup, reward_token, exchange_token, clock):
    engine, ledger = flaky_setup
    clock.set(engine.partnership_started_at)

    ledger.failing_assets = {"USDC"}
    assert engine.claim_exchange_assets().code == "TransferFailed"
    assert reward_token.balance_of(DEPOSITOR) == 0
    assert engine.reward_returned == 0

    ledger.failing_assets = set()
    sweep = engine.claim_exchange_assets().unwrap()
    assert sweep.reward_amount_returned == 500_000 * RWD
    assert engine.claim_exchange_assets().unwrap().reward_amount_returned == 0
    assert reward_token.balance_of(DEPOSITOR) == 500_000 * RWD
    assert exchange_token.balance_of(DEPOSITOR) == engine.allocation_of(BIG)

    clock.set(engine.vesting_end)
    assert engine.claim_reward_assets(BIG).value == 500_000 * RWD
    assert reward_token.balance_of(ENGINE) == 0


def test_failed_refund_after_exchange_sweep_is_retried_once(flaky_setup, reward_token, exchange_token, clock):
    engine, ledger = flaky_setup
    clock.set(engine.partnership_started_at)

    ledger.failing_assets = {"RWD"}
    assert engine.claim_exchange_assets().code == "TransferFailed"
    assert exchange_token.balance_of(DEPOSITOR) == engine.allocation_of(BIG)
    assert reward_token.balance_of(DEPOSITOR) == 0
    assert engine.reward_returned == 0

    ledger.failing_assets = set()
    sweep = engine.claim_exchange_assets().unwrap()
    assert sweep.exchange_amount == 0
    assert sweep.reward_amount_returned == 500_000 * RWD
    assert reward_token.balance_of(ENGINE) == engine.balance_of(BIG)


def test_raising_balance_lookup_is_reported_as_transfer_failed(flaky_setup, clock):
    engine, ledger = flaky_setup
    clock.set(engine.partnership_started_at)
    ledger.raise_balance = True
    result = engine.claim_exchange_assets()
    assert result.code == "TransferFailed"
    assert result.error.details["method"] == "balance_of"
    assert engine.reward_returned == 0
