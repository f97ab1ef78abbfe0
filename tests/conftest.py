"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add project root, src and the tests directory to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"
tests_path = Path(__file__).parent

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(src_path))
sys.path.insert(0, str(tests_path))

import pytest

from partnership.contracts.erc20 import ERC20Token
from partnership.contracts.token_ledger import TokenLedger
from partnership.core.engine import Partnership, PartnershipConfig
from partnership.core.interfaces import ManualClock
from partnership_scenario import (
    ALLOCATIONS,
    CLIFF,
    DEPOSITOR,
    ENGINE,
    PARTNERS,
    START,
    VESTING,
    WINDOW,
)


@pytest.fixture
def clock():
    return ManualClock(START)


@pytest.fixture
def reward_token():
    return ERC20Token(name="Reward", symbol="RWD", decimals=18)


@pytest.fixture
def exchange_token():
    return ERC20Token(name="USD Coin", symbol="USDC", decimals=6)


@pytest.fixture
def ledger(reward_token, exchange_token):
    return TokenLedger([reward_token, exchange_token], operator=ENGINE)


@pytest.fixture
def config():
    return PartnershipConfig(
        reward_asset="RWD",
        exchange_asset="USDC",
        exchange_rate=20_00,
        funding_window_duration=WINDOW,
        cliff_duration=CLIFF,
        vesting_duration=VESTING,
        depositor=DEPOSITOR,
        rate_decimals=2,
    )


@pytest.fixture
def partnership(config, ledger, clock):
    return Partnership(config, PARTNERS, ALLOCATIONS, ledger, clock=clock)


@pytest.fixture
def funded_depositor(partnership, reward_token):
    """Depositor holding and approving exactly the total allocation."""
    amount = partnership.total_allocation
    reward_token.mint("", DEPOSITOR, amount)
    reward_token.approve(DEPOSITOR, ENGINE, amount)
    return amount


@pytest.fixture
def fund_partner(partnership, exchange_token):
    def _fund(address):
        allocation = partnership.allocation_of(address)
        exchange_token.mint("", address, allocation)
        exchange_token.approve(address, ENGINE, allocation)
        return allocation
    return _fund


@pytest.fixture
def deposited(partnership, funded_depositor):
    partnership.deposit(DEPOSITOR).unwrap()
    return partnership
