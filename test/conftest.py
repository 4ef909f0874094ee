#!/usr/bin/env python3
"""Shared fixtures for the billing bridge tests."""

import pytest
from eth_account import Account
from eth_account.signers.local import LocalAccount

from src.billing_bridge.devnet import Devnet
from src.billing_bridge.models import L2GasParams

START_TIME = 1_700_000_000
ONE_ETH = 10**18
GRT = 10**18


@pytest.fixture
def gas_params() -> L2GasParams:
    """Retryable ticket parameters: 100k gas at 1 gwei plus 0.001 ETH submission."""
    return L2GasParams(max_submission_cost=10**15, max_gas=100_000, gas_price_bid=1_000_000_000)


@pytest.fixture
def ticket_value(gas_params) -> int:
    return gas_params.required_value


@pytest.fixture
def grt() -> int:
    """One token in base units."""
    return GRT


@pytest.fixture
def governor() -> LocalAccount:
    return Account.from_key("0x" + "11" * 32)


@pytest.fixture
def user() -> LocalAccount:
    return Account.from_key("0x" + "22" * 32)


@pytest.fixture
def other() -> LocalAccount:
    return Account.from_key("0x" + "33" * 32)


@pytest.fixture
def service_signer() -> LocalAccount:
    return Account.from_key("0x" + "44" * 32)


@pytest.fixture
def devnet(governor) -> Devnet:
    """Fresh L1 + L2 deployment with the governor owning every contract."""
    return Devnet(governor.address, timestamp=START_TIME)


@pytest.fixture
def funded_devnet(devnet, user) -> Devnet:
    """Devnet where ``user`` holds 1 ETH on L1 and 10,000 GRT on both chains."""
    devnet.l1.fund(user.address, ONE_ETH)
    devnet.mint_l1(user.address, 10_000 * GRT)
    devnet.mint_l2(user.address, 10_000 * GRT)
    return devnet
