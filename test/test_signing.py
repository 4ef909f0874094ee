#!/usr/bin/env python3
"""Tests for EIP-712 signing helpers."""

import pytest
from eth_account import Account

from src.billing_bridge.errors import InvalidSignature
from src.billing_bridge.models import ServiceCredit
from src.billing_bridge.utils.signing import (
    permit_message,
    recover_signer,
    service_credit_message,
    sign,
    sign_service_credit,
)

BILLING = "0x85BfE05492aFC3D04Ff3B2ca6771ACF6f853d90d"
KEY = "0x" + "44" * 32


@pytest.fixture
def credit():
    return ServiceCredit(user="0x" + "ab" * 20, amount=10**18, nonce=3, deadline=1_700_000_600)


class TestServiceCreditSignatures:
    """Signing and recovering service credits."""

    def test_round_trip(self, credit):
        signature = sign_service_credit(KEY, 42161, BILLING, credit)

        assert len(signature) == 65
        assert recover_signer(service_credit_message(42161, BILLING, credit), signature) == Account.from_key(KEY).address

    def test_domain_binds_chain_and_contract(self, credit):
        signature = sign_service_credit(KEY, 42161, BILLING, credit)
        signer = Account.from_key(KEY).address

        assert recover_signer(service_credit_message(1, BILLING, credit), signature) != signer
        assert recover_signer(service_credit_message(42161, "0x" + "01" * 20, credit), signature) != signer

    def test_lowercase_user_signs_same_message(self, credit):
        upper = ServiceCredit(user="0x" + "AB" * 20, amount=credit.amount, nonce=credit.nonce, deadline=credit.deadline)

        assert service_credit_message(42161, BILLING, credit) == service_credit_message(42161, BILLING, upper)

    def test_garbage_signature(self, credit):
        with pytest.raises(InvalidSignature):
            recover_signer(service_credit_message(42161, BILLING, credit), b"\x01" * 3)


class TestPermitSignatures:
    """EIP-2612 permits."""

    def test_permit_round_trip(self):
        owner = Account.from_key(KEY)
        message = permit_message("Graph Token", 1, "0x" + "02" * 20, owner.address, BILLING, 100, 0, 1_700_000_600)

        assert recover_signer(message, sign(message, KEY)) == owner.address

    def test_nonce_is_signed(self):
        owner = Account.from_key(KEY)
        first = permit_message("Graph Token", 1, "0x" + "02" * 20, owner.address, BILLING, 100, 0, 1_700_000_600)
        second = permit_message("Graph Token", 1, "0x" + "02" * 20, owner.address, BILLING, 100, 1, 1_700_000_600)

        assert recover_signer(second, sign(first, KEY)) != owner.address
