#!/usr/bin/env python3
"""Tests for the L1 BillingConnector."""

import pytest
from web3.constants import ADDRESS_ZERO

from src.billing_bridge.billing import REMOVE_FROM_L1
from src.billing_bridge.devnet.network import TOKEN_NAME
from src.billing_bridge.errors import (
    ExpiredAuthorization,
    InsufficientAllowance,
    InsufficientValue,
    InvalidAddress,
    InvalidAmount,
    InvalidSignature,
    Paused,
    Unauthorized,
    WrongEthValue,
)
from src.billing_bridge.utils.call_encoder import CallEncoder
from src.billing_bridge.utils.signing import permit_message, sign


def gas_args(gas_params):
    return gas_params.max_gas, gas_params.gas_price_bid, gas_params.max_submission_cost


class TestAddToL2:
    """Deposits bridged through the token gateway."""

    @pytest.fixture
    def approved(self, funded_devnet, user, grt):
        funded_devnet.l1.transact(user.address, funded_devnet.l1_token.approve, funded_devnet.connector.address, 1000 * grt)
        return funded_devnet

    def test_escrows_tokens_and_queues_deposit(self, approved, user, other, gas_params, ticket_value, grt):
        connector = approved.connector

        approved.l1.transact(
            user.address, connector.add_to_l2, other.address, 100 * grt, *gas_args(gas_params), value=ticket_value
        )

        assert approved.l1_token.balance_of(user.address) == 9_900 * grt
        assert approved.l1_token.balance_of(approved.l1_gateway.address) == 100 * grt
        assert approved.l1_token.balance_of(connector.address) == 0
        assert approved.l1.eth_balance(approved.inbox.address) == ticket_value

        [ticket] = approved.relay.pending()
        assert ticket.to == approved.l2_gateway.address
        event = approved.l1.events("TokensSentToL2", address=connector.address)[-1]
        assert event.args == {"from_": user.address, "to": other.address, "amount": 100 * grt}

        # Nothing on L2 until the ticket is redeemed
        assert approved.billing.balance_of(other.address) == 0

    def test_requires_allowance(self, funded_devnet, user, gas_params, ticket_value, grt):
        with pytest.raises(InsufficientAllowance):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.add_to_l2, user.address, grt, *gas_args(gas_params),
                value=ticket_value,
            )

        assert funded_devnet.l1.eth_balance(user.address) == 10**18

    def test_requires_ticket_value(self, approved, user, gas_params, ticket_value, grt):
        with pytest.raises(InsufficientValue):
            approved.l1.transact(
                user.address, approved.connector.add_to_l2, user.address, grt, *gas_args(gas_params),
                value=ticket_value - 1,
            )

        assert approved.l1_token.balance_of(user.address) == 10_000 * grt
        assert approved.inbox.tickets == {}

    def test_rejects_zero_amount_and_destination(self, approved, user, gas_params, ticket_value, grt):
        with pytest.raises(InvalidAmount, match="Must add more than 0"):
            approved.l1.transact(
                user.address, approved.connector.add_to_l2, user.address, 0, *gas_args(gas_params), value=ticket_value
            )
        with pytest.raises(InvalidAddress):
            approved.l1.transact(
                user.address, approved.connector.add_to_l2, ADDRESS_ZERO, grt, *gas_args(gas_params),
                value=ticket_value,
            )

    def test_paused(self, approved, governor, user, gas_params, ticket_value, grt):
        approved.l1.transact(governor.address, approved.connector.set_paused, True)

        with pytest.raises(Paused):
            approved.l1.transact(
                user.address, approved.connector.add_to_l2, user.address, grt, *gas_args(gas_params),
                value=ticket_value,
            )


class TestAddToL2WithPermit:
    """Deposits authorized by an EIP-2612 permit."""

    def _permit(self, devnet, owner, amount, deadline):
        token = devnet.l1_token
        message = permit_message(
            TOKEN_NAME,
            devnet.l1.chain_id,
            token.address,
            owner.address,
            devnet.connector.address,
            amount,
            token.nonce_of(owner.address),
            deadline,
        )
        return sign(message, owner.key)

    def test_permit_deposit(self, funded_devnet, user, gas_params, ticket_value, grt):
        deadline = funded_devnet.l1.timestamp + 600
        signature = self._permit(funded_devnet, user, 50 * grt, deadline)

        funded_devnet.l1.transact(
            user.address,
            funded_devnet.connector.add_to_l2_with_permit,
            user.address,
            50 * grt,
            *gas_args(gas_params),
            deadline,
            signature,
            value=ticket_value,
        )

        assert funded_devnet.l1_token.balance_of(funded_devnet.l1_gateway.address) == 50 * grt
        assert funded_devnet.l1_token.nonce_of(user.address) == 1
        assert funded_devnet.relay.redeem_all() == {0: True}
        assert funded_devnet.billing.balance_of(user.address) == 50 * grt

    def test_permit_signed_by_someone_else(self, funded_devnet, user, other, gas_params, ticket_value, grt):
        deadline = funded_devnet.l1.timestamp + 600
        signature = self._permit(funded_devnet, other, 50 * grt, deadline)

        with pytest.raises(InvalidSignature):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.add_to_l2_with_permit, user.address, 50 * grt,
                *gas_args(gas_params), deadline, signature, value=ticket_value,
            )

        assert funded_devnet.l1_token.nonce_of(user.address) == 0

    def test_zero_amount_permit(self, funded_devnet, user, gas_params, ticket_value):
        deadline = funded_devnet.l1.timestamp + 600
        signature = self._permit(funded_devnet, user, 0, deadline)

        with pytest.raises(InvalidAmount):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.add_to_l2_with_permit, user.address, 0,
                *gas_args(gas_params), deadline, signature, value=ticket_value,
            )

        assert funded_devnet.l1_token.nonce_of(user.address) == 0
        assert funded_devnet.l1.eth_balance(user.address) == 10**18
        assert funded_devnet.l1.events("TokensSentToL2") == []
        assert funded_devnet.inbox.tickets == {}

    def test_expired_permit(self, funded_devnet, user, gas_params, ticket_value, grt):
        deadline = funded_devnet.l1.timestamp + 600
        signature = self._permit(funded_devnet, user, 50 * grt, deadline)
        funded_devnet.advance(601)

        with pytest.raises(ExpiredAuthorization):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.add_to_l2_with_permit, user.address, 50 * grt,
                *gas_args(gas_params), deadline, signature, value=ticket_value,
            )


class TestRemoveOnL2:
    """Removal requests sent as retryable tickets."""

    def test_exact_value_queues_removal(self, funded_devnet, user, other, gas_params, ticket_value, grt):
        connector = funded_devnet.connector

        ticket_id = funded_devnet.l1.transact(
            user.address, connector.remove_on_l2, other.address, 5 * grt, *gas_args(gas_params), value=ticket_value
        )

        ticket = funded_devnet.inbox.tickets[ticket_id]
        assert ticket.sender == connector.address
        assert ticket.to == funded_devnet.billing.address
        assert CallEncoder.decode_call(REMOVE_FROM_L1, ticket.data) == (user.address, other.address, 5 * grt)
        # Removal moves no tokens on L1
        assert funded_devnet.l1_token.balance_of(user.address) == 10_000 * grt
        event = funded_devnet.l1.events("RemovalRequestSentToL2")[-1]
        assert event.args["ticket_id"] == ticket_id

    def test_value_below_required(self, funded_devnet, user, gas_params, ticket_value, grt):
        with pytest.raises(WrongEthValue):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.remove_on_l2, user.address, grt, *gas_args(gas_params),
                value=ticket_value - 1,
            )

        assert funded_devnet.inbox.tickets == {}

    def test_zero_submission_cost(self, funded_devnet, user, gas_params, grt):
        value = gas_params.max_gas * gas_params.gas_price_bid

        with pytest.raises(InvalidAmount, match="Submission cost must be > 0"):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.remove_on_l2, user.address, grt,
                gas_params.max_gas, gas_params.gas_price_bid, 0, value=value,
            )

    def test_zero_amount(self, funded_devnet, user, gas_params, ticket_value):
        with pytest.raises(InvalidAmount):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.remove_on_l2, user.address, 0, *gas_args(gas_params),
                value=ticket_value,
            )

    def test_amount_beyond_uint256(self, funded_devnet, user, gas_params, ticket_value):
        """An amount that cannot be ABI-encoded reverts and keeps the fee with the caller."""
        with pytest.raises(InvalidAmount, match="uint256"):
            funded_devnet.l1.transact(
                user.address, funded_devnet.connector.remove_on_l2, user.address, 2**256, *gas_args(gas_params),
                value=ticket_value,
            )

        assert funded_devnet.l1.eth_balance(user.address) == 10**18
        assert funded_devnet.l1.eth_balance(funded_devnet.connector.address) == 0
        assert funded_devnet.inbox.tickets == {}


class TestConnectorGovernance:
    """Governor-only configuration."""

    @pytest.mark.parametrize("setter,attribute", [
        ("set_l1_token_gateway", "l1_token_gateway"),
        ("set_l2_billing", "l2_billing"),
        ("set_arbitrum_inbox", "inbox"),
    ])
    def test_setters(self, devnet, governor, other, setter, attribute):
        connector = devnet.connector

        with pytest.raises(Unauthorized):
            devnet.l1.transact(other.address, getattr(connector, setter), other.address)
        with pytest.raises(InvalidAddress):
            devnet.l1.transact(governor.address, getattr(connector, setter), ADDRESS_ZERO)

        devnet.l1.transact(governor.address, getattr(connector, setter), other.address)
        assert getattr(connector, attribute) == other.address
