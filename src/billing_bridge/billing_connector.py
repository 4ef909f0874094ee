#!/usr/bin/env python3
"""BillingConnector (L1).

User-facing gateway on L1. Deposits travel through the token gateway with an
``addFromL1`` callhook for the L2 ledger; removals are plain retryable
messages to ``removeFromL1`` and move no tokens on L1.
"""

import logging

from .billing import ADD_FROM_L1, REMOVE_FROM_L1
from .chain import MAX_UINT256, Chain, require_nonzero
from .controlled import ControlledContract
from .errors import InvalidAmount, WrongEthValue
from .messenger import send_tx_to_l2
from .models import L2GasParams
from .utils.call_encoder import CallEncoder

logger = logging.getLogger(__name__)


class BillingConnector(ControlledContract):
    """L1 entry point for adding to and removing from the L2 ledger."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        l1_token_gateway: str,
        l2_billing: str,
        token: str,
        governor: str,
        inbox: str,
    ) -> None:
        """
        Initialize the connector.

        Args:
            chain: L1 chain
            address: Deployment address
            l1_token_gateway: Gateway escrowing tokens bridged to L2
            l2_billing: Billing ledger address on L2
            token: L1 billing token
            governor: Initial governor
            inbox: Rollup inbox for retryable tickets
        """
        super().__init__(chain, address, governor)
        self.l1_token_gateway: str = require_nonzero(l1_token_gateway, "L1 token gateway")
        self.l2_billing: str = require_nonzero(l2_billing, "L2 Billing")
        self.token: str = require_nonzero(token, "token")
        self.inbox: str = require_nonzero(inbox, "inbox")

    # -- deposits ---------------------------------------------------------

    def add_to_l2(self, to: str, amount: int, max_gas: int, gas_price_bid: int, max_submission_cost: int) -> None:
        """
        Bridge ``amount`` from the caller to ``to``'s balance on L2.

        The caller must have approved the connector; ``msg.value`` pays for
        the gateway's retryable ticket.
        """
        self._when_not_paused()
        to, params = self._validate(to, amount, max_gas, gas_price_bid, max_submission_cost)
        self._add_to_l2(self.msg.sender, to, amount, params)

    def add_to_l2_with_permit(
        self,
        to: str,
        amount: int,
        max_gas: int,
        gas_price_bid: int,
        max_submission_cost: int,
        deadline: int,
        signature: bytes,
    ) -> None:
        """Same as :meth:`add_to_l2`, authorized by a token permit instead of an allowance."""
        self._when_not_paused()
        to, params = self._validate(to, amount, max_gas, gas_price_bid, max_submission_cost)
        sender = self.msg.sender
        self._call(self.token, "permit", sender, self.address, amount, deadline, signature)
        self._add_to_l2(sender, to, amount, params)

    def _add_to_l2(self, sender: str, to: str, amount: int, params: L2GasParams) -> None:
        self._call(self.token, "transfer_from", sender, self.address, amount)
        self._call(self.token, "approve", self.l1_token_gateway, amount)

        extra_data = CallEncoder.encode_call(ADD_FROM_L1, to, amount)
        self._call(
            self.l1_token_gateway,
            "outbound_transfer",
            self.token,
            self.l2_billing,
            amount,
            params.max_gas,
            params.gas_price_bid,
            CallEncoder.encode_gateway_data(params.max_submission_cost, extra_data),
            value=self.msg.value,
        )
        self._emit("TokensSentToL2", from_=sender, to=to, amount=amount)
        logger.info(f"Sent {amount} tokens from {sender} to L2 for {to}")

    # -- removals ---------------------------------------------------------

    def remove_on_l2(self, to: str, amount: int, max_gas: int, gas_price_bid: int, max_submission_cost: int) -> int:
        """
        Ask the L2 ledger to send ``amount`` of the caller's balance to ``to`` on L2.

        Nothing here checks the caller's L2 balance. If it is short, the
        ticket fails on L2 and the ETH paid for it is spent without effect.

        Returns:
            Retryable ticket id
        """
        self._when_not_paused()
        to, params = self._validate(to, amount, max_gas, gas_price_bid, max_submission_cost)
        if self.msg.value < (expected := params.required_value):
            raise WrongEthValue(f"Expected at least {expected} wei, got {self.msg.value}")
        if params.max_submission_cost == 0:
            raise InvalidAmount("Submission cost must be > 0")

        sender = self.msg.sender
        ticket_id = send_tx_to_l2(
            self,
            self.inbox,
            self.l2_billing,
            refund_to=sender,
            l1_call_value=self.msg.value,
            l2_call_value=0,
            gas_params=params,
            calldata=CallEncoder.encode_call(REMOVE_FROM_L1, sender, to, amount),
        )
        self._emit("RemovalRequestSentToL2", from_=sender, to=to, amount=amount, ticket_id=ticket_id)
        return ticket_id

    # -- governance -------------------------------------------------------

    def set_l1_token_gateway(self, l1_token_gateway: str) -> None:
        self._only_governor()
        self.l1_token_gateway = require_nonzero(l1_token_gateway, "L1 token gateway")
        self._emit("L1TokenGatewayUpdated", l1_token_gateway=self.l1_token_gateway)

    def set_l2_billing(self, l2_billing: str) -> None:
        self._only_governor()
        self.l2_billing = require_nonzero(l2_billing, "L2 Billing")
        self._emit("L2BillingUpdated", l2_billing=self.l2_billing)

    def set_arbitrum_inbox(self, inbox: str) -> None:
        self._only_governor()
        self.inbox = require_nonzero(inbox, "inbox")
        self._emit("ArbitrumInboxUpdated", inbox=self.inbox)

    def _validate(
        self, to: str, amount: int, max_gas: int, gas_price_bid: int, max_submission_cost: int
    ) -> tuple[str, L2GasParams]:
        to = require_nonzero(to, "destination")
        if not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Must add more than 0, got {amount!r}")
        if amount > MAX_UINT256:
            raise InvalidAmount(f"Amount {amount} does not fit in uint256")
        return to, L2GasParams(
            max_submission_cost=max_submission_cost,
            max_gas=max_gas,
            gas_price_bid=gas_price_bid,
        )
