#!/usr/bin/env python3
"""Rollup infrastructure stand-ins: inbox, token gateways and ticket relay.

The inbox and gateways are contracts; :class:`RetryableRelay` plays the
off-chain party that redeems retryable tickets on L2. Redemption happens
whenever (and if ever) the relay is asked to, and its outcome never reaches
L1.
"""

import logging
from typing import Final

from web3.constants import ADDRESS_ZERO

from ..chain import Chain, Contract, normalize_address, require_nonzero
from ..errors import CallFailed, InsufficientValue, Revert, Unauthorized
from ..messenger import apply_l1_to_l2_alias, send_tx_to_l2, undo_l1_to_l2_alias
from ..models import L2GasParams, RetryableTicket, TicketStatus
from ..utils.call_encoder import CallEncoder

logger = logging.getLogger(__name__)

FINALIZE_INBOUND_TRANSFER: Final[str] = "finalizeInboundTransfer(address,address,address,uint256,bytes)"
DEFAULT_TICKET_LIFETIME: Final[int] = 7 * 24 * 60 * 60  # seconds


class Inbox(Contract):
    """L1 entry point of the rollup's message queue."""

    def __init__(self, chain: Chain, address: str) -> None:
        super().__init__(chain, address)
        self.tickets: dict[int, RetryableTicket] = {}
        self.next_ticket_id: int = 0

    def create_retryable_ticket(
        self,
        to: str,
        l2_call_value: int,
        max_submission_cost: int,
        excess_fee_refund_address: str,
        call_value_refund_address: str,
        gas_limit: int,
        max_fee_per_gas: int,
        data: bytes,
    ) -> int:
        """Queue a message for ``to`` on L2; returns the ticket id."""
        required = max_submission_cost + l2_call_value + gas_limit * max_fee_per_gas
        if self.msg.value < required:
            raise InsufficientValue(f"Insufficient value: needs {required} wei, got {self.msg.value}")

        ticket = RetryableTicket(
            ticket_id=self.next_ticket_id,
            sender=self.msg.sender,
            to=normalize_address(to),
            l2_call_value=l2_call_value,
            deposit=self.msg.value,
            max_submission_cost=max_submission_cost,
            gas_limit=gas_limit,
            max_fee_per_gas=max_fee_per_gas,
            excess_fee_refund_address=normalize_address(excess_fee_refund_address),
            call_value_refund_address=normalize_address(call_value_refund_address),
            data=bytes(data),
            created_at=self.chain.timestamp,
        )
        self.tickets[ticket.ticket_id] = ticket
        self.next_ticket_id += 1
        self._emit("InboxMessageDelivered", ticket_id=ticket.ticket_id, sender=ticket.sender, to=ticket.to)
        return ticket.ticket_id


class L1TokenGateway(Contract):
    """Escrows L1 tokens and forwards deposits to the L2 gateway."""

    def __init__(self, chain: Chain, address: str, l1_token: str, inbox: str) -> None:
        super().__init__(chain, address)
        self.l1_token: str = require_nonzero(l1_token, "L1 token")
        self.inbox: str = require_nonzero(inbox, "inbox")
        self.counterpart_gateway: str = ADDRESS_ZERO

    def initialize(self, counterpart_gateway: str) -> None:
        if self.counterpart_gateway != ADDRESS_ZERO:
            raise Unauthorized("Gateway already initialized")
        self.counterpart_gateway = require_nonzero(counterpart_gateway, "counterpart gateway")

    def outbound_transfer(
        self, token: str, to: str, amount: int, max_gas: int, gas_price_bid: int, data: bytes
    ) -> int:
        """
        Escrow ``amount`` from the caller and deposit it to ``to`` on L2.

        ``data`` is ``abi.encode(uint256 maxSubmissionCost, bytes callHookData)``.

        Returns:
            Ticket id of the deposit message
        """
        if normalize_address(token) != self.l1_token:
            raise CallFailed(f"Unsupported token {token}")
        if self.counterpart_gateway == ADDRESS_ZERO:
            raise CallFailed("Gateway not initialized")

        max_submission_cost, extra_data = CallEncoder.decode_gateway_data(data)
        sender = self.msg.sender
        to = require_nonzero(to, "destination")
        self._call(self.l1_token, "transfer_from", sender, self.address, amount)

        ticket_id = send_tx_to_l2(
            self,
            self.inbox,
            self.counterpart_gateway,
            refund_to=sender,
            l1_call_value=self.msg.value,
            l2_call_value=0,
            gas_params=L2GasParams(
                max_submission_cost=max_submission_cost,
                max_gas=max_gas,
                gas_price_bid=gas_price_bid,
            ),
            calldata=CallEncoder.encode_call(
                FINALIZE_INBOUND_TRANSFER, self.l1_token, sender, to, amount, extra_data
            ),
        )
        self._emit("DepositInitiated", l1_token=self.l1_token, from_=sender, to=to, seq_num=ticket_id, amount=amount)
        return ticket_id


class L2TokenGateway(Contract):
    """Mints bridged tokens on L2 and runs the deposit callhook."""

    EXTERNAL_CALLS = {FINALIZE_INBOUND_TRANSFER: "finalize_inbound_transfer"}

    def __init__(self, chain: Chain, address: str, l1_token: str, l2_token: str, counterpart_gateway: str) -> None:
        super().__init__(chain, address)
        self.l1_token: str = require_nonzero(l1_token, "L1 token")
        self.l2_token: str = require_nonzero(l2_token, "L2 token")
        self.counterpart_gateway: str = require_nonzero(counterpart_gateway, "counterpart gateway")

    def finalize_inbound_transfer(self, l1_token: str, from_: str, to: str, amount: int, data: bytes) -> None:
        if undo_l1_to_l2_alias(self.msg.sender) != self.counterpart_gateway:
            raise Unauthorized("Only counterpart gateway")
        if normalize_address(l1_token) != self.l1_token:
            raise CallFailed(f"Unsupported token {l1_token}")

        self._call(self.l2_token, "mint", to, amount)
        if data:
            self._call(to, "on_token_transfer", from_, amount, data)
        self._emit("DepositFinalized", l1_token=self.l1_token, from_=from_, to=to, amount=amount)


class RetryableRelay:
    """Off-chain redeemer of retryable tickets."""

    def __init__(self, inbox: Inbox, l2: Chain, ticket_lifetime: int = DEFAULT_TICKET_LIFETIME) -> None:
        """
        Initialize the relay.

        Args:
            inbox: L1 inbox holding submitted tickets
            l2: Chain the tickets execute on
            ticket_lifetime: Seconds a ticket stays redeemable
        """
        self.inbox = inbox
        self.l2 = l2
        self.ticket_lifetime = ticket_lifetime
        self.statuses: dict[int, TicketStatus] = {}

    def status(self, ticket_id: int) -> TicketStatus:
        self._ticket(ticket_id)
        return self.statuses.get(ticket_id, TicketStatus.PENDING)

    def pending(self) -> list[RetryableTicket]:
        """Tickets that can still be redeemed, oldest first."""
        return [
            ticket for ticket_id, ticket in sorted(self.inbox.tickets.items())
            if self.status(ticket_id) in (TicketStatus.PENDING, TicketStatus.FAILED)
        ]

    def redeem(self, ticket_id: int) -> bool:
        """
        Execute a ticket on L2 as the aliased L1 sender.

        Returns:
            True if the L2 call succeeded, False if it reverted or the ticket
            is no longer redeemable
        """
        ticket = self._ticket(ticket_id)

        match self.status(ticket_id):
            case TicketStatus.REDEEMED | TicketStatus.EXPIRED as status:
                logger.warning(f"Ticket {ticket_id} is {status.value}, not redeeming")
                return False

        if self.l2.timestamp > ticket.created_at + self.ticket_lifetime:
            self.statuses[ticket_id] = TicketStatus.EXPIRED
            logger.warning(f"Ticket {ticket_id} expired unredeemed")
            return False

        sender = apply_l1_to_l2_alias(ticket.sender)
        if ticket.l2_call_value:
            self.l2.fund(sender, ticket.l2_call_value)

        try:
            target = self.l2.contract_at(ticket.to)
            entrypoint, args = CallEncoder.resolve_call(target, ticket.data)
            self.l2.transact(sender, entrypoint, *args, value=ticket.l2_call_value)
        except Revert as e:
            self.statuses[ticket_id] = TicketStatus.FAILED
            logger.error(f"✗ Ticket {ticket_id} failed on L2: {e!r}")
            return False

        self.statuses[ticket_id] = TicketStatus.REDEEMED
        logger.info(f"✓ Redeemed {ticket}")
        return True

    def redeem_all(self) -> dict[int, bool]:
        """Attempt every redeemable ticket in submission order."""
        return {ticket.ticket_id: self.redeem(ticket.ticket_id) for ticket in self.pending()}

    def _ticket(self, ticket_id: int) -> RetryableTicket:
        if (ticket := self.inbox.tickets.get(ticket_id)) is None:
            raise KeyError(f"Unknown ticket {ticket_id}")
        return ticket
