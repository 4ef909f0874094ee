#!/usr/bin/env python3
"""Data models for the billing bridge.

This module provides immutable data classes shared by the contract model,
the rollup stand-ins and the off-chain tooling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .errors import InvalidAmount


@dataclass(frozen=True, slots=True)
class LogEntry:
    """An event emitted by a contract.

    Attributes:
        address: Address of the emitting contract
        event: Event name (e.g. ``TokensAdded``)
        args: Event arguments by name
    """

    address: str
    event: str
    args: dict[str, Any]

    def __str__(self) -> str:
        """Human-readable string representation."""
        return f"{self.event}@{self.address[:8]}...({self.args})"


@dataclass(frozen=True, slots=True)
class L2GasParams:
    """Gas parameters that prepay the L2 execution of a retryable ticket.

    Attributes:
        max_submission_cost: Fee for submitting the ticket on L2
        max_gas: Gas limit for the L2 execution
        gas_price_bid: Maximum L2 gas price
    """

    max_submission_cost: int
    max_gas: int
    gas_price_bid: int

    def __post_init__(self) -> None:
        """Validate gas parameters."""
        for name in ("max_submission_cost", "max_gas", "gas_price_bid"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise InvalidAmount(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def required_value(self) -> int:
        """ETH that must accompany a ticket using these parameters."""
        return self.max_submission_cost + self.max_gas * self.gas_price_bid


class TicketStatus(Enum):
    """Lifecycle of a retryable ticket, as seen by the off-chain relay."""

    PENDING = "pending"
    REDEEMED = "redeemed"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class RetryableTicket:
    """An L1 -> L2 message waiting for redemption on L2.

    Attributes:
        ticket_id: Sequence number assigned by the inbox
        sender: L1 address that submitted the ticket (aliased on L2)
        to: L2 destination address
        l2_call_value: ETH forwarded to the destination on L2
        deposit: ETH paid on L1 for the ticket
        max_submission_cost: Submission fee bid
        gas_limit: Gas limit for the L2 execution
        max_fee_per_gas: L2 gas price bid
        excess_fee_refund_address: L2 address refunded unused fees
        call_value_refund_address: L2 address refunded the call value on failure
        data: Calldata executed on L2
        created_at: L1 timestamp at submission
    """

    ticket_id: int
    sender: str
    to: str
    l2_call_value: int
    deposit: int
    max_submission_cost: int
    gas_limit: int
    max_fee_per_gas: int
    excess_fee_refund_address: str
    call_value_refund_address: str
    data: bytes
    created_at: int

    def __str__(self) -> str:
        """Human-readable string representation."""
        return (
            f"RetryableTicket(id={self.ticket_id}, "
            f"sender={self.sender[:8]}..., "
            f"to={self.to[:8]}..., "
            f"selector=0x{self.data[:4].hex()})"
        )


@dataclass(frozen=True, slots=True)
class ServiceCredit:
    """A balance credit approved off-chain by an authorized service signer.

    Attributes:
        user: Account whose ledger balance is credited
        amount: Token amount to credit
        nonce: Per-user nonce, usable once
        deadline: Unix timestamp after which the approval is void
    """

    user: str
    amount: int
    nonce: int
    deadline: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to the EIP-712 message representation."""
        return {
            "user": self.user,
            "amount": self.amount,
            "nonce": self.nonce,
            "deadline": self.deadline,
        }
