#!/usr/bin/env python3
"""L1 -> L2 messaging through the rollup's retryable tickets.

This module wraps the inbox's ``createRetryableTicket`` primitive for L1
contracts and provides the address-aliasing rule L2 contracts use to
authenticate messages coming from a specific L1 contract.
"""

import logging
from typing import TYPE_CHECKING, Final

from web3 import Web3

from .chain import normalize_address
from .errors import InsufficientValue, InvalidAmount
from .models import L2GasParams

if TYPE_CHECKING:
    from .chain import Contract

logger = logging.getLogger(__name__)

L1_TO_L2_ALIAS_OFFSET: Final[int] = 0x1111000000000000000000000000000000001111
_ADDRESS_SPACE: Final[int] = 1 << 160


def apply_l1_to_l2_alias(l1_address: str) -> str:
    """Address under which an L1 contract's messages execute on L2."""
    value = int(normalize_address(l1_address), 16)
    return Web3.to_checksum_address(f"0x{(value + L1_TO_L2_ALIAS_OFFSET) % _ADDRESS_SPACE:040x}")


def undo_l1_to_l2_alias(l2_address: str) -> str:
    """Inverse of :func:`apply_l1_to_l2_alias`."""
    value = int(normalize_address(l2_address), 16)
    return Web3.to_checksum_address(f"0x{(value - L1_TO_L2_ALIAS_OFFSET) % _ADDRESS_SPACE:040x}")


def estimate_required_value(max_gas: int, gas_price_bid: int, max_submission_cost: int) -> int:
    """ETH a retryable ticket with these parameters must carry.

    Raises:
        InvalidAmount: If any parameter is negative
    """
    return L2GasParams(
        max_submission_cost=max_submission_cost,
        max_gas=max_gas,
        gas_price_bid=gas_price_bid,
    ).required_value


def send_tx_to_l2(
    sender: "Contract",
    inbox: str,
    target: str,
    refund_to: str,
    l1_call_value: int,
    l2_call_value: int,
    gas_params: L2GasParams,
    calldata: bytes,
) -> int:
    """
    Submit a retryable ticket from ``sender`` to ``target`` on L2.

    The message executes on L2 from ``apply_l1_to_l2_alias(sender.address)``
    at some later time, or never. Nothing here observes that outcome.

    Args:
        sender: L1 contract submitting the message
        inbox: Address of the rollup inbox
        target: L2 contract to call
        refund_to: L2 address refunded excess fees and call value
        l1_call_value: ETH sent along to the inbox
        l2_call_value: ETH forwarded to ``target`` on L2
        gas_params: L2 execution gas parameters
        calldata: Encoded call executed on L2

    Returns:
        Ticket sequence number assigned by the inbox

    Raises:
        InsufficientValue: If ``l1_call_value`` does not cover the ticket
    """
    if l2_call_value < 0:
        raise InvalidAmount(f"L2 call value must be non-negative, got {l2_call_value}")

    required = gas_params.required_value + l2_call_value
    if l1_call_value < required:
        raise InsufficientValue(f"Retryable ticket needs {required} wei, got {l1_call_value}")

    seq_num: int = sender._call(
        inbox,
        "create_retryable_ticket",
        target,
        l2_call_value,
        gas_params.max_submission_cost,
        refund_to,
        refund_to,
        gas_params.max_gas,
        gas_params.gas_price_bid,
        calldata,
        value=l1_call_value,
    )
    sender._emit("TxToL2", from_=sender.address, to=target, seq_num=seq_num, data=calldata)
    logger.info(f"Submitted retryable ticket {seq_num} from {sender.address} to {target}")
    return seq_num
