"""
ABI calldata utilities for the billing bridge.

This module encodes and decodes contract calls exactly as an EVM caller
would (4-byte selector followed by ABI-encoded arguments), so that messages
crossing the bridge carry the same bytes the deployed contracts exchange.
"""

import logging
from typing import TYPE_CHECKING, Any

from eth_abi import decode, encode
from hexbytes import HexBytes
from web3 import Web3

from ..errors import CallFailed

if TYPE_CHECKING:
    from ..chain import Contract

logger = logging.getLogger(__name__)


class CallEncoder:
    """Utilities for encoding contract calls."""

    @staticmethod
    def arg_types(signature: str) -> list[str]:
        """
        Extract argument types from a function signature.

        Args:
            signature: Canonical signature, e.g. ``addFromL1(address,uint256)``

        Returns:
            List of ABI type strings
        """
        if "(" not in signature or not signature.endswith(")"):
            raise ValueError(f"Malformed function signature: {signature}")
        inner = signature[signature.index("(") + 1:-1]
        return inner.split(",") if inner else []

    @staticmethod
    def selector(signature: str) -> bytes:
        """First four bytes of the keccak hash of the signature."""
        return bytes(Web3.keccak(text=signature)[:4])

    @staticmethod
    def encode_call(signature: str, *args: Any) -> bytes:
        """
        Encode a call to ``signature`` with ``args``.

        Args:
            signature: Canonical function signature
            *args: Positional arguments matching the signature

        Returns:
            Selector followed by the ABI-encoded arguments
        """
        types = CallEncoder.arg_types(signature)
        return CallEncoder.selector(signature) + encode(types, list(args))

    @staticmethod
    def decode_call(signature: str, data: bytes | str) -> tuple[Any, ...]:
        """
        Decode calldata produced by :meth:`encode_call`.

        Addresses are returned checksummed.

        Raises:
            CallFailed: If the selector does not match ``signature``
        """
        data = HexBytes(data)
        if data[:4] != CallEncoder.selector(signature):
            raise CallFailed(f"Calldata selector 0x{data[:4].hex()} does not match {signature}")

        types = CallEncoder.arg_types(signature)
        values = decode(types, data[4:])
        return tuple(
            Web3.to_checksum_address(value) if abi_type == "address" else value
            for abi_type, value in zip(types, values)
        )

    @staticmethod
    def encode_gateway_data(max_submission_cost: int, extra_data: bytes) -> bytes:
        """Encode the ``(uint256, bytes)`` payload passed to a token gateway."""
        return encode(["uint256", "bytes"], [max_submission_cost, extra_data])

    @staticmethod
    def decode_gateway_data(data: bytes) -> tuple[int, bytes]:
        max_submission_cost, extra_data = decode(["uint256", "bytes"], HexBytes(data))
        return max_submission_cost, extra_data

    @staticmethod
    def resolve_call(contract: "Contract", data: bytes | str) -> tuple[Any, tuple[Any, ...]]:
        """
        Map calldata onto an entrypoint of ``contract``.

        Args:
            contract: Contract receiving the call
            data: Raw calldata, as bytes or 0x-prefixed hex

        Returns:
            Tuple of (bound entrypoint, decoded arguments)

        Raises:
            CallFailed: If no entrypoint of the contract matches the selector
        """
        selector = bytes(HexBytes(data)[:4])
        for signature, method in contract.EXTERNAL_CALLS.items():
            if CallEncoder.selector(signature) == selector:
                logger.debug(f"Resolved 0x{selector.hex()} to {type(contract).__name__}.{method}")
                return getattr(contract, method), CallEncoder.decode_call(signature, data)

        raise CallFailed(f"{type(contract).__name__} has no entrypoint for selector 0x{selector.hex()}")
