"""
EIP-712 signing helpers.

Off-chain signers (the billing service, token holders granting a permit) and
the contracts verifying them build the same typed-data messages here, so a
signature produced by one side always recovers on the other.
"""

import logging
from typing import Any

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from web3 import Web3

from ..errors import InvalidSignature
from ..models import ServiceCredit

logger = logging.getLogger(__name__)

BILLING_DOMAIN_NAME = "Billing"
BILLING_DOMAIN_VERSION = "1"
TOKEN_DOMAIN_VERSION = "1"

_DOMAIN_TYPE: list[dict[str, str]] = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

SERVICE_CREDIT_TYPE: list[dict[str, str]] = [
    {"name": "user", "type": "address"},
    {"name": "amount", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]

PERMIT_TYPE: list[dict[str, str]] = [
    {"name": "owner", "type": "address"},
    {"name": "spender", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "deadline", "type": "uint256"},
]


def _domain(name: str, version: str, chain_id: int, verifying_contract: str) -> dict[str, Any]:
    return {
        "name": name,
        "version": version,
        "chainId": chain_id,
        "verifyingContract": Web3.to_checksum_address(verifying_contract),
    }


def service_credit_message(chain_id: int, billing_address: str, credit: ServiceCredit) -> SignableMessage:
    """Typed-data message a service signer signs to approve ``credit``."""
    return encode_typed_data(full_message={
        "types": {"EIP712Domain": _DOMAIN_TYPE, "ServiceCredit": SERVICE_CREDIT_TYPE},
        "primaryType": "ServiceCredit",
        "domain": _domain(BILLING_DOMAIN_NAME, BILLING_DOMAIN_VERSION, chain_id, billing_address),
        "message": {**credit.to_dict(), "user": Web3.to_checksum_address(credit.user)},
    })


def permit_message(
    token_name: str,
    chain_id: int,
    token_address: str,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> SignableMessage:
    """Typed-data message for an EIP-2612 permit."""
    return encode_typed_data(full_message={
        "types": {"EIP712Domain": _DOMAIN_TYPE, "Permit": PERMIT_TYPE},
        "primaryType": "Permit",
        "domain": _domain(token_name, TOKEN_DOMAIN_VERSION, chain_id, token_address),
        "message": {
            "owner": Web3.to_checksum_address(owner),
            "spender": Web3.to_checksum_address(spender),
            "value": value,
            "nonce": nonce,
            "deadline": deadline,
        },
    })


def sign(message: SignableMessage, private_key: str) -> bytes:
    """Sign ``message``; returns the 65-byte ``r || s || v`` signature."""
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)


def recover_signer(message: SignableMessage, signature: bytes) -> str:
    """
    Recover the address that signed ``message``.

    Raises:
        InvalidSignature: If the signature is malformed or unrecoverable
    """
    try:
        return Account.recover_message(message, signature=bytes(signature))
    except Exception as e:
        logger.debug(f"Signature recovery failed: {e}")
        raise InvalidSignature(f"Unrecoverable signature: {e}") from e


def sign_service_credit(private_key: str, chain_id: int, billing_address: str, credit: ServiceCredit) -> bytes:
    return sign(service_credit_message(chain_id, billing_address, credit), private_key)
