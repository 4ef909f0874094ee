#!/usr/bin/env python3
"""Revert conditions raised by the billing contracts.

Every failure of a contract entrypoint is a :class:`Revert`. When raised
inside :meth:`Chain.transact` all state changes of the transaction are rolled
back before the error reaches the caller.
"""


class Revert(Exception):
    """A contract call failed and none of its effects survive."""


class Unauthorized(Revert):
    """Caller is not allowed to invoke the entrypoint."""


class Paused(Revert):
    """Contract is paused."""


class InvalidAddress(Revert):
    """A required address is the zero address or otherwise unusable."""


class InvalidAmount(Revert):
    """Amount or gas parameter is zero, mismatched or out of range."""


class InsufficientBalance(Revert):
    """Account does not hold enough tokens or ETH."""


class InsufficientAllowance(Revert):
    """Spender was not approved for the requested amount."""


class InsufficientValue(Revert):
    """Attached ETH does not cover the retryable ticket cost."""


class WrongEthValue(Revert):
    """Attached ETH does not cover the L2 removal request."""


class ExpiredAuthorization(Revert):
    """Signed authorization is past its deadline."""


class InvalidSignature(Revert):
    """Signature does not recover to an authorized signer."""


class NonceAlreadyUsed(Revert):
    """Signed authorization was already consumed."""


class RescueForbidden(Revert):
    """Rescue would take tokens the contract owes to its users."""


class UnbackedCredit(Revert):
    """Credit is not covered by tokens held by the ledger."""


class CallFailed(Revert):
    """Call targeted a non-contract or an unknown entrypoint."""
