#!/usr/bin/env python3
"""Billing ledger (L2).

The ledger is the authoritative record of prepaid token balances. Balances
grow through local deposits, bridged deposits from the L1 BillingConnector and
signed service credits; they shrink only through user withdrawals and
removals requested from L1.

Every credit is backed by tokens the ledger holds: ``total_balances`` never
exceeds the ledger's token balance.
"""

import logging
from typing import Final

from web3.constants import ADDRESS_ZERO

from .chain import MAX_UINT256, Chain, normalize_address, require_nonzero
from .controlled import ControlledContract
from .errors import (
    ExpiredAuthorization,
    InsufficientBalance,
    InvalidAmount,
    InvalidSignature,
    NonceAlreadyUsed,
    UnbackedCredit,
    Unauthorized,
)
from .messenger import undo_l1_to_l2_alias
from .models import ServiceCredit
from .utils.call_encoder import CallEncoder
from .utils.signing import recover_signer, service_credit_message

logger = logging.getLogger(__name__)

ADD_FROM_L1: Final[str] = "addFromL1(address,uint256)"
REMOVE_FROM_L1: Final[str] = "removeFromL1(address,address,uint256)"
ON_TOKEN_TRANSFER: Final[str] = "onTokenTransfer(address,uint256,bytes)"


def _require_amount(amount: int) -> None:
    if not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(f"Amount must be greater than 0, got {amount!r}")
    if amount > MAX_UINT256:
        raise InvalidAmount(f"Amount {amount} does not fit in uint256")


class Billing(ControlledContract):
    """L2 ledger of prepaid token balances."""

    EXTERNAL_CALLS = {
        ADD_FROM_L1: "add_from_l1",
        REMOVE_FROM_L1: "remove_from_l1",
        ON_TOKEN_TRANSFER: "on_token_transfer",
    }

    def __init__(self, chain: Chain, address: str, token: str, governor: str, l2_token_gateway: str) -> None:
        """
        Initialize the ledger.

        Args:
            chain: L2 chain the ledger lives on
            address: Deployment address
            token: L2 billing token
            governor: Initial governor
            l2_token_gateway: Gateway delivering bridged deposits
        """
        token = require_nonzero(token, "token")
        super().__init__(chain, address, governor, protected_token=token)
        self.token: str = token
        self.l2_token_gateway: str = require_nonzero(l2_token_gateway, "L2 token gateway")
        self.l1_billing_connector: str = ADDRESS_ZERO
        self.balances: dict[str, int] = {}
        self.total_balances: int = 0
        self.authorized_signers: set[str] = set()
        self.used_nonces: set[tuple[str, int]] = set()

    # -- views ------------------------------------------------------------

    def balance_of(self, user: str) -> int:
        return self.balances.get(normalize_address(user), 0)

    def is_authorized_signer(self, signer: str) -> bool:
        return normalize_address(signer) in self.authorized_signers

    def is_nonce_used(self, user: str, nonce: int) -> bool:
        return (normalize_address(user), nonce) in self.used_nonces

    def _owed_balance(self) -> int:
        return self.total_balances

    # -- credits ----------------------------------------------------------

    def add(self, user: str, amount: int) -> None:
        """Credit ``user`` with tokens pulled from the caller."""
        self._when_not_paused()
        user = require_nonzero(user, "user")
        _require_amount(amount)

        self._credit(user, amount)
        self._call(self.token, "transfer_from", self.msg.sender, self.address, amount)

    def add_to_many(self, users: list[str], amounts: list[int]) -> None:
        """Credit several users with tokens pulled from the caller in one transfer."""
        self._when_not_paused()
        if len(users) != len(amounts):
            raise InvalidAmount("Lengths not equal")

        total = 0
        for user, amount in zip(users, amounts):
            user = require_nonzero(user, "user")
            _require_amount(amount)
            self._credit(user, amount)
            total += amount

        if total:
            self._call(self.token, "transfer_from", self.msg.sender, self.address, total)

    def add_from_l1(self, to: str, amount: int) -> None:
        """Credit ``to``; callable only by a message from the L1 BillingConnector."""
        self._when_not_paused()
        self._only_l1_billing_connector()
        to = require_nonzero(to, "destination")
        _require_amount(amount)

        self._require_backed(amount)
        self._credit(to, amount)

    def on_token_transfer(self, from_: str, amount: int, data: bytes) -> None:
        """
        Token gateway callback for a bridged deposit.

        ``data`` is the ``addFromL1(to, amount)`` call the BillingConnector
        attached to the deposit; the gateway has already minted ``amount`` to
        the ledger.
        """
        self._when_not_paused()
        if self.msg.sender != self.l2_token_gateway:
            raise Unauthorized("Caller must be L2 token gateway")
        if self.l1_billing_connector == ADDRESS_ZERO or normalize_address(from_) != self.l1_billing_connector:
            raise Unauthorized("Only L1 BillingConnector can deposit through the gateway")

        to, credited = CallEncoder.decode_call(ADD_FROM_L1, data)
        if credited != amount:
            raise InvalidAmount(f"Callhook credits {credited} but {amount} were bridged")
        to = require_nonzero(to, "destination")
        _require_amount(amount)

        self._require_backed(amount)
        self._credit(to, amount)

    def add_from_service(self, user: str, amount: int, nonce: int, deadline: int, signature: bytes) -> None:
        """
        Credit ``user`` as approved off-chain by an authorized signer.

        The credit is funded from tokens the service already deposited into
        the ledger. Each ``(user, nonce)`` pair can be used once.
        """
        self._when_not_paused()
        user = require_nonzero(user, "user")
        _require_amount(amount)
        if self.chain.timestamp > deadline:
            raise ExpiredAuthorization(f"Authorization expired at {deadline}")

        credit = ServiceCredit(user=user, amount=amount, nonce=nonce, deadline=deadline)
        signer = recover_signer(service_credit_message(self.chain.chain_id, self.address, credit), signature)
        if signer not in self.authorized_signers:
            raise InvalidSignature(f"Signer {signer} is not authorized")
        if (user, nonce) in self.used_nonces:
            raise NonceAlreadyUsed(f"Nonce {nonce} already used for {user}")

        self._require_backed(amount)
        self.used_nonces.add((user, nonce))
        self._credit(user, amount)
        self._emit("ServiceCreditApplied", signer=signer, user=user, amount=amount, nonce=nonce)

    # -- removals ---------------------------------------------------------

    def remove(self, amount: int, to: str | None = None) -> None:
        """Withdraw ``amount`` of the caller's balance to ``to`` (default: caller)."""
        self._when_not_paused()
        sender = self.msg.sender
        to = require_nonzero(sender if to is None else to, "destination")
        _require_amount(amount)

        self._debit(sender, amount)
        self._call(self.token, "transfer", to, amount)
        self._emit("TokensRemoved", from_=sender, to=to, amount=amount)

    def remove_from_l1(self, from_: str, to: str, amount: int) -> None:
        """
        Withdraw ``from_``'s balance on behalf of an L1 request.

        Runs when the retryable ticket is redeemed on L2. If the balance is
        short the ticket fails here; the L1 transaction that paid for it has
        long succeeded and is not informed.
        """
        self._when_not_paused()
        self._only_l1_billing_connector()
        from_ = require_nonzero(from_, "user")
        to = require_nonzero(to, "destination")
        _require_amount(amount)

        if amount > (balance := self.balances.get(from_, 0)):
            logger.warning(
                f"L1 removal request for {from_} will fail and the ticket will revert: "
                f"requested {amount}, balance {balance}"
            )

        self._debit(from_, amount)
        self._call(self.token, "transfer", to, amount)
        self._emit("TokensRemovedFromL1", from_=from_, to=to, amount=amount)

    # -- governance -------------------------------------------------------

    def set_l2_token_gateway(self, l2_token_gateway: str) -> None:
        self._only_governor()
        self.l2_token_gateway = require_nonzero(l2_token_gateway, "L2 token gateway")
        self._emit("L2TokenGatewayUpdated", l2_token_gateway=self.l2_token_gateway)

    def set_l1_billing_connector(self, l1_billing_connector: str) -> None:
        self._only_governor()
        self.l1_billing_connector = require_nonzero(l1_billing_connector, "L1 BillingConnector")
        self._emit("L1BillingConnectorUpdated", l1_billing_connector=self.l1_billing_connector)

    def set_authorized_signer(self, signer: str, enabled: bool) -> None:
        self._only_governor()
        signer = require_nonzero(signer, "signer")
        if enabled:
            self.authorized_signers.add(signer)
        else:
            self.authorized_signers.discard(signer)
        self._emit("AuthorizedSignerUpdated", signer=signer, enabled=bool(enabled))

    # -- internals --------------------------------------------------------

    def _only_l1_billing_connector(self) -> None:
        connector = self.l1_billing_connector
        if connector == ADDRESS_ZERO or undo_l1_to_l2_alias(self.msg.sender) != connector:
            raise Unauthorized("Caller must be L1 BillingConnector")

    def _require_backed(self, amount: int) -> None:
        surplus = self._held(self.token) - self.total_balances
        if amount > surplus:
            raise UnbackedCredit(f"Ledger holds {surplus} unallocated tokens, cannot credit {amount}")

    def _credit(self, user: str, amount: int) -> None:
        self.balances[user] = self.balances.get(user, 0) + amount
        self.total_balances += amount
        self._emit("TokensAdded", user=user, amount=amount)

    def _debit(self, user: str, amount: int) -> None:
        if amount > (balance := self.balances.get(user, 0)):
            raise InsufficientBalance(f"{user} holds {balance}, cannot remove {amount}")
        self.balances[user] = balance - amount
        self.total_balances -= amount
