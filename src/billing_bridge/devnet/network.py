#!/usr/bin/env python3
"""A wired L1 + L2 deployment of the billing contracts."""

import logging
import time

from ..billing import Billing
from ..billing_connector import BillingConnector
from ..chain import Chain
from .rollup import DEFAULT_TICKET_LIFETIME, Inbox, L1TokenGateway, L2TokenGateway, RetryableRelay
from .token import Token

logger = logging.getLogger(__name__)

TOKEN_NAME = "Graph Token"
TOKEN_SYMBOL = "GRT"


class Devnet:
    """
    Both chains with the token bridge, inbox, ledger and connector deployed.

    The governor deploys everything, is a minter of both tokens and owns
    every contract. ``relay`` redeems tickets submitted through the inbox.
    """

    def __init__(
        self,
        governor: str,
        l1_chain_id: int = 1,
        l2_chain_id: int = 42161,
        timestamp: int | None = None,
        ticket_lifetime: int = DEFAULT_TICKET_LIFETIME,
    ) -> None:
        now = int(time.time()) if timestamp is None else timestamp
        self.governor = governor
        self.l1 = Chain(l1_chain_id, "l1", timestamp=now)
        self.l2 = Chain(l2_chain_id, "l2", timestamp=now)

        self.l1_token = self.l1.deploy(governor, Token, TOKEN_NAME, TOKEN_SYMBOL, governor)
        self.inbox = self.l1.deploy(governor, Inbox)
        self.l1_gateway = self.l1.deploy(governor, L1TokenGateway, self.l1_token.address, self.inbox.address)

        self.l2_token = self.l2.deploy(governor, Token, TOKEN_NAME, TOKEN_SYMBOL, governor)
        self.l2_gateway = self.l2.deploy(
            governor, L2TokenGateway, self.l1_token.address, self.l2_token.address, self.l1_gateway.address
        )
        self.l1.transact(governor, self.l1_gateway.initialize, self.l2_gateway.address)

        for chain, token in ((self.l1, self.l1_token), (self.l2, self.l2_token)):
            chain.transact(governor, token.add_minter, governor)
        self.l2.transact(governor, self.l2_token.add_minter, self.l2_gateway.address)

        self.billing = self.l2.deploy(
            governor, Billing, self.l2_token.address, governor, self.l2_gateway.address
        )
        self.connector = self.l1.deploy(
            governor,
            BillingConnector,
            self.l1_gateway.address,
            self.billing.address,
            self.l1_token.address,
            governor,
            self.inbox.address,
        )
        self.l2.transact(governor, self.billing.set_l1_billing_connector, self.connector.address)

        self.relay = RetryableRelay(self.inbox, self.l2, ticket_lifetime=ticket_lifetime)
        logger.info(f"Devnet ready: Billing {self.billing.address}, BillingConnector {self.connector.address}")

    def advance(self, seconds: int) -> None:
        """Move both chain clocks forward."""
        self.l1.advance(seconds)
        self.l2.advance(seconds)

    def mint_l1(self, to: str, amount: int) -> None:
        self.l1.transact(self.governor, self.l1_token.mint, to, amount)

    def mint_l2(self, to: str, amount: int) -> None:
        self.l2.transact(self.governor, self.l2_token.mint, to, amount)
