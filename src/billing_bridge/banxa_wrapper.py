#!/usr/bin/env python3
"""Order fulfilment wrapper for the Banxa fiat on-ramp (L2).

Banxa buys tokens for a customer and deposits them into the customer's
ledger balance in one call.
"""

from .chain import Chain, require_nonzero
from .controlled import ControlledContract
from .errors import InvalidAmount


class BanxaWrapper(ControlledContract):
    """Forwards fulfilled on-ramp orders into the Billing ledger."""

    def __init__(self, chain: Chain, address: str, token: str, billing: str, governor: str) -> None:
        super().__init__(chain, address, governor)
        self.token: str = require_nonzero(token, "token")
        self.billing: str = require_nonzero(billing, "Billing")

    def fulfil(self, to: str, amount: int) -> None:
        """Pull ``amount`` from the fulfiller and credit it to ``to`` in Billing."""
        self._when_not_paused()
        to = require_nonzero(to, "destination")
        if not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(f"Must add more than 0, got {amount!r}")

        fulfiller = self.msg.sender
        self._call(self.token, "transfer_from", fulfiller, self.address, amount)
        self._call(self.token, "approve", self.billing, amount)
        self._call(self.billing, "add", to, amount)
        self._emit("OrderFulfilled", fulfiller=fulfiller, to=to, amount=amount)
