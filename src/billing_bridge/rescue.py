#!/usr/bin/env python3
"""Recovery of tokens sent to a contract by mistake."""

from web3.constants import ADDRESS_ZERO

from .chain import normalize_address, require_nonzero
from .errors import InvalidAmount, RescueForbidden


class TokenRescue:
    """Rescue rules for one contract.

    The protected token is the one the contract owes to its users; only the
    part of its holdings above what is owed can leave through a rescue.
    """

    def __init__(self, protected_token: str = ADDRESS_ZERO) -> None:
        self.protected_token: str = normalize_address(protected_token, "protected token")

    def check(self, to: str, token: str, amount: int, held: int, owed: int) -> None:
        """
        Validate a rescue request.

        Args:
            to: Recipient of the rescued tokens
            token: Token to rescue
            amount: Amount to rescue
            held: Contract's balance of ``token``
            owed: Amount of ``token`` the contract owes its users

        Raises:
            InvalidAddress: If ``to`` or ``token`` is the zero address
            InvalidAmount: If ``amount`` is zero
            RescueForbidden: If the rescue would dip into owed funds
        """
        require_nonzero(to, "destination")
        token = require_nonzero(token, "token")
        if amount <= 0:
            raise InvalidAmount("Cannot rescue 0 tokens")

        if token == self.protected_token and amount > (surplus := max(held - owed, 0)):
            raise RescueForbidden(
                f"Only {surplus} of the protected token are rescuable, requested {amount}"
            )
