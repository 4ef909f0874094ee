#!/usr/bin/env python3
"""Billing token stand-in with EIP-2612 permits.

Only what the billing contracts rely on is modelled: balances, allowances,
permits and gateway minting.
"""

from ..chain import Chain, normalize_address, require_nonzero
from ..controlled import ControlledContract
from ..errors import (
    ExpiredAuthorization,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidSignature,
    Unauthorized,
)
from ..utils.signing import permit_message, recover_signer


class Token(ControlledContract):
    """Minimal ERC20 token with permit and a set of minters."""

    decimals: int = 18

    def __init__(self, chain: Chain, address: str, name: str, symbol: str, governor: str) -> None:
        super().__init__(chain, address, governor)
        self.name = name
        self.symbol = symbol
        self.total_supply: int = 0
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.nonces: dict[str, int] = {}
        self.minters: set[str] = set()

    def balance_of(self, account: str) -> int:
        return self.balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    def nonce_of(self, owner: str) -> int:
        return self.nonces.get(normalize_address(owner), 0)

    def transfer(self, to: str, amount: int) -> bool:
        self._move(self.msg.sender, require_nonzero(to, "recipient"), amount)
        return True

    def approve(self, spender: str, amount: int) -> bool:
        spender = require_nonzero(spender, "spender")
        self.allowances[(self.msg.sender, spender)] = amount
        self._emit("Approval", owner=self.msg.sender, spender=spender, value=amount)
        return True

    def transfer_from(self, owner: str, to: str, amount: int) -> bool:
        owner = normalize_address(owner)
        spender = self.msg.sender
        if (allowed := self.allowances.get((owner, spender), 0)) < amount:
            raise InsufficientAllowance(f"{spender} may spend {allowed} of {owner}, needs {amount}")
        self.allowances[(owner, spender)] = allowed - amount
        self._move(owner, require_nonzero(to, "recipient"), amount)
        return True

    def permit(self, owner: str, spender: str, value: int, deadline: int, signature: bytes) -> None:
        """Set an allowance from the owner's EIP-712 signature."""
        owner = require_nonzero(owner, "owner")
        spender = require_nonzero(spender, "spender")
        if self.chain.timestamp > deadline:
            raise ExpiredAuthorization("Permit expired")

        nonce = self.nonces.get(owner, 0)
        message = permit_message(self.name, self.chain.chain_id, self.address, owner, spender, value, nonce, deadline)
        if recover_signer(message, signature) != owner:
            raise InvalidSignature("Permit signature does not match owner")

        self.nonces[owner] = nonce + 1
        self.allowances[(owner, spender)] = value
        self._emit("Approval", owner=owner, spender=spender, value=value)

    def mint(self, to: str, amount: int) -> None:
        if self.msg.sender not in self.minters:
            raise Unauthorized("Only minter can call")
        to = require_nonzero(to, "recipient")
        self.balances[to] = self.balances.get(to, 0) + amount
        self.total_supply += amount
        self._emit("Transfer", from_=None, to=to, value=amount)

    def add_minter(self, minter: str) -> None:
        self._only_governor()
        self.minters.add(require_nonzero(minter, "minter"))

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise InsufficientBalance(f"Negative transfer amount {amount}")
        if (balance := self.balances.get(sender, 0)) < amount:
            raise InsufficientBalance(f"{sender} holds {balance}, cannot transfer {amount}")
        self.balances[sender] = balance - amount
        self.balances[to] = self.balances.get(to, 0) + amount
        self._emit("Transfer", from_=sender, to=to, value=amount)
