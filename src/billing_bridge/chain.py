#!/usr/bin/env python3
"""In-memory execution model for one chain.

A :class:`Chain` executes contract entrypoints the way an EVM chain does:
sequentially, with ``msg.sender``/``msg.value`` frames for nested calls, and
with whole-transaction rollback when any call reverts. Contracts keep their
storage in plain instance attributes and reference each other by address.
"""

import copy
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Final, TypeVar

import rlp
from web3 import Web3
from web3.constants import ADDRESS_ZERO

from .errors import CallFailed, InsufficientBalance, InvalidAddress, Revert
from .models import LogEntry

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="Contract")

MAX_UINT256: Final[int] = 2**256 - 1


def normalize_address(value: str, label: str = "address") -> str:
    """Return ``value`` as a checksummed address.

    Raises:
        InvalidAddress: If ``value`` is not a 20-byte hex address
    """
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddress(f"Invalid {label}: {value!r}")
    return Web3.to_checksum_address(value)


def require_nonzero(value: str, label: str = "address") -> str:
    """Checksum ``value`` and reject the zero address."""
    address = normalize_address(value, label)
    if address == ADDRESS_ZERO:
        raise InvalidAddress(f"{label} must not be the zero address")
    return address


def contract_address(deployer: str, nonce: int) -> str:
    """Compute the CREATE address for ``deployer`` at ``nonce``."""
    encoded = rlp.encode([Web3.to_bytes(hexstr=deployer), nonce])
    return Web3.to_checksum_address(Web3.to_hex(Web3.keccak(encoded)[12:]))


@dataclass(frozen=True, slots=True)
class Msg:
    """Call frame context seen by the executing contract."""

    sender: str
    value: int = 0


class Chain:
    """A single chain: accounts, contracts, clock and event log."""

    def __init__(self, chain_id: int, name: str, timestamp: int | None = None) -> None:
        """
        Initialize an empty chain.

        Args:
            chain_id: EIP-155 chain id, also used in EIP-712 domains
            name: Label used in log output
            timestamp: Initial block timestamp (defaults to now)
        """
        self.chain_id = chain_id
        self.name = name
        self.timestamp: int = int(time.time()) if timestamp is None else timestamp
        self.logs: list[LogEntry] = []
        self._eth: dict[str, int] = {}
        self._nonces: dict[str, int] = {}
        self._contracts: dict[str, Contract] = {}
        self._frames: list[Msg] = []

    def __repr__(self) -> str:
        return f"Chain(name={self.name!r}, chain_id={self.chain_id})"

    # -- accounts ---------------------------------------------------------

    def eth_balance(self, account: str) -> int:
        return self._eth.get(normalize_address(account), 0)

    def fund(self, account: str, amount: int) -> None:
        """Credit native ETH to ``account`` (faucet)."""
        account = normalize_address(account)
        self._eth[account] = self._eth.get(account, 0) + amount

    def advance(self, seconds: int) -> None:
        self.timestamp += seconds

    # -- contracts --------------------------------------------------------

    def deploy(self, deployer: str, factory: type[C], *args: Any) -> C:
        """Deploy ``factory`` at the deployer's next CREATE address.

        Constructor arguments follow ``(chain, address)``. A constructor that
        raises leaves no trace on the chain.
        """
        deployer = normalize_address(deployer, "deployer")
        nonce = self._nonces.get(deployer, 0)
        address = contract_address(deployer, nonce)
        contract = factory(self, address, *args)
        self._nonces[deployer] = nonce + 1
        self._contracts[address] = contract
        logger.info(f"[{self.name}] Deployed {factory.__name__} at {address}")
        return contract

    def contract_at(self, address: str) -> "Contract":
        address = normalize_address(address)
        if (contract := self._contracts.get(address)) is None:
            raise CallFailed(f"No contract deployed at {address} on {self.name}")
        return contract

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    # -- execution --------------------------------------------------------

    @property
    def msg(self) -> Msg:
        if not self._frames:
            raise RuntimeError("No active call frame")
        return self._frames[-1]

    def transact(self, sender: str, entrypoint: Callable[..., Any], *args: Any, value: int = 0) -> Any:
        """Execute an external transaction from ``sender``.

        Either the entrypoint runs to completion or every state change it
        made (storage, ETH, events) is rolled back and the error re-raised.
        """
        if self._frames:
            raise RuntimeError("transact() cannot be nested; use Contract._call")

        snapshot = self._snapshot()
        try:
            return self.call(sender, entrypoint, *args, value=value)
        except Revert as e:
            self._restore(snapshot)
            logger.debug(f"[{self.name}] Transaction from {sender} reverted: {e!r}")
            raise
        except Exception as e:
            self._restore(snapshot)
            logger.error(f"[{self.name}] Transaction from {sender} failed unexpectedly: {e!r}")
            raise

    def call(self, sender: str, entrypoint: Callable[..., Any], *args: Any, value: int = 0) -> Any:
        """Invoke ``entrypoint`` in a new frame with ``sender`` as msg.sender."""
        target = getattr(entrypoint, "__self__", None)
        if not isinstance(target, Contract) or target.chain is not self:
            raise CallFailed(f"{entrypoint!r} is not an entrypoint of a contract on {self.name}")

        sender = normalize_address(sender, "sender")
        if value:
            self._move_eth(sender, target.address, value)

        self._frames.append(Msg(sender=sender, value=value))
        try:
            return entrypoint(*args)
        finally:
            self._frames.pop()

    def emit(self, address: str, event: str, args: dict[str, Any]) -> None:
        entry = LogEntry(address=address, event=event, args=args)
        self.logs.append(entry)
        logger.debug(f"[{self.name}] {entry}")

    def events(self, event: str | None = None, address: str | None = None) -> list[LogEntry]:
        """Return emitted events, optionally filtered by name and emitter."""
        return [
            entry for entry in self.logs
            if (event is None or entry.event == event)
            and (address is None or entry.address == address)
        ]

    def _move_eth(self, sender: str, recipient: str, amount: int) -> None:
        if amount < 0:
            raise CallFailed(f"Negative call value {amount}")
        if (balance := self._eth.get(sender, 0)) < amount:
            raise InsufficientBalance(f"{sender} holds {balance} wei, needs {amount}")
        self._eth[sender] = balance - amount
        self._eth[recipient] = self._eth.get(recipient, 0) + amount

    def _snapshot(self) -> dict[str, Any]:
        return {
            "eth": dict(self._eth),
            "logs": len(self.logs),
            "storage": {
                address: copy.deepcopy(contract._storage())
                for address, contract in self._contracts.items()
            },
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self._eth = snapshot["eth"]
        del self.logs[snapshot["logs"]:]
        for address, storage in snapshot["storage"].items():
            vars(self._contracts[address]).update(storage)


class Contract:
    """Base class for contracts executed by a :class:`Chain`.

    ``EXTERNAL_CALLS`` maps ABI signatures to entrypoint method names so that
    calldata arriving through a bridge can be dispatched.
    """

    EXTERNAL_CALLS: ClassVar[dict[str, str]] = {}

    def __init__(self, chain: Chain, address: str) -> None:
        self.chain = chain
        self.address = address

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address} on {self.chain.name})"

    @property
    def msg(self) -> Msg:
        return self.chain.msg

    def _storage(self) -> dict[str, Any]:
        return {key: value for key, value in vars(self).items() if key != "chain"}

    def _call(self, target: str, method: str, *args: Any, value: int = 0) -> Any:
        """Call ``method`` on the contract at ``target`` as this contract."""
        contract = self.chain.contract_at(target)
        if (entrypoint := getattr(contract, method, None)) is None:
            raise CallFailed(f"{type(contract).__name__} has no entrypoint {method}")
        return self.chain.call(self.address, entrypoint, *args, value=value)

    def _view(self, target: str, method: str, *args: Any) -> Any:
        return getattr(self.chain.contract_at(target), method)(*args)

    def _emit(self, event: str, **args: Any) -> None:
        self.chain.emit(self.address, event, args)
