#!/usr/bin/env python3
"""Address book of deployed contracts, keyed by chain id.

The file has the shape ``{"<chainId>": {"Billing": "0x..", ...}}``, the same
layout the deployment tasks write.
"""

import json
import logging
from pathlib import Path

from web3 import Web3

logger = logging.getLogger(__name__)

KNOWN_CONTRACTS = frozenset({
    "Billing",
    "BillingConnector",
    "GraphToken",
    "L2GraphToken",
    "BanxaWrapper",
})


class AddressBook:
    """Reads and writes contract addresses per chain."""

    def __init__(self, path: Path | str) -> None:
        """
        Load the address book, starting empty if the file does not exist.

        Args:
            path: Location of the JSON file
        """
        self.path = Path(path)
        self._entries: dict[str, dict[str, str]] = {}

        if self.path.exists():
            with self.path.open() as file:
                self._entries = json.load(file)
            logger.debug(f"Loaded address book {self.path} with chains {sorted(self._entries)}")

    def get(self, chain_id: int, name: str) -> str | None:
        return self._entries.get(str(chain_id), {}).get(name)

    def require(self, chain_id: int, name: str) -> str:
        """
        Return the address of ``name`` on ``chain_id``.

        Raises:
            ValueError: If the address book has no entry for it
        """
        if (address := self.get(chain_id, name)) is None:
            raise ValueError(f"No {name} address recorded for chain {chain_id} in {self.path}")
        return address

    def token(self, chain_id: int) -> str | None:
        """Billing token on ``chain_id``, L1 or L2 flavour."""
        return self.get(chain_id, "GraphToken") or self.get(chain_id, "L2GraphToken")

    def set(self, chain_id: int, name: str, address: str) -> None:
        if name not in KNOWN_CONTRACTS:
            raise ValueError(f"Unknown contract name: {name}")
        if not Web3.is_address(address):
            raise ValueError(f"Invalid {name} address: {address}")
        self._entries.setdefault(str(chain_id), {})[name] = Web3.to_checksum_address(address)

    def save(self) -> None:
        with self.path.open("w") as file:
            json.dump(self._entries, file, indent=2)
        logger.info(f"Address book written to {self.path}")
