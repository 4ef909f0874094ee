#!/usr/bin/env python3
"""Configuration management for the billing tooling.

This module provides type-safe configuration dataclasses with validation
for the command-line tools talking to deployed Billing and BillingConnector
contracts. Configuration is loaded from environment variables with sensible
defaults where appropriate.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .messenger import estimate_required_value

# Get logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChainConfig:
    """Configuration for one side of the bridge.

    Attributes:
        label: Human-readable label ('L1' or 'L2'), used in error messages
        rpc_url: HTTP(S) RPC endpoint
    """

    label: str
    rpc_url: str

    def __post_init__(self) -> None:
        """Validate chain configuration."""
        if not self.rpc_url:
            raise ValueError(f"{self.label} RPC URL is required ({self.label}_RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https', 'ws', 'wss'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http, https, ws, or wss"
            )


@dataclass(frozen=True, slots=True)
class GasConfig:
    """Retryable ticket parameters attached to L1 -> L2 calls."""
    # Defaults sized for a single ledger call on L2
    max_gas: int = 400_000
    gas_price_bid: int = 200_000_000  # 0.2 gwei
    max_submission_cost: int = 100_000_000_000_000  # 0.0001 ETH

    def __post_init__(self) -> None:
        """Validate gas configuration."""
        if self.max_gas <= 0:
            raise ValueError(f"Max gas must be positive, got {self.max_gas}")
        if self.gas_price_bid <= 0:
            raise ValueError(f"Gas price bid must be positive, got {self.gas_price_bid}")
        if self.max_submission_cost <= 0:
            raise ValueError(f"Max submission cost must be positive, got {self.max_submission_cost}")

    @property
    def required_value(self) -> int:
        """ETH to attach to a call using these parameters."""
        return estimate_required_value(self.max_gas, self.gas_price_bid, self.max_submission_cost)


@dataclass(frozen=True, slots=True)
class BillingConfig:
    """Main configuration for the billing tooling.

    Attributes:
        l1: L1 chain configuration (BillingConnector side)
        l2: L2 chain configuration (Billing side)
        gas: Retryable ticket parameters
        address_book: Path to the JSON address book
        private_key: Key used to sign transactions (optional for read-only use)
    """

    l1: ChainConfig
    l2: ChainConfig
    gas: GasConfig
    address_book: Path
    private_key: str | None = None

    def __post_init__(self) -> None:
        """Validate billing configuration."""
        if self.private_key:
            # Basic private key validation (should be 64 hex chars, optionally with 0x prefix)
            key = self.private_key.removeprefix('0x')

            if len(key) != 64:
                raise ValueError(
                    f"Invalid private key length. Expected 64 hex characters, got {len(key)}"
                )

            try:
                int(key, 16)
            except ValueError:
                raise ValueError(
                    "Invalid private key format. Must be hexadecimal"
                ) from None

    @classmethod
    def from_env(cls) -> "BillingConfig":
        """Load configuration from environment variables.

        Returns:
            BillingConfig instance with loaded values

        Raises:
            ValueError: If required environment variables are missing or invalid
        """
        l1_config = ChainConfig(label="L1", rpc_url=os.environ.get("L1_RPC_URL", ""))
        l2_config = ChainConfig(label="L2", rpc_url=os.environ.get("L2_RPC_URL", ""))

        gas_config = GasConfig(
            max_gas=int(os.environ.get("MAX_GAS", "400000")),
            gas_price_bid=int(os.environ.get("GAS_PRICE_BID", "200000000")),
            max_submission_cost=int(os.environ.get("MAX_SUBMISSION_COST", "100000000000000")),
        )

        return cls(
            l1=l1_config,
            l2=l2_config,
            gas=gas_config,
            address_book=Path(os.environ.get("ADDRESS_BOOK", "addresses.json")),
            private_key=os.environ.get("PRIVATE_KEY") or None,
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Billing Bridge Configuration")
        logger.info("=" * 60)

        logger.info(f"L1 RPC URL: {self.l1.rpc_url}")
        logger.info(f"L2 RPC URL: {self.l2.rpc_url}")
        logger.info(f"Address Book: {self.address_book}")

        logger.info("Retryable Ticket Settings:")
        logger.info(f"  Max Gas: {self.gas.max_gas}")
        logger.info(f"  Gas Price Bid: {self.gas.gas_price_bid} wei")
        logger.info(f"  Max Submission Cost: {self.gas.max_submission_cost} wei")
        logger.info(f"  Required Value: {self.gas.required_value} wei")

        logger.info(f"Private Key: {'[CONFIGURED]' if self.private_key else '[NOT SET]'}")
        logger.info("=" * 60)
