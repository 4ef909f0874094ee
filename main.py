#!/usr/bin/env python3
"""Command-line entry point for the billing bridge tooling.

Talks to deployed Billing (L2) and BillingConnector (L1) contracts whose
addresses are recorded in the address book.
"""

import argparse
import asyncio
import logging
import os
import sys
from decimal import Decimal

# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

# Get logger for this module
logger = logging.getLogger(__name__)

from eth_account import Account
from web3 import Web3

from src.billing_bridge.address_book import AddressBook
from src.billing_bridge.clients import BillingClient, BillingConnectorClient
from src.billing_bridge.config import BillingConfig
from src.billing_bridge.models import ServiceCredit
from src.billing_bridge.utils.contract_utility import ContractUtility
from src.billing_bridge.utils.signing import sign_service_credit


def to_grt(value: str) -> int:
    """Parse a token amount with 18 decimals (e.g. '1.5')."""
    return int(Web3.to_wei(Decimal(value), 'ether'))


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Billing bridge tooling - manage prepaid balances across L1 and L2",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  L1_RPC_URL           - RPC endpoint for L1 (BillingConnector side)
  L2_RPC_URL           - RPC endpoint for L2 (Billing side)
  PRIVATE_KEY          - Key used to sign transactions
  ADDRESS_BOOK         - Address book path (default: addresses.json)
  MAX_GAS              - L2 gas limit for retryable tickets
  GAS_PRICE_BID        - L2 gas price bid in wei
  MAX_SUBMISSION_COST  - Retryable submission cost in wei
  LOG_LEVEL            - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("print-account", help="Print the address of PRIVATE_KEY")

    balance = commands.add_parser("balance", help="Show a user's L2 Billing balance")
    balance.add_argument("--user", required=True, help="Account to look up")

    add = commands.add_parser("add-to-l2", help="Deposit tokens from L1 into an L2 balance")
    add.add_argument("--to", required=True, help="Account credited on L2")
    add.add_argument("--amount", required=True, help="Amount in GRT")

    remove = commands.add_parser("remove-on-l2", help="Request removal of L2 balance from L1")
    remove.add_argument("--to", required=True, help="L2 recipient of the removed tokens")
    remove.add_argument("--amount", required=True, help="Amount in GRT")
    remove.add_argument(
        "--skip-balance-check",
        action="store_true",
        default=False,
        help="Do not read the L2 balance before submitting"
    )

    commands.add_parser("configure-billing", help="Point L2 Billing at the L1 BillingConnector")

    signer = commands.add_parser("set-signer", help="Authorize or revoke a service signer on Billing")
    signer.add_argument("--signer", required=True, help="Signer address")
    signer.add_argument("--disable", action="store_true", default=False, help="Revoke instead of authorize")

    credit = commands.add_parser("sign-service-credit", help="Sign a service credit with PRIVATE_KEY")
    credit.add_argument("--billing", required=True, help="Billing contract address")
    credit.add_argument("--chain-id", required=True, type=int, help="L2 chain id")
    credit.add_argument("--user", required=True, help="Account to credit")
    credit.add_argument("--amount", required=True, help="Amount in GRT")
    credit.add_argument("--nonce", required=True, type=int, help="Per-user nonce")
    credit.add_argument("--deadline", required=True, type=int, help="Unix timestamp")

    return parser


def require_private_key() -> str:
    if not (key := os.environ.get("PRIVATE_KEY")):
        raise ValueError("PRIVATE_KEY environment variable is required")
    return key


async def run_command(args: argparse.Namespace) -> bool:
    """Execute the selected command; returns True on success."""
    match args.command:
        case "print-account":
            print(Account.from_key(require_private_key()).address)
            return True

        case "sign-service-credit":
            credit = ServiceCredit(
                user=Web3.to_checksum_address(args.user),
                amount=to_grt(args.amount),
                nonce=args.nonce,
                deadline=args.deadline,
            )
            signature = sign_service_credit(require_private_key(), args.chain_id, args.billing, credit)
            print(Web3.to_hex(signature))
            return True

    config: BillingConfig = BillingConfig.from_env()
    config.log_config()
    address_book = AddressBook(config.address_book)
    secret = config.private_key or ""

    l1_util = ContractUtility(config.l1.rpc_url, secret)
    l2_util = ContractUtility(config.l2.rpc_url, secret)
    l1_chain_id: int = l1_util.w3.eth.chain_id
    l2_chain_id: int = l2_util.w3.eth.chain_id
    billing = BillingClient(l2_util, address_book.require(l2_chain_id, "Billing"))

    match args.command:
        case "balance":
            print(Web3.from_wei(billing.balance_of(args.user), 'ether'))
            return True

        case "configure-billing":
            return await billing.set_l1_billing_connector(address_book.require(l1_chain_id, "BillingConnector"))

        case "set-signer":
            return await billing.set_authorized_signer(args.signer, not args.disable)

    token = address_book.token(l1_chain_id)
    if token is None:
        raise ValueError(f"No token address recorded for chain {l1_chain_id}")
    connector = BillingConnectorClient(
        l1_util,
        address_book.require(l1_chain_id, "BillingConnector"),
        token,
        config.gas,
    )

    match args.command:
        case "add-to-l2":
            return await connector.add_to_l2(args.to, to_grt(args.amount))
        case "remove-on-l2":
            amount = to_grt(args.amount)
            l2_balance = None if args.skip_balance_check else billing.balance_of(connector.sender)
            return await connector.remove_on_l2(args.to, amount, l2_balance=l2_balance)
        case _:
            raise ValueError(f"Unknown command: {args.command}")


async def main() -> None:
    """Main entry point for the billing bridge tooling.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    args: argparse.Namespace = build_parser().parse_args()
    setup_logging(args.log_level)

    try:
        if not await run_command(args):
            sys.exit(1)

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - L1_RPC_URL / L2_RPC_URL: RPC endpoints for both chains")
        logger.error("  - PRIVATE_KEY: Key used to sign transactions")
        logger.error("  - ADDRESS_BOOK: Address book with Billing and BillingConnector entries")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    # Run the main async function
    asyncio.run(main())
