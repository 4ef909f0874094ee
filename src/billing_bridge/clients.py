#!/usr/bin/env python3
"""Clients for the deployed Billing and BillingConnector contracts.

These submit signed transactions through a :class:`ContractUtility` and wait
for their receipts. Like the rest of the tooling they log failures and report
them as ``False`` instead of raising.
"""

import logging
from typing import TYPE_CHECKING, Any

from web3 import Web3
from web3.contract import Contract
from web3.types import HexBytes, TxReceipt, Wei

if TYPE_CHECKING:
    from .config import GasConfig
    from .utils.contract_utility import ContractUtility

logger = logging.getLogger(__name__)

RECEIPT_TIMEOUT = 120  # seconds


class _ContractClient:
    """Shared transaction plumbing."""

    def __init__(self, contract_util: "ContractUtility") -> None:
        self.contract_util: ContractUtility = contract_util

    @property
    def sender(self) -> str:
        if self.contract_util.account is None:
            raise ValueError("A private key is required to send transactions")
        return self.contract_util.account.address

    def _send(self, call: Any, description: str, value: int = 0) -> bool:
        """
        Send a contract call and wait for it to be mined.

        Args:
            call: Prepared contract function call
            description: Label used in log output
            value: Wei to attach

        Returns:
            True if the transaction was mined with status 1
        """
        try:
            tx_hash: HexBytes = call.transact({'from': self.sender, 'value': Wei(value)})
            logger.info(f"✓ {description} submitted: {Web3.to_hex(tx_hash)}")

            receipt: TxReceipt = self.contract_util.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=RECEIPT_TIMEOUT
            )
            if (status := receipt.get('status', 0)) == 1:
                logger.info(f"✓ {description} confirmed in block {receipt['blockNumber']}")
                return True

            logger.error(f"✗ {description} failed with status={status}")
            return False

        except Exception as e:
            logger.error(f"{description} failed: {e}", exc_info=True)
            return False


class BillingConnectorClient(_ContractClient):
    """Deposits to and removals from L2 through the L1 BillingConnector."""

    def __init__(
        self,
        contract_util: "ContractUtility",
        connector_address: str,
        token_address: str,
        gas: "GasConfig",
    ) -> None:
        """
        Initialize the client.

        Args:
            contract_util: L1 contract utility (with signing key)
            connector_address: BillingConnector address
            token_address: L1 billing token address
            gas: Retryable ticket parameters
        """
        super().__init__(contract_util)
        self.gas = gas
        self.contract: Contract = contract_util.get_contract("BillingConnector", connector_address)
        self.token: Contract = contract_util.get_contract("GraphToken", token_address)
        logger.info(f"BillingConnectorClient initialized for {self.contract.address}")

    async def add_to_l2(self, to: str, amount: int) -> bool:
        """
        Bridge ``amount`` tokens into ``to``'s L2 balance.

        Approves the connector first when the current allowance is short.

        Returns:
            True if every transaction succeeded
        """
        to = Web3.to_checksum_address(to)
        try:
            allowance: int = self.token.functions.allowance(self.sender, self.contract.address).call()
        except Exception as e:
            logger.error(f"Could not read allowance: {e}")
            return False

        if allowance < amount:
            logger.info(f"Allowance {allowance} below {amount}, approving BillingConnector")
            if not self._send(self.token.functions.approve(self.contract.address, amount), "Approval"):
                return False

        logger.info(f"Adding {amount} to L2 balance of {to} (value={self.gas.required_value} wei)")
        return self._send(
            self.contract.functions.addToL2(
                to, amount, self.gas.max_gas, self.gas.gas_price_bid, self.gas.max_submission_cost
            ),
            "addToL2",
            value=self.gas.required_value,
        )

    async def remove_on_l2(self, to: str, amount: int, l2_balance: int | None = None) -> bool:
        """
        Request removal of ``amount`` from the sender's L2 balance to ``to`` on L2.

        The connector cannot see L2 balances: a request exceeding the balance
        fails on L2 after the ticket fee is paid. Pass the current L2 balance
        to refuse such requests up front.

        Returns:
            True if the L1 request was mined (the L2 outcome is unknown)
        """
        to = Web3.to_checksum_address(to)
        match l2_balance:
            case None:
                logger.warning("L2 balance not checked; an insufficient balance will fail on L2 silently")
            case balance if balance < amount:
                logger.error(f"✗ L2 balance {balance} is below requested removal of {amount}")
                return False

        return self._send(
            self.contract.functions.removeOnL2(
                to, amount, self.gas.max_gas, self.gas.gas_price_bid, self.gas.max_submission_cost
            ),
            "removeOnL2",
            value=self.gas.required_value,
        )


class BillingClient(_ContractClient):
    """Reads balances from and administers the L2 Billing ledger."""

    def __init__(self, contract_util: "ContractUtility", billing_address: str) -> None:
        super().__init__(contract_util)
        self.contract: Contract = contract_util.get_contract("Billing", billing_address)

    def balance_of(self, user: str) -> int:
        return self.contract.functions.userBalances(Web3.to_checksum_address(user)).call()

    async def set_l1_billing_connector(self, connector: str) -> bool:
        connector = Web3.to_checksum_address(connector)
        if self.contract.functions.l1BillingConnector().call() == connector:
            logger.info(f"L1 BillingConnector already set to {connector}")
            return True
        return self._send(self.contract.functions.setL1BillingConnector(connector), "setL1BillingConnector")

    async def set_authorized_signer(self, signer: str, enabled: bool) -> bool:
        return self._send(
            self.contract.functions.setAuthorizedSigner(Web3.to_checksum_address(signer), enabled),
            "setAuthorizedSigner",
        )
