"""web3 connection and ABI loading for the deployed billing contracts."""

import json
from pathlib import Path
from typing import Any

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.contract import Contract
from web3.middleware import SignAndSendRawMiddlewareBuilder

ABI_DIR = Path(__file__).resolve().parents[3] / "contracts"


class ContractUtility:
    """
    One chain's Web3 connection plus the ABIs bundled under ``contracts/``.

    Without a private key the instance only serves calls and views; with one,
    transactions sent through ``transact`` are signed locally.
    """

    def __init__(self, rpc_url: str, secret: str = "") -> None:
        """
        Connect to ``rpc_url``.

        Args:
            rpc_url: HTTP RPC endpoint of the chain
            secret: Private key of the sending account, empty for views only
        """
        if not rpc_url:
            raise ValueError("RPC URL is required")

        self.rpc_url = rpc_url
        self.account: LocalAccount | None = None
        self.w3 = Web3(Web3.HTTPProvider(self.rpc_url))

        if secret:
            self._add_signing_middleware(secret)

    def _add_signing_middleware(self, secret: str) -> None:
        """Sign outgoing transactions with ``secret`` and make it the default sender."""
        if not secret:
            raise ValueError("Private key is required for signing transactions")

        account: LocalAccount = Account.from_key(secret)
        self.w3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(account))
        self.w3.eth.default_account = account.address
        self.account = account

    def get_contract_abi(self, contract_name: str) -> list[dict[str, Any]]:
        """Load the ABI stored in ``contracts/<contract_name>.json``.

        Raises:
            FileNotFoundError: If no ABI is bundled under that name
            json.JSONDecodeError: If the file is not valid JSON
        """
        with (ABI_DIR / f"{contract_name}.json").open() as file:
            contract_data: dict[str, Any] = json.load(file)

        return contract_data["abi"]

    def get_contract(self, contract_name: str, address: str) -> Contract:
        """Bind the ABI of ``contract_name`` to ``address``."""
        return self.w3.eth.contract(
            address=Web3.to_checksum_address(address),
            abi=self.get_contract_abi(contract_name),
        )
