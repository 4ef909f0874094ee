"""
Billing bridge package.

Cross-chain billing ledger: an L2 Billing ledger of prepaid token balances,
an L1 BillingConnector that deposits into and removes from it over the
rollup bridge, and the tooling that drives the deployed contracts.
"""

from .billing import Billing
from .billing_connector import BillingConnector
from .chain import Chain, Contract
from .config import BillingConfig
from .errors import Revert
from .messenger import apply_l1_to_l2_alias, estimate_required_value, undo_l1_to_l2_alias

__all__ = [
    "Billing",
    "BillingConfig",
    "BillingConnector",
    "Chain",
    "Contract",
    "Revert",
    "apply_l1_to_l2_alias",
    "estimate_required_value",
    "undo_l1_to_l2_alias",
]
__version__ = "0.1.0"
