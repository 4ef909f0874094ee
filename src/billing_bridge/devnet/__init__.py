"""
In-memory rollup deployment for simulating the billing bridge.
"""

from .network import Devnet
from .rollup import Inbox, L1TokenGateway, L2TokenGateway, RetryableRelay
from .token import Token

__all__ = ["Devnet", "Inbox", "L1TokenGateway", "L2TokenGateway", "RetryableRelay", "Token"]
