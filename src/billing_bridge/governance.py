#!/usr/bin/env python3
"""Two-step governance hand-off.

The governor nominates a successor, who must accept before the change takes
effect, so a mistyped address can never take control away.
"""

from web3.constants import ADDRESS_ZERO

from .chain import normalize_address, require_nonzero
from .errors import Unauthorized


class Governance:
    """Governor and pending-governor state of one contract."""

    def __init__(self, governor: str) -> None:
        self.governor: str = require_nonzero(governor, "governor")
        self.pending_governor: str = ADDRESS_ZERO

    def require_governor(self, caller: str) -> None:
        if caller != self.governor:
            raise Unauthorized("Only Governor can call")

    def transfer_ownership(self, caller: str, new_governor: str) -> str:
        """Nominate ``new_governor``; returns the checksummed nominee."""
        self.require_governor(caller)
        self.pending_governor = require_nonzero(new_governor, "governor")
        return self.pending_governor

    def accept_ownership(self, caller: str) -> tuple[str, str]:
        """Commit the pending hand-off.

        Returns:
            Tuple of (old governor, new governor)
        """
        caller = normalize_address(caller, "caller")
        if self.pending_governor == ADDRESS_ZERO or caller != self.pending_governor:
            raise Unauthorized("Caller must be pending governor")

        old_governor = self.governor
        self.governor = self.pending_governor
        self.pending_governor = ADDRESS_ZERO
        return old_governor, self.governor
