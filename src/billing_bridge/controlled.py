#!/usr/bin/env python3
"""Administrative surface shared by the billing contracts.

Governance, pausing and rescue are separate capability objects; this base
class only exposes them as entrypoints and emits their events.
"""

from web3.constants import ADDRESS_ZERO

from .chain import Chain, Contract, require_nonzero
from .errors import Unauthorized
from .governance import Governance
from .pausable import PauseSwitch
from .rescue import TokenRescue


class ControlledContract(Contract):
    """Contract with a governor, a pause switch and token rescue."""

    def __init__(self, chain: Chain, address: str, governor: str, protected_token: str = ADDRESS_ZERO) -> None:
        super().__init__(chain, address)
        self.governance = Governance(governor)
        self.pause_switch = PauseSwitch()
        self.rescue = TokenRescue(protected_token)

    @property
    def governor(self) -> str:
        return self.governance.governor

    @property
    def pending_governor(self) -> str:
        return self.governance.pending_governor

    @property
    def paused(self) -> bool:
        return self.pause_switch.paused

    def _only_governor(self) -> None:
        self.governance.require_governor(self.msg.sender)

    def _when_not_paused(self) -> None:
        self.pause_switch.require_not_paused()

    def _owed_balance(self) -> int:
        """Protected tokens this contract owes its users."""
        return 0

    # -- governance -------------------------------------------------------

    def transfer_ownership(self, new_governor: str) -> None:
        pending = self.governance.transfer_ownership(self.msg.sender, new_governor)
        self._emit("NewPendingOwnership", from_=self.governor, to=pending)

    def accept_ownership(self) -> None:
        old_governor, new_governor = self.governance.accept_ownership(self.msg.sender)
        self._emit("NewOwnership", from_=old_governor, to=new_governor)

    # -- pausing ----------------------------------------------------------

    def set_paused(self, paused: bool) -> None:
        if not self.pause_switch.can_toggle(self.msg.sender, self.governor):
            raise Unauthorized("Only Governor or Pause Guardian can call")
        if self.pause_switch.set_paused(bool(paused)):
            self._emit("PauseChanged", paused=bool(paused))

    def set_pause_guardian(self, guardian: str) -> None:
        self._only_governor()
        old_guardian = self.pause_switch.set_pause_guardian(guardian)
        self._emit("NewPauseGuardian", old_guardian=old_guardian, new_guardian=self.pause_switch.pause_guardian)

    # -- rescue -----------------------------------------------------------

    def rescue_tokens(self, to: str, token: str, amount: int) -> None:
        """Send tokens stuck in this contract to ``to`` (governor only)."""
        self._only_governor()
        to = require_nonzero(to, "destination")
        token = require_nonzero(token, "token")
        self.rescue.check(to, token, amount, self._held(token), self._owed_balance())
        self._call(token, "transfer", to, amount)
        self._emit("TokensRescued", to=to, token=token, amount=amount)

    def _held(self, token: str) -> int:
        return self._view(token, "balance_of", self.address)
