#!/usr/bin/env python3
"""Emergency stop switch for contracts holding user funds."""

from web3.constants import ADDRESS_ZERO

from .chain import normalize_address
from .errors import Paused


class PauseSwitch:
    """Paused flag plus an optional guardian allowed to flip it."""

    def __init__(self) -> None:
        self.paused: bool = False
        self.pause_guardian: str = ADDRESS_ZERO

    def require_not_paused(self) -> None:
        if self.paused:
            raise Paused("Contract is paused")

    def can_toggle(self, caller: str, governor: str) -> bool:
        return caller == governor or (
            self.pause_guardian != ADDRESS_ZERO and caller == self.pause_guardian
        )

    def set_paused(self, paused: bool) -> bool:
        """Set the flag; returns True if it changed."""
        changed = self.paused != paused
        self.paused = paused
        return changed

    def set_pause_guardian(self, guardian: str) -> str:
        """Replace the guardian (zero disables it); returns the old one."""
        old_guardian = self.pause_guardian
        self.pause_guardian = normalize_address(guardian, "pause guardian")
        return old_guardian
