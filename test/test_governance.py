#!/usr/bin/env python3
"""Tests for governance hand-off, pausing and token rescue."""

import pytest
from web3.constants import ADDRESS_ZERO

from src.billing_bridge.devnet import Token
from src.billing_bridge.errors import InvalidAddress, InvalidAmount, Paused, RescueForbidden, Unauthorized
from src.billing_bridge.governance import Governance
from src.billing_bridge.pausable import PauseSwitch
from src.billing_bridge.rescue import TokenRescue


@pytest.fixture
def billing(devnet):
    return devnet.billing


class TestGovernance:
    """Two-step ownership transfer."""

    def test_transfer_requires_acceptance(self, devnet, billing, governor, other):
        devnet.l2.transact(governor.address, billing.transfer_ownership, other.address)

        assert billing.governor == governor.address
        assert billing.pending_governor == other.address

        devnet.l2.transact(other.address, billing.accept_ownership)

        assert billing.governor == other.address
        assert billing.pending_governor == ADDRESS_ZERO
        events = [e.event for e in devnet.l2.events(address=billing.address)]
        assert events[-2:] == ["NewPendingOwnership", "NewOwnership"]

    def test_only_governor_can_nominate(self, devnet, billing, other):
        with pytest.raises(Unauthorized, match="Only Governor"):
            devnet.l2.transact(other.address, billing.transfer_ownership, other.address)

    def test_only_pending_governor_can_accept(self, devnet, billing, governor, user, other):
        devnet.l2.transact(governor.address, billing.transfer_ownership, other.address)

        with pytest.raises(Unauthorized, match="pending governor"):
            devnet.l2.transact(user.address, billing.accept_ownership)

    def test_accept_without_nomination(self):
        governance = Governance("0x" + "01" * 20)

        with pytest.raises(Unauthorized):
            governance.accept_ownership(ADDRESS_ZERO)

    def test_zero_governor_rejected(self):
        with pytest.raises(InvalidAddress):
            Governance(ADDRESS_ZERO)

    def test_old_governor_loses_rights(self, devnet, billing, governor, other):
        devnet.l2.transact(governor.address, billing.transfer_ownership, other.address)
        devnet.l2.transact(other.address, billing.accept_ownership)

        with pytest.raises(Unauthorized):
            devnet.l2.transact(governor.address, billing.set_authorized_signer, governor.address, True)


class TestPausing:
    """Pause switch and guardian."""

    def test_paused_ledger_rejects_mutations(self, funded_devnet, billing, governor, user, grt):
        l2 = funded_devnet.l2
        l2.transact(user.address, funded_devnet.l2_token.approve, billing.address, 10 * grt)
        l2.transact(governor.address, billing.set_paused, True)

        with pytest.raises(Paused):
            l2.transact(user.address, billing.add, user.address, grt)

        l2.transact(governor.address, billing.set_paused, False)
        l2.transact(user.address, billing.add, user.address, grt)
        assert billing.balance_of(user.address) == grt

    def test_pause_event_only_on_change(self, devnet, billing, governor):
        devnet.l2.transact(governor.address, billing.set_paused, True)
        devnet.l2.transact(governor.address, billing.set_paused, True)

        assert len(devnet.l2.events("PauseChanged", address=billing.address)) == 1

    def test_guardian_can_pause(self, devnet, billing, governor, other):
        devnet.l2.transact(governor.address, billing.set_pause_guardian, other.address)
        devnet.l2.transact(other.address, billing.set_paused, True)

        assert billing.paused

    def test_stranger_cannot_pause(self, devnet, billing, user):
        with pytest.raises(Unauthorized, match="Pause Guardian"):
            devnet.l2.transact(user.address, billing.set_paused, True)

    def test_only_governor_sets_guardian(self, devnet, billing, other):
        with pytest.raises(Unauthorized):
            devnet.l2.transact(other.address, billing.set_pause_guardian, other.address)

    def test_zero_guardian_disables(self):
        switch = PauseSwitch()

        assert not switch.can_toggle(ADDRESS_ZERO, "0x" + "01" * 20)
        assert switch.set_paused(True)
        assert not switch.set_paused(True)
        with pytest.raises(Paused):
            switch.require_not_paused()


class TestRescue:
    """Recovery of tokens sent to a contract by mistake."""

    @pytest.fixture
    def deposited(self, funded_devnet, billing, user, grt):
        """Ledger owing ``user`` 100 GRT and holding 50 GRT more."""
        l2 = funded_devnet.l2
        l2.transact(user.address, funded_devnet.l2_token.approve, billing.address, 100 * grt)
        l2.transact(user.address, billing.add, user.address, 100 * grt)
        l2.transact(user.address, funded_devnet.l2_token.transfer, billing.address, 50 * grt)
        return funded_devnet

    def test_surplus_of_protected_token_is_rescuable(self, deposited, billing, governor, other, grt):
        deposited.l2.transact(
            governor.address, billing.rescue_tokens, other.address, deposited.l2_token.address, 50 * grt
        )

        assert deposited.l2_token.balance_of(other.address) == 50 * grt
        assert deposited.l2_token.balance_of(billing.address) == billing.total_balances
        assert deposited.l2.events("TokensRescued", address=billing.address)[-1].args["amount"] == 50 * grt

    def test_owed_tokens_are_not_rescuable(self, deposited, billing, governor, other, grt):
        with pytest.raises(RescueForbidden):
            deposited.l2.transact(
                governor.address, billing.rescue_tokens, other.address, deposited.l2_token.address, 50 * grt + 1
            )

        assert deposited.l2_token.balance_of(billing.address) == 150 * grt

    def test_other_tokens_fully_rescuable(self, devnet, billing, governor, other):
        stray = devnet.l2.deploy(governor.address, Token, "Stray", "STR", governor.address)
        devnet.l2.transact(governor.address, stray.add_minter, governor.address)
        devnet.l2.transact(governor.address, stray.mint, billing.address, 1234)

        devnet.l2.transact(governor.address, billing.rescue_tokens, other.address, stray.address, 1234)

        assert stray.balance_of(other.address) == 1234

    def test_rescue_validation(self, devnet, billing, governor, other):
        token = devnet.l2_token.address

        with pytest.raises(Unauthorized):
            devnet.l2.transact(other.address, billing.rescue_tokens, other.address, token, 1)
        with pytest.raises(InvalidAddress):
            devnet.l2.transact(governor.address, billing.rescue_tokens, ADDRESS_ZERO, token, 1)
        with pytest.raises(InvalidAddress):
            devnet.l2.transact(governor.address, billing.rescue_tokens, other.address, ADDRESS_ZERO, 1)
        with pytest.raises(InvalidAmount, match="Cannot rescue 0 tokens"):
            devnet.l2.transact(governor.address, billing.rescue_tokens, other.address, token, 0)

    def test_check_without_protected_token(self):
        rescue = TokenRescue()

        rescue.check("0x" + "01" * 20, "0x" + "02" * 20, 10, held=10, owed=10)
