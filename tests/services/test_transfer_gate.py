"""
Tests for the Transfer Gate: release, the release agent and transfer agents.

Covers:
- Transfers disabled before release, enabled after
- release() forces minting closed, atomically and on every call
- Only the release agent may release
- Release agent replacement before release only
- Transfer agents may send before release
"""

import pytest

from token_kernel.exceptions import (
    AlreadyReleasedError,
    NotAuthorizedError,
    SupplyClosedError,
    TransfersDisabledError,
)
from token_kernel.models.agent import AgentRole
from token_kernel.models.ledger_event import LedgerEventType

from tests.support import ADMIN, ALICE, BOB, CAROL, event_types


class TestRelease:
    def test_transfer_disabled_before_release(self, ledger):
        with pytest.raises(TransfersDisabledError) as exc_info:
            ledger.transfer(ADMIN, BOB, 10)

        assert exc_info.value.sender == ADMIN
        assert ledger.balance_of(ADMIN) == 1000
        assert ledger.balance_of(BOB) == 0

    def test_release_enables_transfers(self, ledger):
        assert ledger.release(ADMIN) is True

        ledger.transfer(ADMIN, BOB, 10)
        assert ledger.balance_of(ADMIN) == 990
        assert ledger.balance_of(BOB) == 10

    def test_release_closes_minting(self, ledger):
        assert ledger.is_minting_open() is True
        ledger.release(ADMIN)

        assert ledger.is_released() is True
        assert ledger.is_minting_open() is False
        with pytest.raises(SupplyClosedError):
            ledger.mint(ADMIN, BOB, 5)

    def test_release_events_in_order(self, ledger):
        ledger.release(ADMIN)
        assert event_types(ledger)[-2:] == [
            LedgerEventType.MINTING_FINISHED.value,
            LedgerEventType.RELEASED.value,
        ]

    def test_release_of_non_mintable_emits_only_released(self, make_ledger):
        ledger = make_ledger(mintable=False)
        ledger.release(ADMIN)

        types = event_types(ledger)
        assert types.count(LedgerEventType.MINTING_FINISHED.value) == 1
        assert types[-1] == LedgerEventType.RELEASED.value

    def test_second_release_is_noop(self, ledger):
        ledger.release(ADMIN)
        before = len(ledger.events())

        assert ledger.release(ADMIN) is False
        assert ledger.is_released() is True
        assert len(ledger.events()) == before

    def test_only_release_agent_releases(self, ledger):
        with pytest.raises(NotAuthorizedError) as exc_info:
            ledger.release(BOB)

        assert exc_info.value.capability == "release agent"
        assert ledger.is_released() is False
        assert ledger.is_minting_open() is True


class TestReleaseAgent:
    def test_dedicated_release_agent(self, make_ledger):
        ledger = make_ledger(release_agent=CAROL)

        with pytest.raises(NotAuthorizedError):
            ledger.release(ADMIN)
        ledger.release(CAROL)
        assert ledger.is_released() is True

    def test_set_release_agent(self, ledger):
        ledger.set_release_agent(ADMIN, CAROL)

        assert ledger.info().release_agent == CAROL
        with pytest.raises(NotAuthorizedError):
            ledger.release(ADMIN)
        ledger.release(CAROL)

    def test_set_release_agent_recorded(self, ledger):
        ledger.set_release_agent(ADMIN, CAROL)
        event = ledger.events()[-1]

        assert event.event_type == LedgerEventType.RELEASE_AGENT_CHANGED.value
        assert event.payload["previous_agent"] == ADMIN
        assert event.payload["new_agent"] == CAROL

    def test_only_admin_sets_release_agent(self, ledger):
        with pytest.raises(NotAuthorizedError):
            ledger.set_release_agent(BOB, BOB)

    def test_release_agent_frozen_after_release(self, ledger):
        ledger.release(ADMIN)
        with pytest.raises(AlreadyReleasedError):
            ledger.set_release_agent(ADMIN, CAROL)
        assert ledger.info().release_agent == ADMIN


class TestTransferAgents:
    def test_transfer_agent_sends_before_release(self, ledger):
        ledger.set_transfer_agent(ADMIN, ADMIN)
        ledger.transfer(ADMIN, ALICE, 100)

        assert ledger.balance_of(ALICE) == 100
        assert ledger.is_released() is False

    def test_recipient_of_agent_still_locked(self, ledger):
        ledger.set_transfer_agent(ADMIN, ADMIN)
        ledger.transfer(ADMIN, ALICE, 100)

        with pytest.raises(TransfersDisabledError):
            ledger.transfer(ALICE, BOB, 1)

    def test_disabled_agent_locked_again(self, ledger):
        ledger.set_transfer_agent(ADMIN, ADMIN)
        ledger.set_transfer_agent(ADMIN, ADMIN, enabled=False)

        assert ledger.is_agent(ADMIN, AgentRole.TRANSFER) is False
        with pytest.raises(TransfersDisabledError):
            ledger.transfer(ADMIN, ALICE, 1)

    def test_only_admin_sets_transfer_agents(self, ledger):
        with pytest.raises(NotAuthorizedError):
            ledger.set_transfer_agent(BOB, BOB)

    def test_transfer_agents_frozen_after_release(self, ledger):
        ledger.release(ADMIN)
        with pytest.raises(AlreadyReleasedError):
            ledger.set_transfer_agent(ADMIN, ALICE)
