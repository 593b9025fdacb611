"""Tests for metadata updates and ownership transfer."""

import pytest

from token_kernel.exceptions import NotAuthorizedError
from token_kernel.models.ledger_event import LedgerEventType

from tests.support import ADMIN, ALICE, BOB, RecordingTarget


class TestMetadata:
    def test_round_trip(self, ledger):
        ledger.set_metadata(ADMIN, "Bar", "BAR")
        assert (ledger.name(), ledger.symbol()) == ("Bar", "BAR")

    @pytest.mark.parametrize("phase", ["fresh", "finished", "released", "migrating"])
    def test_round_trip_in_every_phase(self, ledger, phase):
        if phase == "finished":
            ledger.finish_minting(ADMIN)
        elif phase in ("released", "migrating"):
            ledger.release(ADMIN)
        if phase == "migrating":
            ledger.designate_migration_target(ADMIN, RecordingTarget())
            ledger.migrate(ADMIN, 1)

        ledger.set_metadata(ADMIN, "Renamed", "RNM")
        assert (ledger.name(), ledger.symbol()) == ("Renamed", "RNM")

    def test_empty_strings_accepted(self, ledger):
        ledger.set_metadata(ADMIN, "", "")
        assert ledger.name() == ""

    def test_non_string_rejected(self, ledger):
        with pytest.raises(TypeError):
            ledger.set_metadata(ADMIN, 42, "X")
        assert ledger.name() == "Foo"

    def test_only_admin(self, ledger):
        with pytest.raises(NotAuthorizedError):
            ledger.set_metadata(BOB, "Evil", "EVL")
        assert ledger.symbol() == "FOO"

    def test_change_recorded(self, ledger):
        ledger.set_metadata(ADMIN, "Bar", "BAR")
        event = ledger.events()[-1]

        assert event.event_type == LedgerEventType.METADATA_UPDATED.value
        assert event.payload["previous_symbol"] == "FOO"
        assert event.payload["symbol"] == "BAR"


class TestOwnership:
    def test_transfer_ownership(self, ledger):
        ledger.transfer_ownership(ADMIN, ALICE)

        assert ledger.info().owner == ALICE
        ledger.mint(ALICE, BOB, 1)
        with pytest.raises(NotAuthorizedError):
            ledger.mint(ADMIN, BOB, 1)

    def test_release_agent_unchanged(self, ledger):
        ledger.transfer_ownership(ADMIN, ALICE)
        assert ledger.info().release_agent == ADMIN

    def test_only_owner(self, ledger):
        with pytest.raises(NotAuthorizedError):
            ledger.transfer_ownership(BOB, BOB)

    def test_empty_new_owner_rejected(self, ledger):
        with pytest.raises(ValueError):
            ledger.transfer_ownership(ADMIN, "")
        assert ledger.info().owner == ADMIN

    def test_change_recorded(self, ledger):
        ledger.transfer_ownership(ADMIN, ALICE)
        event = ledger.events()[-1]

        assert event.event_type == LedgerEventType.OWNERSHIP_TRANSFERRED.value
        assert dict(event.payload) == {"previous_owner": ADMIN, "new_owner": ALICE}
