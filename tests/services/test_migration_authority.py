"""
Tests for the Migration Authority.

Covers:
- Designation rules (owner only, before/after release, locked after a migration)
- migrate / migrate_all happy paths and receipts
- Ordering of failures: not released, no target, bad amount, funds
- Target rejection (False or raise) rolls the whole call back
- Migration records and total_migrated
"""

import pytest

from token_kernel.domain.lifecycle import MigrationState
from token_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    MigrationAlreadyActiveError,
    MigrationTargetRejectedError,
    NoMigrationTargetError,
    NotAuthorizedError,
    TransferNotReleasedError,
)
from token_kernel.ledger import TokenLedger
from token_kernel.models.ledger_event import LedgerEventType

from tests.support import ADMIN, ALICE, BOB, RaisingTarget, RecordingTarget


class TestDesignation:
    def test_designate_after_release_arms_authority(self, released_ledger, migration_target):
        assert released_ledger.migration_state() == MigrationState.WAITING_FOR_TARGET

        released_ledger.designate_migration_target(ADMIN, migration_target)

        assert released_ledger.upgrade_enabled() is True
        assert released_ledger.migration_state() == MigrationState.READY_TO_MIGRATE
        assert released_ledger.info().migration_target_id == "token-v2"

    def test_designate_before_release_not_armed(self, ledger, migration_target):
        ledger.designate_migration_target(ADMIN, migration_target)

        assert ledger.upgrade_enabled() is False
        assert ledger.migration_state() == MigrationState.NOT_ALLOWED
        ledger.release(ADMIN)
        assert ledger.upgrade_enabled() is True

    def test_only_admin_designates(self, released_ledger, migration_target):
        with pytest.raises(NotAuthorizedError):
            released_ledger.designate_migration_target(BOB, migration_target)

    def test_redesignate_before_any_migration(self, released_ledger):
        released_ledger.designate_migration_target(ADMIN, RecordingTarget("v2"))
        released_ledger.designate_migration_target(ADMIN, RecordingTarget("v3"))

        assert released_ledger.info().migration_target_id == "v3"

    def test_redesignate_after_migration_refused(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        released_ledger.migrate(ALICE, 1)

        with pytest.raises(MigrationAlreadyActiveError) as exc_info:
            released_ledger.designate_migration_target(ADMIN, RecordingTarget("v3"))

        assert exc_info.value.total_migrated == "1"
        assert released_ledger.info().migration_target_id == "token-v2"

    def test_target_without_identity_rejected(self, released_ledger):
        class Anonymous:
            def credit(self, account, amount):
                return True

        with pytest.raises(ValueError):
            released_ledger.designate_migration_target(ADMIN, Anonymous())
        assert released_ledger.info().migration_target_id is None

    def test_designation_recorded(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        event = released_ledger.events()[-1]

        assert event.event_type == LedgerEventType.MIGRATION_TARGET_DESIGNATED.value
        assert event.payload["target_id"] == "token-v2"
        assert event.payload["previous_target_id"] is None


class TestMigrate:
    def test_migrate_partial(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        receipt = released_ledger.migrate(ALICE, 40)

        assert receipt.account == ALICE
        assert receipt.amount == 40
        assert receipt.target_id == "token-v2"
        assert receipt.total_migrated == 40
        assert released_ledger.balance_of(ALICE) == 60
        assert released_ledger.total_supply() == 1060
        assert released_ledger.total_migrated() == 40
        assert migration_target.credits == [(ALICE, 40)]
        assert released_ledger.migration_state() == MigrationState.MIGRATING

    def test_migrate_all(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        receipt = released_ledger.migrate_all(ALICE)

        assert receipt.amount == 100
        assert released_ledger.balance_of(ALICE) == 0
        assert migration_target.credits == [(ALICE, 100)]

    def test_second_migrate_all_has_no_funds(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        released_ledger.migrate_all(ALICE)

        with pytest.raises(InsufficientFundsError) as exc_info:
            released_ledger.migrate_all(ALICE)
        assert exc_info.value.balance == "0"
        assert len(migration_target.credits) == 1

    def test_migrate_more_than_balance(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)

        with pytest.raises(InsufficientFundsError):
            released_ledger.migrate(ALICE, 101)
        assert migration_target.credits == []

    def test_migrate_zero_rejected(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        with pytest.raises(InvalidAmountError):
            released_ledger.migrate(ALICE, 0)

    def test_migrate_before_release(self, ledger, migration_target):
        ledger.designate_migration_target(ADMIN, migration_target)
        with pytest.raises(TransferNotReleasedError):
            ledger.migrate(ADMIN, 1)

    def test_not_released_reported_before_missing_target(self, ledger):
        with pytest.raises(TransferNotReleasedError):
            ledger.migrate(ADMIN, 0)

    def test_migrate_without_target(self, released_ledger):
        with pytest.raises(NoMigrationTargetError):
            released_ledger.migrate(ALICE, 1)

    def test_reopened_ledger_without_target_object(
        self, released_ledger, migration_target, session_factory
    ):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        detached = TokenLedger.open(session_factory, released_ledger.token_id)

        with pytest.raises(NoMigrationTargetError):
            detached.migrate(ALICE, 1)

    def test_migration_records(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        released_ledger.migrate(ALICE, 10)
        released_ledger.migrate(ADMIN, 25)

        records = released_ledger.migration_records()
        assert [(r.account, r.amount, r.total_migrated) for r in records] == [
            (ALICE, 10, 10),
            (ADMIN, 25, 35),
        ]
        assert released_ledger.verify_supply_conservation() == 1100 - 35

    def test_migrated_event(self, released_ledger, migration_target):
        released_ledger.designate_migration_target(ADMIN, migration_target)
        receipt = released_ledger.migrate(ALICE, 10)
        event = released_ledger.events()[-1]

        assert event.seq == receipt.event_seq
        assert event.event_type == LedgerEventType.MIGRATED.value
        assert dict(event.payload) == {"account": ALICE, "amount": "10", "target_id": "token-v2"}


class TestTargetRejection:
    def test_false_rolls_back(self, released_ledger):
        target = RecordingTarget(accept=False)
        released_ledger.designate_migration_target(ADMIN, target)
        before = len(released_ledger.events())

        with pytest.raises(MigrationTargetRejectedError) as exc_info:
            released_ledger.migrate(ALICE, 10)

        assert exc_info.value.target_id == "token-v2"
        assert released_ledger.balance_of(ALICE) == 100
        assert released_ledger.total_supply() == 1100
        assert released_ledger.total_migrated() == 0
        assert released_ledger.migration_records() == []
        assert len(released_ledger.events()) == before

    def test_raise_rolls_back_with_cause(self, released_ledger):
        released_ledger.designate_migration_target(ADMIN, RaisingTarget())

        with pytest.raises(MigrationTargetRejectedError) as exc_info:
            released_ledger.migrate_all(ALICE)

        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert released_ledger.balance_of(ALICE) == 100

    def test_rejection_does_not_lock_target(self, released_ledger):
        released_ledger.designate_migration_target(ADMIN, RecordingTarget(accept=False))
        with pytest.raises(MigrationTargetRejectedError):
            released_ledger.migrate(ALICE, 10)

        replacement = RecordingTarget("v3")
        released_ledger.designate_migration_target(ADMIN, replacement)
        released_ledger.migrate(ALICE, 10)
        assert replacement.credits == [(ALICE, 10)]

    def test_reentrant_target_refused(self, released_ledger):
        class Greedy:
            target_id = "greedy"

            def credit(self, account, amount):
                released_ledger.transfer(account, BOB, 1)
                return True

        released_ledger.designate_migration_target(ADMIN, Greedy())

        with pytest.raises(MigrationTargetRejectedError):
            released_ledger.migrate(ALICE, 10)
        assert released_ledger.balance_of(ALICE) == 100
        assert released_ledger.balance_of(BOB) == 0
