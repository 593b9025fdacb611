"""
MigrationAuthority -- one-way hand-over of balances to a successor system.

Responsibility:
    Records the designated migration target and executes per-account
    migrations: burn from this ledger, record the migration, then credit
    the external target.

Architecture position:
    Kernel > Services -- imperative shell.  The target object itself is a
    process-local capability held by TokenLedger; only its ``target_id`` is
    persisted on TokenState.

Invariants enforced:
    MIGRATION_IRREVERSIBLE -- a migrated amount leaves the ledger for good,
        total_migrated only grows, and MigrationRecord rows are append-only.
    - Armed only when released AND a target is designated.
    - The target cannot be redesignated once anything has migrated.
    - All ledger writes of a migration are flushed BEFORE the outbound
      credit call; if the target rejects, TokenLedger rolls the whole call
      back so the decrement is never observable.

Failure modes (checked in this order by migrate()):
    - TransferNotReleasedError
    - NoMigrationTargetError
    - InvalidAmountError (zero or malformed amount)
    - InsufficientFundsError
    - MigrationTargetRejectedError (target returned False or raised)
    - MigrationAlreadyActiveError from designate()
"""

from token_kernel.domain import lifecycle
from token_kernel.domain.amounts import require_amount
from token_kernel.domain.dtos import MigrationReceipt
from token_kernel.domain.interfaces import MigrationTarget
from token_kernel.domain.lifecycle import LifecycleAction, validate_transition
from token_kernel.exceptions import (
    InsufficientFundsError,
    MigrationTargetRejectedError,
    NoMigrationTargetError,
)
from token_kernel.logging_config import get_logger
from token_kernel.models.ledger_event import LedgerEventType
from token_kernel.models.migration import MigrationRecord
from token_kernel.models.token_state import TokenState
from token_kernel.services.balance_ledger import BalanceLedger
from token_kernel.services.base import BaseService
from token_kernel.services.event_recorder import EventRecorder

logger = get_logger("services.migration_authority")


def target_identity(target: MigrationTarget) -> str:
    target_id = getattr(target, "target_id", None)
    if not isinstance(target_id, str) or not target_id:
        raise ValueError("Migration target must expose a non-empty string target_id")
    if not callable(getattr(target, "credit", None)):
        raise ValueError(f"Migration target {target_id} has no credit(account, amount)")
    return target_id


class MigrationAuthority(BaseService[MigrationRecord]):
    """Migration phase machine for one token."""

    def __init__(
        self,
        session,
        state: TokenState,
        recorder: EventRecorder,
        ledger: BalanceLedger,
    ):
        super().__init__(session, state)
        self._recorder = recorder
        self._ledger = ledger

    def designate(self, caller: str, target: MigrationTarget) -> str:
        """
        Designate (or, before any migration, redesignate) the target.

        Returns:
            The recorded target_id.
        """
        target_id = target_identity(target)
        current = self.state.lifecycle()
        self.state.apply_lifecycle(
            lifecycle.designate(current, target_id, token_id=self.token_id)
        )
        self.session.flush()
        self._recorder.record(
            LedgerEventType.MIGRATION_TARGET_DESIGNATED,
            caller,
            target_id=target_id,
            previous_target_id=current.migration_target_id,
        )
        logger.info(
            "migration_target_designated",
            extra={"target_id": target_id, "armed": self.state.lifecycle().upgrade_enabled},
        )
        return target_id

    def migrate(
        self,
        account: str,
        amount: object,
        target: MigrationTarget | None,
    ) -> MigrationReceipt:
        """
        Move ``amount`` of ``account``'s balance to the designated target.

        Preconditions:
            - ``target`` is the attached object whose target_id matches the
              designation (TokenLedger resolves it).
        """
        current = self.state.lifecycle()
        validate_transition(current, LifecycleAction.MIGRATE, token_id=self.token_id)
        if target is None or target_identity(target) != current.migration_target_id:
            raise NoMigrationTargetError(self.token_id)

        value = require_amount(amount, allow_zero=False)
        return self._execute(account, value, target)

    def migrate_all(self, account: str, target: MigrationTarget | None) -> MigrationReceipt:
        current = self.state.lifecycle()
        validate_transition(current, LifecycleAction.MIGRATE, token_id=self.token_id)
        if target is None or target_identity(target) != current.migration_target_id:
            raise NoMigrationTargetError(self.token_id)

        balance = self._ledger.balance_of(account)
        if balance == 0:
            raise InsufficientFundsError(account, 0, 1)
        return self._execute(account, balance, target)

    def _execute(
        self, account: str, amount: int, target: MigrationTarget
    ) -> MigrationReceipt:
        target_id = self.state.migration_target_id

        self._ledger.burn(account, amount)
        self.state.apply_lifecycle(
            lifecycle.record_migration(self.state.lifecycle(), amount)
        )
        event = self._recorder.record(
            LedgerEventType.MIGRATED,
            account,
            account=account,
            amount=amount,
            target_id=target_id,
        )
        record = MigrationRecord(
            token_id=self.state.id,
            seq=event.seq,
            account=account,
            amount=amount,
            target_id=target_id,
        )
        self.session.add(record)
        self.session.flush()

        # Ledger writes are flushed; only now call out.
        try:
            accepted = target.credit(account, amount)
        except Exception as exc:
            logger.warning(
                "migration_target_raised",
                extra={"target_id": target_id, "error": type(exc).__name__},
            )
            raise MigrationTargetRejectedError(
                target_id, account, amount, reason=f"{type(exc).__name__}: {exc}"
            ) from exc
        if accepted is False:
            logger.warning("migration_target_rejected", extra={"target_id": target_id})
            raise MigrationTargetRejectedError(target_id, account, amount)

        logger.info(
            "account_migrated",
            extra={
                "account": account,
                "amount": str(amount),
                "total_migrated": str(self.state.total_migrated),
            },
        )
        return MigrationReceipt.from_model(record, self.state.total_migrated)
