"""
Lifecycle -- the three phase machines as one aggregate.

Responsibility:
    Holds a frozen snapshot of Supply Control, Transfer Gate and Migration
    Authority state, validates whether an action is legal in that state,
    and computes the successor state for each transition.  Services read a
    snapshot from TokenState, call these pure functions, and write the
    result back.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    MINTING_MONOTONIC    -- minting_finished never reverts.
    RELEASE_MONOTONIC    -- released never reverts; release() always leaves
                            minting_finished True.
    MIGRATION_IRREVERSIBLE -- total_migrated never decreases; the target is
                            fixed once anything has migrated.

Failure modes:
    - SupplyClosedError, TransfersDisabledError, AlreadyReleasedError,
      TransferNotReleasedError, NoMigrationTargetError,
      MigrationAlreadyActiveError from validate_transition().
    - LifecycleViolationError from check_monotonic().

Transition table:

    action                      | requires
    ----------------------------|-------------------------------------------
    MINT / SET_MINT_AGENT       | minting open
    FINISH_MINTING              | (always; idempotent)
    RELEASE                     | (always; idempotent, closes minting)
    TRANSFER                    | released, or sender is a transfer agent
    SET_RELEASE_AGENT           | not released
    SET_TRANSFER_AGENT          | not released
    DESIGNATE_MIGRATION_TARGET  | nothing migrated yet
    MIGRATE                     | released, then target designated
"""

from dataclasses import dataclass, replace
from enum import Enum

from token_kernel.domain.amounts import checked_add
from token_kernel.exceptions import (
    AlreadyReleasedError,
    LifecycleViolationError,
    MigrationAlreadyActiveError,
    NoMigrationTargetError,
    SupplyClosedError,
    TransferNotReleasedError,
    TransfersDisabledError,
)


class LifecycleAction(str, Enum):
    """Every phase-gated operation."""

    MINT = "mint"
    FINISH_MINTING = "finish_minting"
    SET_MINT_AGENT = "set_mint_agent"
    RELEASE = "release"
    TRANSFER = "transfer"
    SET_RELEASE_AGENT = "set_release_agent"
    SET_TRANSFER_AGENT = "set_transfer_agent"
    DESIGNATE_MIGRATION_TARGET = "designate_migration_target"
    MIGRATE = "migrate"


class MigrationState(str, Enum):
    """Externally visible stage of the Migration Authority."""

    NOT_ALLOWED = "not_allowed"
    WAITING_FOR_TARGET = "waiting_for_target"
    READY_TO_MIGRATE = "ready_to_migrate"
    MIGRATING = "migrating"


@dataclass(frozen=True)
class LifecycleState:
    """Snapshot of the three phase machines."""

    minting_finished: bool = False
    released: bool = False
    migration_target_id: str | None = None
    total_migrated: int = 0

    @property
    def minting_open(self) -> bool:
        return not self.minting_finished

    @property
    def upgrade_enabled(self) -> bool:
        """Armed only once released AND a target is designated."""
        return self.released and self.migration_target_id is not None

    @property
    def has_migrated(self) -> bool:
        return self.total_migrated > 0

    @property
    def migration_state(self) -> MigrationState:
        if not self.released:
            return MigrationState.NOT_ALLOWED
        if self.migration_target_id is None:
            return MigrationState.WAITING_FOR_TARGET
        if not self.has_migrated:
            return MigrationState.READY_TO_MIGRATE
        return MigrationState.MIGRATING


def validate_transition(
    state: LifecycleState,
    action: LifecycleAction,
    *,
    token_id: str,
    sender: str = "",
    sender_is_transfer_agent: bool = False,
) -> None:
    """
    Raise the typed error for ``action`` if ``state`` forbids it.

    Pure: inspects only its arguments.  Capability checks (who may call)
    are not part of this function; they belong to AccessControl.
    """
    if action in (LifecycleAction.MINT, LifecycleAction.SET_MINT_AGENT):
        if state.minting_finished:
            raise SupplyClosedError(token_id)

    elif action == LifecycleAction.TRANSFER:
        if not state.released and not sender_is_transfer_agent:
            raise TransfersDisabledError(token_id, sender)

    elif action in (
        LifecycleAction.SET_RELEASE_AGENT,
        LifecycleAction.SET_TRANSFER_AGENT,
    ):
        if state.released:
            raise AlreadyReleasedError(token_id, action.value)

    elif action == LifecycleAction.DESIGNATE_MIGRATION_TARGET:
        if state.has_migrated:
            raise MigrationAlreadyActiveError(token_id, state.total_migrated)

    elif action == LifecycleAction.MIGRATE:
        if not state.released:
            raise TransferNotReleasedError(token_id)
        if state.migration_target_id is None:
            raise NoMigrationTargetError(token_id)

    # FINISH_MINTING and RELEASE are legal in every state (idempotent).


def finish_minting(state: LifecycleState) -> LifecycleState:
    return replace(state, minting_finished=True)


def release(state: LifecycleState) -> LifecycleState:
    """Open the gate and permanently close minting in one step."""
    return replace(state, released=True, minting_finished=True)


def designate(state: LifecycleState, target_id: str, *, token_id: str) -> LifecycleState:
    validate_transition(
        state, LifecycleAction.DESIGNATE_MIGRATION_TARGET, token_id=token_id
    )
    return replace(state, migration_target_id=target_id)


def record_migration(state: LifecycleState, amount: int) -> LifecycleState:
    return replace(state, total_migrated=checked_add(state.total_migrated, amount))


def check_monotonic(before: LifecycleState, after: LifecycleState) -> None:
    """
    Reject any successor state that moves a one-way flag backwards.

    Raises:
        LifecycleViolationError: naming the offending flag.
    """
    if before.minting_finished and not after.minting_finished:
        raise LifecycleViolationError("minting_finished")
    if before.released and not after.released:
        raise LifecycleViolationError("released")
    if after.total_migrated < before.total_migrated:
        raise LifecycleViolationError("total_migrated")
    if before.has_migrated and after.migration_target_id != before.migration_target_id:
        raise LifecycleViolationError("migration_target_id")
