"""
Module: token_kernel.models.ledger_event
Responsibility: ORM persistence for the public event log that external
    indexers consume.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (token_kernel.db.immutability).
    - seq is strictly monotonic per token (uq_event_seq), allocated by
      EventRecorder from the latest committed seq.
    - Events are written in the same transaction as the state change they
      describe, so a rolled-back call leaves no event behind.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, UUIDString
from token_kernel.db.types import AccountId, Sequence


class LedgerEventType(str, Enum):
    """Publicly observable event kinds.

    Contract: every committed mutating call produces at least one event.
    """

    # Supply
    TOKEN_CREATED = "token_created"
    MINTED = "minted"
    MINTING_FINISHED = "minting_finished"
    MINT_AGENT_CHANGED = "mint_agent_changed"

    # Metadata
    METADATA_UPDATED = "metadata_updated"

    # Transfers
    TRANSFER = "transfer"
    APPROVAL = "approval"
    RELEASED = "released"
    RELEASE_AGENT_CHANGED = "release_agent_changed"
    TRANSFER_AGENT_CHANGED = "transfer_agent_changed"
    NOTIFIER_CHANGED = "notifier_changed"

    # Migration
    MIGRATION_TARGET_DESIGNATED = "migration_target_designated"
    MIGRATED = "migrated"

    # Administration
    OWNERSHIP_TRANSFERRED = "ownership_transferred"


class LedgerEvent(Base):
    """
    Public, append-only record of a committed state change.

    Guarantees:
        - payload values are JSON-safe; amounts are stored as decimal
          strings so 256-bit values survive every JSON consumer.
    """

    __tablename__ = "ledger_events"

    __table_args__ = (
        UniqueConstraint("token_id", "seq", name="uq_event_seq"),
        Index("idx_event_type", "token_id", "event_type"),
    )

    token_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("token_states.id"),
        nullable=False,
    )

    seq: Mapped[Sequence] = mapped_column(nullable=False)

    event_type: Mapped[LedgerEventType] = mapped_column(
        String(50),
        nullable=False,
    )

    # Account whose call produced the event
    caller: Mapped[AccountId] = mapped_column(nullable=False)

    payload: Mapped[dict] = mapped_column(JSON, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        event_type = (
            self.event_type.value
            if isinstance(self.event_type, LedgerEventType)
            else self.event_type
        )
        return f"<LedgerEvent #{self.seq} {event_type}>"
