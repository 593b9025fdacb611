"""
Module: token_kernel.models.migration
Responsibility: ORM persistence for completed migrations -- value that has
    left this ledger for the designated successor system.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Append-only: no UPDATE or DELETE (token_kernel.db.immutability).
    - seq is unique per token and matches the MIGRATED ledger event.

Audit relevance:
    The sum of MigrationRecord.amount per token equals
    TokenState.total_migrated.  Together with the balances this accounts
    for every unit ever created.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, TokenAmount, UUIDString
from token_kernel.db.types import AccountId, Sequence


class MigrationRecord(Base):
    """One successful migrate()/migrate_all() invocation."""

    __tablename__ = "migration_records"

    __table_args__ = (
        UniqueConstraint("token_id", "seq", name="uq_migration_seq"),
    )

    token_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("token_states.id"),
        nullable=False,
    )

    seq: Mapped[Sequence] = mapped_column(nullable=False)

    account: Mapped[AccountId] = mapped_column(nullable=False)

    amount: Mapped[int] = mapped_column(TokenAmount(), nullable=False)

    target_id: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<MigrationRecord #{self.seq} {self.account}: {self.amount}>"
