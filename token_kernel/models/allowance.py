"""
Module: token_kernel.models.allowance
Responsibility: ORM persistence for spending approvals used by transfer_from.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (token_id, owner, spender) (uq_allowance_pair).
"""

from uuid import UUID

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, TokenAmount, UUIDString
from token_kernel.db.types import AccountId


class Allowance(Base):
    """Amount ``spender`` may still move out of ``owner``'s balance."""

    __tablename__ = "allowances"

    __table_args__ = (
        UniqueConstraint("token_id", "owner", "spender", name="uq_allowance_pair"),
    )

    token_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("token_states.id"),
        nullable=False,
    )

    owner: Mapped[AccountId] = mapped_column(nullable=False)

    spender: Mapped[AccountId] = mapped_column(nullable=False)

    amount: Mapped[int] = mapped_column(
        TokenAmount(),
        nullable=False,
        default=0,
    )
