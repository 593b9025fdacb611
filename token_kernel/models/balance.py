"""
Module: token_kernel.models.balance
Responsibility: ORM persistence for per-account balances.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (token_id, account) (uq_balance_account).
    - amount is never negative (TokenAmount rejects it at bind time).
    - Sum of amounts per token equals TokenState.total_supply.
"""

from uuid import UUID

from sqlalchemy import ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import Base, TokenAmount, UUIDString
from token_kernel.db.types import AccountId


class AccountBalance(Base):
    """Balance of one account in one token."""

    __tablename__ = "account_balances"

    __table_args__ = (
        UniqueConstraint("token_id", "account", name="uq_balance_account"),
        Index("idx_balance_token", "token_id"),
    )

    token_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("token_states.id"),
        nullable=False,
    )

    account: Mapped[AccountId] = mapped_column(nullable=False)

    amount: Mapped[int] = mapped_column(
        TokenAmount(),
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<AccountBalance {self.account}: {self.amount}>"
