"""
Module: token_kernel.models.agent
Responsibility: ORM persistence for delegated capabilities -- accounts that
    may mint while supply is open, or send before the token is released.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (token_id, account, role) (uq_agent_role).
    - Rows are toggled via ``enabled``; they are never deleted, so the
      history of who held a capability survives.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from token_kernel.db.base import TrackedBase, UUIDString
from token_kernel.db.types import AccountId


class AgentRole(str, Enum):
    """Delegated capability held by an agent account."""

    MINT = "mint"
    TRANSFER = "transfer"


class TokenAgent(TrackedBase):
    """An account holding a delegated capability for one token."""

    __tablename__ = "token_agents"

    __table_args__ = (
        UniqueConstraint("token_id", "account", "role", name="uq_agent_role"),
    )

    token_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("token_states.id"),
        nullable=False,
    )

    account: Mapped[AccountId] = mapped_column(nullable=False)

    role: Mapped[AgentRole] = mapped_column(String(20), nullable=False)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        role = self.role.value if isinstance(self.role, AgentRole) else self.role
        return f"<TokenAgent {self.account}: {role} enabled={self.enabled}>"
