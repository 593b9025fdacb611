"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  Concrete services receive the
    SQLAlchemy ``Session`` of the current TokenLedger call together with
    the token's aggregate row, which that call has already loaded (and,
    on PostgreSQL, locked ``FOR UPDATE``).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    CALL_ATOMICITY -- services flush within the caller's transaction and
        never commit or rollback themselves.  TokenLedger owns
        commit/rollback.

Failure modes:
    - If a subclass calls ``session.commit()``, a later failure (for
      example a rejecting notifier) could no longer undo the earlier
      writes of the same call.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from token_kernel.db.base import Base
from token_kernel.models.token_state import TokenState

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and the loaded ``TokenState`` from
        the caller and uses ``session.flush()`` to persist changes within
        the active transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT check who the caller is; TokenLedger does that through
          AccessControl before invoking a service.
    """

    def __init__(self, session: Session, state: TokenState):
        self.session = session
        self.state = state

    @property
    def token_id(self) -> str:
        return str(self.state.id)
