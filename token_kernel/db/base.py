"""
Module: token_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the UUID primary key convention, the 256-bit amount column type, and the
    TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - UUID primary keys: Every model inherits a uuid4-generated primary key.
    - Exact amounts: TokenAmount stores Python ints as decimal strings, so the
      full unsigned 256-bit range round-trips through any backend without
      float or Numeric truncation.  NEVER use float for token amounts.
    - Audit timestamps: TrackedBase provides created_at, updated_at and
      created_by.

Failure modes:
    - ValueError from TokenAmount if a negative or non-int value reaches the
      bind step (amounts are validated earlier by domain.amounts).
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from token_kernel.db.types import (
    AccountId,
    Sequence,
    ShortCode,
    TokenName,
    TokenSymbol,
)


class UUIDString(TypeDecorator):
    """
    UUID type stored as String(36) for cross-database portability.

    Guarantees:
        - process_bind_param: UUID -> str on INSERT/UPDATE.
        - process_result_value: str -> UUID on SELECT.
        - cache_ok=True enables SQLAlchemy statement caching.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return str(value)
        return None

    def process_result_value(self, value, dialect):
        if value is not None:
            return PyUUID(value)
        return None


class TokenAmount(TypeDecorator):
    """
    Unsigned integer amount stored as String(78).

    2**256 - 1 has 78 decimal digits.  Neither BigInteger nor SQLite's
    NUMERIC affinity can hold that range exactly, so amounts are persisted
    as their decimal text and converted back to ``int`` on load.

    Guarantees:
        - process_bind_param: int -> str, rejecting negatives and bools.
        - process_result_value: str -> int.
    """

    impl = String(78)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValueError(f"TokenAmount requires a non-negative int, got {value!r}")
        return str(value)

    def process_result_value(self, value, dialect):
        if value is not None:
            return int(value)
        return None


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4-generated UUID stored as String(36).
        - datetime maps to DateTime(timezone=True) -- always timezone-aware.
        - int maps to TokenAmount unless a column declares otherwise.
        - The Annotated aliases in db/types.py map to their fixed widths.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: TokenAmount(),
        # Annotated aliases from db/types.py
        AccountId: String(128),
        TokenName: String(200),
        TokenSymbol: String(32),
        Sequence: BigInteger,
        ShortCode: String(50),
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamp and actor tracking.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at auto-updates on every UPDATE.
        - created_by is required -- every row records the account whose
          call created it.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )


# Re-export UUID for convenience
UUID = PyUUID
