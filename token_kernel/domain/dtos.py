"""
DTOs -- immutable values returned across the kernel boundary.

Responsibility:
    Frozen dataclasses handed to callers instead of ORM entities, so
    nothing outside a TokenLedger transaction can mutate ledger rows.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() converters are only
    invoked from the service and selector layers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping
from uuid import UUID

from token_kernel.domain.lifecycle import MigrationState

if TYPE_CHECKING:
    from token_kernel.models.ledger_event import LedgerEvent as LedgerEventModel
    from token_kernel.models.migration import MigrationRecord as MigrationRecordModel
    from token_kernel.models.token_state import TokenState as TokenStateModel


@dataclass(frozen=True)
class TokenInfo:
    """Metadata, supply and phase flags of one token."""

    token_id: UUID
    name: str
    symbol: str
    decimals: int
    total_supply: int
    minting_finished: bool
    released: bool
    migration_target_id: str | None
    total_migrated: int
    migration_state: MigrationState
    owner: str
    release_agent: str

    @property
    def upgrade_enabled(self) -> bool:
        return self.released and self.migration_target_id is not None

    @classmethod
    def from_model(cls, state: TokenStateModel) -> TokenInfo:
        lifecycle = state.lifecycle()
        return cls(
            token_id=state.id,
            name=state.name,
            symbol=state.symbol,
            decimals=state.decimals,
            total_supply=state.total_supply,
            minting_finished=lifecycle.minting_finished,
            released=lifecycle.released,
            migration_target_id=lifecycle.migration_target_id,
            total_migrated=lifecycle.total_migrated,
            migration_state=lifecycle.migration_state,
            owner=state.owner,
            release_agent=state.release_agent,
        )


@dataclass(frozen=True)
class LedgerEventInfo:
    """One entry of the public event log."""

    seq: int
    event_type: str
    caller: str
    payload: Mapping[str, Any]
    occurred_at: datetime

    @classmethod
    def from_model(cls, event: LedgerEventModel) -> LedgerEventInfo:
        event_type = getattr(event.event_type, "value", event.event_type)
        return cls(
            seq=event.seq,
            event_type=event_type,
            caller=event.caller,
            payload=MappingProxyType(dict(event.payload)),
            occurred_at=event.occurred_at,
        )


@dataclass(frozen=True)
class TransferReceipt:
    """Result of a committed transfer or transfer_from."""

    sender: str
    recipient: str
    amount: int
    event_seq: int


@dataclass(frozen=True)
class MintReceipt:
    """Result of a committed mint."""

    recipient: str
    amount: int
    total_supply: int
    event_seq: int


@dataclass(frozen=True)
class MigrationReceipt:
    """Result of a committed migrate or migrate_all."""

    account: str
    amount: int
    target_id: str
    total_migrated: int
    event_seq: int

    @classmethod
    def from_model(
        cls, record: MigrationRecordModel, total_migrated: int
    ) -> MigrationReceipt:
        return cls(
            account=record.account,
            amount=record.amount,
            target_id=record.target_id,
            total_migrated=total_migrated,
            event_seq=record.seq,
        )
