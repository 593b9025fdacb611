"""ORM models for the token kernel."""

from token_kernel.models.agent import AgentRole, TokenAgent
from token_kernel.models.allowance import Allowance
from token_kernel.models.balance import AccountBalance
from token_kernel.models.ledger_event import LedgerEvent, LedgerEventType
from token_kernel.models.migration import MigrationRecord
from token_kernel.models.token_state import TokenState

__all__ = [
    "AccountBalance",
    "AgentRole",
    "Allowance",
    "LedgerEvent",
    "LedgerEventType",
    "MigrationRecord",
    "TokenAgent",
    "TokenState",
]
