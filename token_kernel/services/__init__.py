"""Kernel services: every write to token state goes through one of these."""

from token_kernel.services.access_control import AccessControl
from token_kernel.services.allowance_service import AllowanceService
from token_kernel.services.balance_ledger import BalanceLedger
from token_kernel.services.event_recorder import EventRecorder
from token_kernel.services.metadata_registry import MetadataRegistry
from token_kernel.services.migration_authority import MigrationAuthority
from token_kernel.services.supply_control import SupplyControl
from token_kernel.services.transfer_gate import TransferGate
from token_kernel.services.transfer_notifier import TransferNotifierSlot

__all__ = [
    "AccessControl",
    "AllowanceService",
    "BalanceLedger",
    "EventRecorder",
    "MetadataRegistry",
    "MigrationAuthority",
    "SupplyControl",
    "TransferGate",
    "TransferNotifierSlot",
]
