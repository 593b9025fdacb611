"""
Kernel Invariants Contract.

These invariants are structural law for every token the kernel manages.
No configuration, agent registration or administrator action may
override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the lifecycle validator
(token_kernel.domain.lifecycle), the amount helpers
(token_kernel.domain.amounts), the ledger services, the immutability
listeners and the TokenLedger transaction boundary.
"""

from enum import Enum, unique


@unique
class KernelInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee that the kernel provides
    unconditionally.
    """

    SUPPLY_CONSERVATION = "supply_conservation"
    """sum(balances) == total_supply after every committed call. Checked
    by TokenSelector.verify_supply_conservation()."""

    MINTING_MONOTONIC = "minting_monotonic"
    """minting_finished moves false -> true only. Once true, total supply
    never increases. Enforced by domain.lifecycle.check_monotonic()."""

    RELEASE_MONOTONIC = "release_monotonic"
    """released moves false -> true only, and forces minting_finished.
    Enforced by domain.lifecycle.release()."""

    MIGRATION_IRREVERSIBLE = "migration_irreversible"
    """Migrated value leaves the ledger for good; total_migrated never
    decreases and migration records are append-only
    (token_kernel.db.immutability)."""

    CALL_ATOMICITY = "call_atomicity"
    """Each public call commits in full or has no observable effect,
    including ledger events and outbound callback failures. Enforced by
    TokenLedger's transaction scope."""

    CHECKED_ARITHMETIC = "checked_arithmetic"
    """No balance or supply leaves [0, 2**256 - 1]. Enforced by
    domain.amounts."""


# All invariants as a frozenset for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[KernelInvariant] = frozenset(KernelInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "token_config",
    "scripts",
)
