"""
External capabilities the kernel calls out to.

Both are injected into TokenLedger by the host and held behind an
Optional; the kernel never inspects their internal state.
"""

from typing import Callable, Protocol, runtime_checkable


@runtime_checkable
class MigrationTarget(Protocol):
    """Successor system that receives migrated value."""

    @property
    def target_id(self) -> str:
        """Stable identity recorded in TokenState and MigrationRecord."""
        ...

    def credit(self, account: str, amount: int) -> bool:
        """Credit ``amount`` to ``account``.  Return False to reject."""
        ...


@runtime_checkable
class TransferNotifier(Protocol):
    """Observer told about every completed transfer."""

    def on_transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Return False to reject (and roll back) the transfer."""
        ...


TransferCallback = Callable[[str, str, int], bool]
