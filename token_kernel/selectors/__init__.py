"""Read-only query layer."""

from token_kernel.selectors.token_selector import TokenSelector

__all__ = ["TokenSelector"]
