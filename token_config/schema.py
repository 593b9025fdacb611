"""
TokenConfig schema.

Frozen dataclasses parsed from a YAML configuration set by
``token_config.loader``.  Every field here has a YAML key of the same
name; nested sections map to nested dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the ledger lives."""

    url: str = "sqlite:///:memory:"
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class TokenParameters:
    """Construction parameters for TokenLedger.create()."""

    name: str
    symbol: str
    decimals: int
    initial_supply: int
    administrator: str
    mintable: bool = True
    release_agent: str | None = None


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenConfig:
    """One complete configuration set."""

    config_id: str
    version: int
    token: TokenParameters
    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    checksum: str = ""
