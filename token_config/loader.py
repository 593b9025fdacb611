"""
Configuration loader (``token_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``token_config.schema`` dataclasses.  Runtime callers use
``token_config.get_active_config()`` rather than this module.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; required fields have no silent defaults.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed data for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from token_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    TokenConfig,
    TokenParameters,
)

UINT256_MAX = 2**256 - 1

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_amount(value: Any, field: str) -> int:
    """
    Parse a token amount from YAML.

    Large supplies are usually quoted strings; plain integers are accepted
    too.  Booleans and floats are refused.
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be an integer, got {value!r}")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isdigit():
        amount = int(value.strip())
    else:
        raise ValueError(f"{field} must be a non-negative integer, got {value!r}")
    if amount < 0 or amount > UINT256_MAX:
        raise ValueError(f"{field} out of range: {amount}")
    return amount


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str) or not value:
        raise ValueError(f"{key} must be a non-empty string, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse a DatabaseConfig; every key is optional."""
    return DatabaseConfig(
        url=str(data.get("url", DatabaseConfig.url)),
        echo=bool(data.get("echo", False)),
        pool_size=int(data.get("pool_size", 5)),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = str(data.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unknown log level {level!r}")
    return LoggingConfig(level=level)


def parse_token(data: dict[str, Any]) -> TokenParameters:
    """
    Parse the ``token`` section.

    Raises:
        KeyError: a required key is missing.
        ValueError: decimals is negative, supply is out of range, or the
            token would be non-mintable with zero supply.
    """
    decimals = data["decimals"]
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValueError(f"decimals must be a non-negative integer, got {decimals!r}")

    initial_supply = parse_amount(data["initial_supply"], "initial_supply")
    mintable = bool(data.get("mintable", True))
    if not mintable and initial_supply == 0:
        raise ValueError("A non-mintable token needs a non-zero initial_supply")

    release_agent = data.get("release_agent")
    if release_agent is not None and (not isinstance(release_agent, str) or not release_agent):
        raise ValueError(f"release_agent must be a non-empty string, got {release_agent!r}")

    return TokenParameters(
        name=_require_str(data, "name"),
        symbol=_require_str(data, "symbol"),
        decimals=decimals,
        initial_supply=initial_supply,
        administrator=_require_str(data, "administrator"),
        mintable=mintable,
        release_agent=release_agent,
    )


def parse_config(data: dict[str, Any]) -> TokenConfig:
    """Parse a complete configuration set and stamp its checksum."""
    return TokenConfig(
        config_id=_require_str(data, "config_id"),
        version=int(data["version"]),
        token=parse_token(data["token"]),
        database=parse_database(data.get("database") or {}),
        logging=parse_logging(data.get("logging") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
