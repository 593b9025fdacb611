"""
token_config -- single public entrypoint for token configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``TokenConfig``.

Architecture position:
    Configuration -- sits beside the kernel, consumed by the CLI and other
    hosts.  ``token_kernel`` MUST NEVER import from ``token_config``; hosts
    pass the parsed values into TokenLedger.create() and
    init_engine_from_url() themselves.

Failure modes:
    - ``FileNotFoundError`` -- the requested configuration file is missing.
    - ``KeyError`` / ``ValueError`` -- structural validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``TOKEN_CONFIG_TRACE`` log entry with the config_id, version and
    checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from token_config.loader import compute_checksum, load_yaml_file, parse_config
from token_config.schema import (
    DatabaseConfig,
    LoggingConfig,
    TokenConfig,
    TokenParameters,
)

_logger = logging.getLogger("token_kernel.config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "TokenConfig",
    "TokenParameters",
    "compute_checksum",
    "get_active_config",
]


def get_active_config(path: Path | str | None = None) -> TokenConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML configuration set to load.  Defaults to the bundled
            ``token_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError: If a required key is missing.
        ValueError: If a value fails validation.
    """
    config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(config_path))

    _logger.info(
        "TOKEN_CONFIG_TRACE",
        extra={
            "trace_type": "TOKEN_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "symbol": config.token.symbol,
            "path": str(config_path),
        },
    )
    return config
