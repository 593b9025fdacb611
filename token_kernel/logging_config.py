"""
Structured JSON logging for the token kernel.

Every record is written as one JSON line:

    {"ts": ..., "level": "INFO", "logger": "token_kernel.ledger",
     "message": "transfer_completed",
     "token_id": ..., "caller": ..., "operation": "transfer",
     "sender": ..., "recipient": ..., "amount": "10"}

The envelope comes first, then the call context bound by TokenLedger,
then the record's ``extra`` fields.  Records logged with exc_info add
``exc_type``/``exc_message`` and, for TokenKernelError, ``exc_code`` plus
one ``exc_<attr>`` field per structured attribute of the error.

Integers outside the range a JSON double holds exactly are written as
decimal strings; token amounts go up to 2**256 - 1.
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any, Iterator
from uuid import UUID

from token_kernel.exceptions import TokenKernelError

_LOGGER_PREFIX = "token_kernel"

# ---------------------------------------------------------------------------
# Call context
# ---------------------------------------------------------------------------

_CALL_FIELDS = ("token_id", "caller", "operation")

_call_context: ContextVar[dict[str, str] | None] = ContextVar(
    "token_call_context", default=None
)


class LogContext:
    """Call-scoped log fields, isolated per thread and per asyncio task."""

    @staticmethod
    def _merged(fields: dict[str, Any]) -> dict[str, str]:
        unknown = set(fields) - set(_CALL_FIELDS)
        if unknown:
            raise TypeError(f"Unknown log context fields: {sorted(unknown)}")
        ctx = dict(_call_context.get() or {})
        ctx.update({k: str(v) for k, v in fields.items() if v is not None})
        return ctx

    @classmethod
    def set(
        cls,
        *,
        token_id: str | None = None,
        caller: str | None = None,
        operation: str | None = None,
    ) -> None:
        """Set fields for the rest of the current context.  None leaves a field as is."""
        _call_context.set(
            cls._merged({"token_id": token_id, "caller": caller, "operation": operation})
        )

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return dict(_call_context.get() or {})

    @classmethod
    def clear(cls) -> None:
        _call_context.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """Set fields for the duration of the block, then restore the previous ones."""
        token = _call_context.set(cls._merged(fields))
        try:
            yield
        finally:
            _call_context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}

_MAX_EXACT_INT = 2**53


def _json_value(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value if abs(value) < _MAX_EXACT_INT else str(value)
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, TokenKernelError):
        fields["exc_code"] = exc.code
        for key, val in vars(exc).items():
            if not key.startswith("_"):
                fields[f"exc_{key}"] = _json_value(val)
    return fields


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = _json_value(val)

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger under the token_kernel namespace, e.g. ``get_logger("ledger")``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler (stderr unless given) to the token_kernel logger.

    Only the first call has any effect until reset_logging().
    """
    global _configured
    with _lock:
        if _configured:
            return
        _configured = True

    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.setLevel(level)
    root_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(sys.stderr)
    h.setFormatter(StructuredFormatter())
    root_logger.addHandler(h)


def reset_logging() -> None:
    """Remove the handler and allow configure_logging() again.  FOR TESTING ONLY."""
    global _configured
    with _lock:
        _configured = False
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
