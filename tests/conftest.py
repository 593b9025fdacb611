"""
Pytest fixtures for the token kernel test suite.

Provides:
- A fresh in-memory SQLite database per test (tables + append-only listeners)
- A deterministic clock
- TokenLedger factories with a standard administrator
- Recording migration targets and transfer notifiers
- captured_logs for asserting on structured log output
"""

import json
import logging
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from token_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from token_kernel.domain.clock import DeterministicClock
from token_kernel.ledger import TokenLedger
from token_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

from tests.support import ADMIN, ALICE, RecordingNotifier, RecordingTarget


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture token_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.release(ADMIN)
            logs = captured_logs()
            assert any(r["message"] == "token_released" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    handler.setLevel(logging.DEBUG)
    root = logging.getLogger("token_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Function-scoped in-memory SQLite engine with every kernel table."""
    eng = init_engine_from_url("sqlite:///:memory:")
    create_tables(eng)
    yield eng
    reset_engine()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return get_session_factory()


@pytest.fixture
def session(session_factory):
    """Raw session for tests that inspect rows directly."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Clock fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    return DeterministicClock()


# =============================================================================
# Ledger fixtures
# =============================================================================


@pytest.fixture
def make_ledger(session_factory, deterministic_clock):
    """
    Factory fixture creating tokens administered by ADMIN.

    Defaults: "Foo"/"FOO", 1000 initial supply, 18 decimals, mintable.
    """

    def _make(**overrides) -> TokenLedger:
        params = {
            "administrator": ADMIN,
            "name": "Foo",
            "symbol": "FOO",
            "initial_supply": 1000,
            "decimals": 18,
            "mintable": True,
            "clock": deterministic_clock,
        }
        params.update(overrides)
        return TokenLedger.create(session_factory, **params)

    return _make


@pytest.fixture
def ledger(make_ledger) -> TokenLedger:
    """Mintable, unreleased token; ADMIN holds all 1000 units."""
    return make_ledger()


@pytest.fixture
def released_ledger(make_ledger) -> TokenLedger:
    """Released token; ADMIN holds 1000, ALICE holds 100."""
    ledger = make_ledger(initial_supply=1100)
    ledger.release(ADMIN)
    ledger.transfer(ADMIN, ALICE, 100)
    return ledger


# =============================================================================
# External capability doubles
# =============================================================================


@pytest.fixture
def migration_target() -> RecordingTarget:
    return RecordingTarget()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
