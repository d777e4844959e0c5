"""
Pytest fixtures for the ledger kernel test suite.

Provides:
- A fresh database per test (temporary SQLite file, or DATABASE_URL)
- A deterministic clock and a LedgerService wired to it
- Seeded catalogs (USD=1, EUR=2, BTC=40000; three adult accounts)
- Structured log capture

Environment Variables:
- DATABASE_URL: optional PostgreSQL URL.  When set, tables are dropped and
  recreated around every test instead of using a temporary SQLite file.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from io import StringIO

import pytest

from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.db.store import LedgerStore
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services.ledger_service import LedgerService

ALICE = "alice_01"
BOB = "bob_0002"
CAROL = "carol_03"

SEED_PRICES = {"USD": "1", "EUR": "2", "BTC": "40000"}


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
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.append(...)
            logs = captured_logs()
            assert any(r["message"] == "record_appended" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
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
# Database
# =============================================================================


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("DATABASE_URL") or f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def engine(database_url):
    """Engine with a freshly created schema; disposed after the test."""
    engine = init_engine_from_url(database_url, pool_size=5, pool_timeout=5)
    if engine.dialect.name != "sqlite":
        drop_tables()
    create_tables()
    yield engine
    if engine.dialect.name != "sqlite":
        drop_tables()
    reset_engine()


@pytest.fixture
def store(engine) -> LedgerStore:
    return LedgerStore(get_session_factory())


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def ledger(store, deterministic_clock) -> LedgerService:
    """LedgerService with empty catalogs."""
    return LedgerService(store, deterministic_clock, lock_timeout_seconds=5)


@pytest.fixture
def seeded_ledger(ledger) -> LedgerService:
    """LedgerService with USD/EUR/BTC and three adult accounts."""
    for code, price in SEED_PRICES.items():
        ledger.create_currency(code, price)
    for handle in (ALICE, BOB, CAROL):
        ledger.open_account(handle, date(1990, 1, 15))
    return ledger
