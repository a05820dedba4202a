"""
Pytest fixtures for the sales order kernel test suite.

Provides:
- Structured logging configuration and log capture
- Catalog item and customer builders
- Deterministic clock, config and cart fixtures
- In-memory SQLite database sessions for the persistence adapter
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from sales_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from sales_kernel.domain.clock import DeterministicClock
from sales_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from sales_modules.order_entry.cart import Cart
from sales_modules.order_entry.config import OrderEntryConfig
from tests.builders import make_customer, make_item


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """JSON logging at DEBUG for the whole run, so engine traces are emitted."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Every test starts and ends with no session/customer context bound."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture sales_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, cart):
            cart.add_line(item, 1)
            logs = captured_logs()
            assert any(r["message"] == "cart_line_added" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("sales_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def records() -> list[dict]:
        return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]

    yield records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def item_factory():
    return make_item


@pytest.fixture
def customer_factory():
    return make_customer


# =============================================================================
# Engine fixtures
# =============================================================================


FIXED_TIME = datetime(2024, 3, 15, 10, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def deterministic_clock():
    """Clock pinned to 2024-03-15T10:30Z."""
    return DeterministicClock(FIXED_TIME)


@pytest.fixture
def taxed_config() -> OrderEntryConfig:
    """Config with tax applied by default (flat 8%)."""
    return OrderEntryConfig(default_tax_exempt=False)


@pytest.fixture
def cart(taxed_config, deterministic_clock) -> Cart:
    """Empty cart, not tax exempt, wholesale tier."""
    return Cart(config=taxed_config, clock=deterministic_clock)


@pytest.fixture
def exempt_cart(deterministic_clock) -> Cart:
    """Empty cart with the shipped defaults (tax exempt)."""
    return Cart(config=OrderEntryConfig(), clock=deterministic_clock)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_session_factory() -> Generator[sessionmaker[Session], None, None]:
    """Fresh in-memory SQLite database with the order-entry tables."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


def pytest_configure(config):
    """Declare the ``database`` marker."""
    config.addinivalue_line(
        "markers", "database: test uses the in-memory SQLite database"
    )


