"""Pytest configuration and shared fixtures for expense manager tests.

Provides isolated data directories, in-memory and SQLite-backed ledger
repositories, and a seeded sample ledger so tests never touch a real data
directory.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

import pytest
from sqlmodel import create_engine

from expensemanager.config import BaseConfig
from expensemanager.infra.database import apply_sqlite_pragmas, create_session_factory, init_database
from expensemanager.infra.repositories import LocalLedgerRepository, SQLModelLedgerRepository
from expensemanager.models import TransactionType
from expensemanager.services.ledger_store import LedgerStore

# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point configuration at a temporary data directory.

    Yields:
        Path: directory used as ``EXPENSEMANAGER_DATA_DIR``
    """

    target = tmp_path / "data"
    monkeypatch.setenv("EXPENSEMANAGER_DATA_DIR", str(target))
    monkeypatch.setenv("EXPENSEMANAGER_STORAGE_BACKEND", "local")
    for name in ("DATABASE_URL", "ACCOUNT_ID", "CSV_LAYOUT", "CURRENCY_CODE", "CURRENCY_SYMBOL", "DEV_MODE"):
        monkeypatch.delenv(f"EXPENSEMANAGER_{name}", raising=False)
    return target


# =============================================================================
# Repository Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> LedgerStore:
    """Ledger store over a memory-only local repository."""

    store = LedgerStore(LocalLedgerRepository())
    store.load()
    return store


@pytest.fixture
def db_engine(tmp_path):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: engine with the ledger tables created
    """

    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.db'}", echo=False)
    apply_sqlite_pragmas(engine, BaseConfig.SQLITE_PRAGMAS)
    init_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Committing session factory bound to the test database."""

    return create_session_factory(db_engine)


@pytest.fixture
def sql_repository(session_factory) -> SQLModelLedgerRepository:
    return SQLModelLedgerRepository(session_factory, account_id="household")


@pytest.fixture
def sql_store(sql_repository) -> LedgerStore:
    store = LedgerStore(sql_repository)
    store.load()
    return store


# =============================================================================
# Test Data
# =============================================================================


def seed_sample(store: LedgerStore) -> LedgerStore:
    """Alice and Bob with one income and two expenses in January 2024."""

    alice = store.add_user("Alice")
    bob = store.add_user("Bob")
    store.add_transaction(TransactionType.INCOME, alice.id, "1000", "Salary", date(2024, 1, 5))
    store.add_transaction(TransactionType.EXPENSE, alice.id, "200", "Groceries", date(2024, 1, 6))
    store.add_transaction(TransactionType.EXPENSE, bob.id, "150", "Fuel", date(2024, 1, 6))
    return store


@pytest.fixture
def sample_store(memory_store) -> LedgerStore:
    """Memory store seeded with the Alice/Bob scenario."""

    return seed_sample(memory_store)


def assert_balanced(store: LedgerStore) -> None:
    """Per-user balances add up to the signed sum of owned transactions."""

    known = {user.id for user in store.users}
    expected = sum(
        (tx.signed_amount for tx in store.transactions if tx.user_id in known),
        Decimal("0"),
    )
    assert sum((user.balance for user in store.users), Decimal("0")) == expected
    assert store.total_balance == expected


@pytest.fixture
def balanced():
    """Expose ``assert_balanced`` to tests."""

    return assert_balanced


@pytest.fixture
def seed():
    """Expose ``seed_sample`` to tests that build their own store."""

    return seed_sample


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers ``setup_logging`` attached during a test."""

    yield
    logger = logging.getLogger("expensemanager")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
