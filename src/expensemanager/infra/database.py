"""Database infrastructure for the relational ledger store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, ContextManager, Iterator, Mapping

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from ..config import BaseConfig

SessionFactory = Callable[[], ContextManager[Session]]


def create_db_engine(config: BaseConfig) -> Engine:
    """Create the ledger engine; SQLite connections get ``SQLITE_PRAGMAS``."""

    engine = create_engine(config.DATABASE_URL, **config.sqlalchemy_engine_options())
    if engine.dialect.name == "sqlite":
        apply_sqlite_pragmas(engine, config.SQLITE_PRAGMAS)
    return engine


def apply_sqlite_pragmas(engine: Engine, pragmas: Mapping[str, str]) -> None:
    """Run ``PRAGMA name=value`` on every new DBAPI connection.

    SQLite leaves ``foreign_keys`` off per connection, so the user/transaction
    foreign key is only enforced when this is applied.
    """

    @event.listens_for(engine, "connect")
    def _set_pragmas(dbapi_connection, connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
        finally:
            cursor.close()


def init_database(engine: Engine) -> None:
    """Create the ledger tables if they do not exist."""
    # registers UserRecord / TransactionRecord on the metadata
    from .. import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def create_session_factory(engine: Engine) -> SessionFactory:
    """Create a session factory committing on success and rolling back on error."""

    @contextmanager
    def factory() -> Iterator[Session]:
        session = Session(engine, expire_on_commit=False)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return factory
