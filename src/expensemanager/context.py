"""Application context for dependency injection."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine

from .config import BaseConfig
from .domain.repositories import LedgerRepository
from .infra.database import create_db_engine, create_session_factory, init_database
from .infra.repositories import LocalLedgerRepository, SQLModelLedgerRepository
from .services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Configuration, the chosen repository and the loaded ledger store."""

    config: BaseConfig
    repository: LedgerRepository
    store: LedgerStore
    engine: Optional[Engine] = None

    @property
    def dev_mode(self) -> bool:
        return self.config.DEV_MODE

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


def create_repository(config: BaseConfig) -> tuple[LedgerRepository, Optional[Engine]]:
    """Build the repository named by ``STORAGE_BACKEND``."""

    if config.STORAGE_BACKEND == "database":
        engine = create_db_engine(config)
        init_database(engine)
        repository = SQLModelLedgerRepository(
            create_session_factory(engine), account_id=config.ACCOUNT_ID
        )
        return repository, engine
    return LocalLedgerRepository(config.ledger_path), None


def create_app_context(config: Optional[BaseConfig] = None, *, load: bool = True) -> AppContext:
    """Create the application context and, by default, load the ledger."""

    if config is None:
        config = BaseConfig()

    repository, engine = create_repository(config)
    store = LedgerStore(
        repository,
        csv_layout=config.CSV_LAYOUT,
        currency_code=config.CURRENCY_CODE,
        currency_symbol=config.CURRENCY_SYMBOL,
    )
    if load:
        store.load()

    logger.info(
        "Application context ready",
        extra={"storage_backend": config.STORAGE_BACKEND, "data_dir": str(config.DATA_DIR)},
    )
    return AppContext(config=config, repository=repository, store=store, engine=engine)
