"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "EXPENSEMANAGER_"
STORAGE_BACKENDS = ("local", "database")
CSV_LAYOUTS = ("minimal", "extended")


def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_choice(name: str, choices: tuple[str, ...], default: str) -> str:
    value = (_env(name, default) or default).strip().lower()
    if value not in choices:
        raise ValueError(f"{ENV_PREFIX}{name} must be one of {', '.join(choices)}; got {value!r}")
    return value


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "ExpenseManager"
    DB_FILENAME = "expensemanager.db"
    LEDGER_FILENAME = "ledger.json"
    EXPORT_DIRNAME = "exports"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("DEV_MODE", default=True)
        self.STORAGE_BACKEND = _env_choice("STORAGE_BACKEND", STORAGE_BACKENDS, "local")
        self.DATABASE_URL = _env("DATABASE_URL") or self._build_sqlite_url()
        self.ACCOUNT_ID = (_env("ACCOUNT_ID", "local") or "local").strip()
        if not self.ACCOUNT_ID:
            raise ValueError(f"{ENV_PREFIX}ACCOUNT_ID must not be blank.")
        self.CSV_LAYOUT = _env_choice("CSV_LAYOUT", CSV_LAYOUTS, "minimal")
        self.CURRENCY_CODE = (_env("CURRENCY_CODE", "INR") or "INR").strip().upper()
        self.CURRENCY_SYMBOL = _env("CURRENCY_SYMBOL", "₹") or ""

    def _resolve_data_dir(self) -> Path:
        """Return the directory holding the ledger file, database and logs."""

        data_root = _env("DATA_DIR", "instance") or "instance"
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    @property
    def ledger_path(self) -> Path:
        """Location of the local JSON ledger document."""

        return Path(self.DATA_DIR) / self.LEDGER_FILENAME

    @property
    def export_dir(self) -> Path:
        return Path(self.DATA_DIR) / self.EXPORT_DIRNAME

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if self.DATABASE_URL.startswith("sqlite"):
            return {"connect_args": {"check_same_thread": False}}
        return {"pool_pre_ping": True}


class DevConfig(BaseConfig):
    """Development configuration using the local JSON store."""

    DEBUG = True
    TESTING = False
