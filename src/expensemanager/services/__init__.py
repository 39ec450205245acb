"""Service module exports."""

from . import (
    analytics,
    balances,
    csv_codec,
    formatting,
    history,
    identifiers,
    ledger_store,
    statement,
    validation,
)
from .ledger_store import LedgerStore

__all__ = [
    "LedgerStore",
    "analytics",
    "balances",
    "csv_codec",
    "formatting",
    "history",
    "identifiers",
    "ledger_store",
    "statement",
    "validation",
]
