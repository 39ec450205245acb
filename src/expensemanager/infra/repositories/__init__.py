"""Concrete ledger repository implementations."""

from .database import SQLModelLedgerRepository
from .local import LocalLedgerRepository

__all__ = [
    "LocalLedgerRepository",
    "SQLModelLedgerRepository",
]
