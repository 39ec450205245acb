"""Repository protocol definitions for domain layer."""

from .ledger import LedgerRepository, LedgerSnapshot

__all__ = [
    "LedgerRepository",
    "LedgerSnapshot",
]
