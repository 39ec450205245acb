"""Domain value objects and SQLModel table exports."""

from .records import TransactionRecord, UserRecord
from .transaction import Transaction, TransactionType
from .user import UNKNOWN_USER_NAME, User

__all__ = [
    "Transaction",
    "TransactionRecord",
    "TransactionType",
    "UNKNOWN_USER_NAME",
    "User",
    "UserRecord",
]
