"""Ledger transaction value objects."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(str, Enum):
    """Direction of a transaction; determines its sign in balances."""

    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> int:
        return 1 if self is TransactionType.INCOME else -1

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True, slots=True)
class Transaction:
    """A single income or expense entry.

    ``id`` is None only for drafts that have not been persisted yet.
    """

    type: TransactionType
    user_id: int
    amount: Decimal
    description: str
    date: date
    time: Optional[time] = None
    image_url: Optional[str] = None
    id: Optional[int] = None

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.type.sign

    @property
    def occurred_at(self) -> datetime:
        """Date and time combined; a missing time counts as midnight."""

        return datetime.combine(self.date, self.time or time(0, 0))

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME
