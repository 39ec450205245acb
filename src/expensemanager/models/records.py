"""SQLModel tables backing the database ledger repository.

Rows carry UUID primary keys issued by the database layer and an
``account_id`` owner column; the rest of the package only ever sees the
sequential integers handed out by the identifier map.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from typing import ClassVar, Optional

from sqlmodel import Field, SQLModel


class UserRecord(SQLModel, table=True):
    """Persisted ledger user."""

    __tablename__: ClassVar[str] = "ledger_user"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    account_id: str = Field(nullable=False, index=True, max_length=128)
    name: str = Field(nullable=False, max_length=128)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        index=True,
    )


class TransactionRecord(SQLModel, table=True):
    """Persisted ledger transaction."""

    __tablename__: ClassVar[str] = "ledger_transaction"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    account_id: str = Field(nullable=False, index=True, max_length=128)
    user_id: uuid.UUID = Field(foreign_key="ledger_user.id", nullable=False, index=True)
    type: str = Field(nullable=False, max_length=16)
    amount: Decimal = Field(max_digits=14, decimal_places=2, nullable=False)
    description: str = Field(nullable=False, max_length=255)
    date: dt.date = Field(nullable=False, index=True)
    time: Optional[dt.time] = Field(default=None)
    image_url: Optional[str] = Field(default=None)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        index=True,
    )
