"""The ledger store: the single owner of users, transactions and balances.

Every mutation is validated first, persisted through the repository second
and applied to the in-memory model last, so a failed round trip leaves the
visible state exactly as it was.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterator, Optional

from ..domain.repositories.ledger import LedgerRepository
from ..errors import (
    ExternalStoreError,
    IntegrityWarning,
    NotFoundError,
    UnrecognizedFormatError,
    ValidationError,
)
from ..models.transaction import Transaction, TransactionType
from ..models.user import User
from . import csv_codec, statement
from .balances import BalanceSheet, recompute_balances
from .history import HistoryFilter, HistoryView, filter_and_group
from .validation import (
    coerce_amount,
    coerce_date,
    coerce_image_url,
    coerce_time,
    coerce_type,
    require_text,
)

logger = logging.getLogger(__name__)

USER_NAME_MAX_LENGTH = 128
EDITABLE_FIELDS = ("type", "user_id", "amount", "description", "date", "time", "image_url")


class LedgerStore:
    """In-memory ledger kept in step with a ``LedgerRepository``."""

    def __init__(
        self,
        repository: LedgerRepository,
        *,
        csv_layout: str = "minimal",
        currency_code: str = "INR",
        currency_symbol: str = "₹",
    ):
        self.repository = repository
        self.csv_layout = csv_layout
        self.currency_code = currency_code
        self.currency_symbol = currency_symbol
        self._transactions: tuple[Transaction, ...] = ()
        self._sheet: BalanceSheet = recompute_balances((), ())

    # ------------------------------------------------------------ reads

    @property
    def users(self) -> tuple[User, ...]:
        """Users in insertion order, each carrying its derived balance."""

        return self._sheet.users

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        return self._transactions

    @property
    def balance_sheet(self) -> BalanceSheet:
        return self._sheet

    @property
    def total_balance(self) -> Decimal:
        return self._sheet.total

    @property
    def integrity_warnings(self) -> tuple[IntegrityWarning, ...]:
        return self._sheet.warnings

    def get_user(self, user_id: int) -> Optional[User]:
        return next((user for user in self.users if user.id == user_id), None)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return next((tx for tx in self._transactions if tx.id == transaction_id), None)

    def find_user_by_name(self, name: str) -> Optional[User]:
        return next((user for user in self.users if user.matches_name(name)), None)

    def history(self, spec: Optional[HistoryFilter] = None) -> HistoryView:
        return filter_and_group(self._transactions, spec or HistoryFilter(), self.users)

    # ---------------------------------------------------------- helpers

    def _apply(self, users: tuple[User, ...], transactions: tuple[Transaction, ...]) -> None:
        self._transactions = transactions
        self._sheet = recompute_balances(users, transactions)

    def _require_user(self, user_id: int) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _require_transaction(self, transaction_id: int) -> Transaction:
        tx = self.get_transaction(transaction_id)
        if tx is None:
            raise NotFoundError("Transaction", transaction_id)
        return tx

    def _require_owner(self, user_id: Any) -> int:
        if isinstance(user_id, bool) or not isinstance(user_id, int):
            raise ValidationError(f"User id must be an integer, got {user_id!r}.", field="user_id")
        if self.get_user(user_id) is None:
            raise ValidationError(f"User {user_id} does not exist.", field="user_id")
        return user_id

    @contextmanager
    def _logged(self, action: str) -> Iterator[None]:
        """Log rejected and failed mutations with their category, then re-raise."""

        try:
            yield
        except (ValidationError, NotFoundError) as exc:
            logger.warning(
                "Ledger mutation rejected",
                extra={"action": action, "category": type(exc).__name__, "reason": str(exc)},
            )
            raise
        except ExternalStoreError as exc:
            logger.error(
                "Ledger mutation failed in storage",
                extra={"action": action, "reason": str(exc)},
            )
            raise

    # ------------------------------------------------------------- load

    def load(self) -> BalanceSheet:
        """Replace the in-memory model with a full reload from the repository."""

        snapshot = self.repository.load()
        self._apply(tuple(snapshot.users), tuple(snapshot.transactions))
        logger.info(
            "Ledger loaded",
            extra={"users": len(self.users), "transactions": len(self._transactions)},
        )
        return self._sheet

    # ------------------------------------------------------------ users

    def add_user(self, name: str) -> User:
        with self._logged("add_user"):
            clean = require_text(name, "name", max_length=USER_NAME_MAX_LENGTH)
            user = self.repository.create_user(clean)
        self._apply(self.users + (user,), self._transactions)
        logger.info("User added", extra={"user_id": user.id})
        return self._require_user(user.id)

    def edit_user(self, user_id: int, new_name: str) -> User:
        with self._logged("edit_user"):
            current = self._require_user(user_id)
            clean = require_text(new_name, "name", max_length=USER_NAME_MAX_LENGTH)
            updated = self.repository.update_user(replace(current, name=clean))
        users = tuple(updated if user.id == user_id else user for user in self.users)
        self._apply(users, self._transactions)
        logger.info("User renamed", extra={"user_id": user_id})
        return self._require_user(user_id)

    def delete_user(self, user_id: int) -> None:
        """Delete a user and, with it, every transaction it owns."""

        with self._logged("delete_user"):
            self._require_user(user_id)
            self.repository.delete_user(user_id)
        remaining = tuple(tx for tx in self._transactions if tx.user_id != user_id)
        removed = len(self._transactions) - len(remaining)
        self._apply(tuple(u for u in self.users if u.id != user_id), remaining)
        logger.info(
            "User deleted", extra={"user_id": user_id, "transactions_removed": removed}
        )

    # ----------------------------------------------------- transactions

    def add_transaction(
        self,
        type: TransactionType | str,
        user_id: int,
        amount: Decimal | str | int | float,
        description: str,
        date: date | str,
        time: time | str | None = None,
        image_url: Optional[str] = None,
    ) -> Transaction:
        with self._logged("add_transaction"):
            draft = Transaction(
                type=coerce_type(type),
                user_id=self._require_owner(user_id),
                amount=coerce_amount(amount),
                description=require_text(description, "description"),
                date=coerce_date(date),
                time=coerce_time(time),
                image_url=coerce_image_url(image_url),
            )
            created = self.repository.create_transaction(draft)
        self._apply(self.users, self._transactions + (created,))
        logger.info(
            "Transaction added",
            extra={"transaction_id": created.id, "user_id": created.user_id, "type": created.type.value},
        )
        return created

    def _coerce_patch(self, patch: dict[str, Any]) -> dict[str, Any]:
        if "id" in patch:
            raise ValidationError("A transaction id cannot be changed.", field="id")
        unknown = sorted(set(patch) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError(
                f"Unknown transaction field(s): {', '.join(unknown)}.", field=unknown[0]
            )
        coercers = {
            "type": coerce_type,
            "user_id": self._require_owner,
            "amount": coerce_amount,
            "description": lambda value: require_text(value, "description"),
            "date": coerce_date,
            "time": coerce_time,
            "image_url": coerce_image_url,
        }
        return {key: coercers[key](value) for key, value in patch.items()}

    def edit_transaction(self, transaction_id: int, **patch: Any) -> Transaction:
        """Apply a partial update; only the supplied fields change."""

        with self._logged("edit_transaction"):
            current = self._require_transaction(transaction_id)
            changes = self._coerce_patch(patch)
            updated = self.repository.update_transaction(replace(current, **changes))
        transactions = tuple(
            updated if tx.id == transaction_id else tx for tx in self._transactions
        )
        self._apply(self.users, transactions)
        logger.info(
            "Transaction updated",
            extra={"transaction_id": transaction_id, "fields": sorted(changes)},
        )
        return updated

    def delete_transaction(self, transaction_id: int) -> None:
        with self._logged("delete_transaction"):
            self._require_transaction(transaction_id)
            self.repository.delete_transaction(transaction_id)
        self._apply(
            self.users, tuple(tx for tx in self._transactions if tx.id != transaction_id)
        )
        logger.info("Transaction deleted", extra={"transaction_id": transaction_id})

    # ---------------------------------------------------------- csv io

    def import_csv(self, text: str) -> csv_codec.ImportResult:
        """Import CSV text and persist whatever parsed cleanly in one batch."""

        try:
            parsed = csv_codec.import_csv(text, self.users)
        except UnrecognizedFormatError as exc:
            logger.warning("CSV import rejected", extra={"reason": str(exc)})
            raise

        if not parsed.new_transactions:
            return parsed

        with self._logged("import_csv"):
            users, transactions = self.repository.import_batch(
                parsed.new_users, parsed.new_transactions
            )
        self._apply(self.users + tuple(users), self._transactions + tuple(transactions))
        logger.info(
            "CSV import persisted",
            extra={
                "imported": len(transactions),
                "failed": parsed.failed_count,
                "new_users": len(users),
            },
        )
        return csv_codec.ImportResult(
            new_users=list(users), new_transactions=list(transactions), errors=parsed.errors
        )

    def export_csv(self, user_id: Optional[int] = None, layout: Optional[str] = None) -> str:
        if user_id is not None:
            self._require_user(user_id)
        return csv_codec.export_csv(
            self._transactions,
            self.users,
            user_id,
            layout=layout or self.csv_layout,
            currency=self.currency_code,
        )

    def write_csv_export(
        self,
        output_dir: Path,
        user_id: Optional[int] = None,
        layout: Optional[str] = None,
        today: Optional[date] = None,
    ) -> Path:
        if user_id is not None:
            self._require_user(user_id)
        return csv_codec.write_csv_export(
            self._transactions,
            self.users,
            output_dir,
            user_id,
            layout=layout or self.csv_layout,
            currency=self.currency_code,
            today=today,
        )

    def export_statement(
        self,
        output_dir: Path,
        user_id: Optional[int] = None,
        generated_at: Optional[datetime] = None,
    ) -> Path:
        """Write a Word statement for one user (or everyone) and return its path."""

        if user_id is not None:
            self._require_user(user_id)
        return statement.write_statement(
            self._transactions,
            self.users,
            user_id,
            output_dir=output_dir,
            generated_at=generated_at,
            currency_symbol=self.currency_symbol,
        )
