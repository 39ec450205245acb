"""Local JSON-file ledger repository.

The whole ledger lives in one document, rewritten on every mutation the way
browser local storage holds it. Ids come from persisted counters so they are
never reused, even after deletes.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import replace
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence

from ...domain.repositories.ledger import LedgerSnapshot
from ...errors import ExternalStoreError, NotFoundError, ValidationError
from ...models.transaction import Transaction, TransactionType
from ...models.user import User
from ...services.validation import coerce_amount, coerce_date, coerce_time

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _user_to_dict(user: User) -> dict[str, Any]:
    return {"id": user.id, "name": user.name}


def _transaction_to_dict(tx: Transaction) -> dict[str, Any]:
    return {
        "id": tx.id,
        "type": tx.type.value,
        "user_id": tx.user_id,
        "amount": str(tx.amount),
        "description": tx.description,
        "date": tx.date.isoformat(),
        "time": tx.time.strftime("%H:%M:%S") if tx.time else None,
        "image_url": tx.image_url,
    }


def _transaction_from_dict(data: dict[str, Any]) -> Transaction:
    return Transaction(
        id=int(data["id"]),
        type=TransactionType(data["type"]),
        user_id=int(data["user_id"]),
        amount=coerce_amount(data["amount"]),
        description=str(data["description"]),
        date=coerce_date(data["date"]),
        time=coerce_time(data.get("time")),
        image_url=data.get("image_url"),
    )


class LocalLedgerRepository:
    """File-backed (or, with ``path=None``, memory-only) ledger repository."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else None
        self._users: dict[int, User] = {}
        self._transactions: dict[int, Transaction] = {}
        self._next_user_id = 1
        self._next_transaction_id = 1

    # ------------------------------------------------------------------ io

    def _read(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read ledger file", extra={"path": str(self.path)})
            raise ExternalStoreError(f"Could not read ledger file {self.path}: {exc}") from exc

    def _write(
        self,
        users: dict[int, User],
        transactions: dict[int, Transaction],
        next_user_id: int,
        next_transaction_id: int,
    ) -> None:
        """Persist the candidate state, then adopt it in memory."""

        if self.path is not None:
            document = {
                "version": FORMAT_VERSION,
                "users": [_user_to_dict(u) for u in users.values()],
                "transactions": [_transaction_to_dict(t) for t in transactions.values()],
                "next_user_id": next_user_id,
                "next_transaction_id": next_transaction_id,
            }
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.path.parent, prefix=".ledger-", suffix=".json"
                )
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        json.dump(document, fh, indent=2)
                    os.replace(tmp_name, self.path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                logger.error("Failed to write ledger file", extra={"path": str(self.path)})
                raise ExternalStoreError(f"Could not write ledger file {self.path}: {exc}") from exc

        self._users = users
        self._transactions = transactions
        self._next_user_id = next_user_id
        self._next_transaction_id = next_transaction_id

    # ---------------------------------------------------------- protocol

    def _snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            users=tuple(self._users.values()),
            transactions=tuple(self._transactions.values()),
        )

    def load(self) -> LedgerSnapshot:
        if self.path is None:
            return self._snapshot()
        data = self._read()
        try:
            users = {
                int(raw["id"]): User(id=int(raw["id"]), name=str(raw["name"]))
                for raw in data.get("users", [])
            }
            transactions: dict[int, Transaction] = {}
            for raw in data.get("transactions", []):
                tx = _transaction_from_dict(raw)
                transactions[int(raw["id"])] = tx
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            raise ExternalStoreError(f"Ledger file {self.path} is malformed: {exc}") from exc

        self._users = users
        self._transactions = transactions
        self._next_user_id = max(int(data.get("next_user_id", 1)), max(users, default=0) + 1)
        self._next_transaction_id = max(
            int(data.get("next_transaction_id", 1)), max(transactions, default=0) + 1
        )
        logger.info(
            "Loaded ledger file",
            extra={"path": str(self.path), "users": len(users), "transactions": len(transactions)},
        )
        return self._snapshot()

    def create_user(self, name: str) -> User:
        user = User(id=self._next_user_id, name=name)
        users = {**self._users, user.id: user}
        self._write(users, self._transactions, self._next_user_id + 1, self._next_transaction_id)
        return user

    def update_user(self, user: User) -> User:
        if user.id not in self._users:
            raise NotFoundError("User", user.id)
        users = {**self._users, user.id: replace(user, balance=Decimal("0"))}
        self._write(users, self._transactions, self._next_user_id, self._next_transaction_id)
        return user

    def delete_user(self, user_id: int) -> None:
        if user_id not in self._users:
            raise NotFoundError("User", user_id)
        transactions = {
            tx_id: tx for tx_id, tx in self._transactions.items() if tx.user_id != user_id
        }
        users = {uid: u for uid, u in self._users.items() if uid != user_id}
        self._write(users, transactions, self._next_user_id, self._next_transaction_id)

    def create_transaction(self, draft: Transaction) -> Transaction:
        tx = replace(draft, id=self._next_transaction_id)
        transactions = {**self._transactions, tx.id: tx}
        self._write(self._users, transactions, self._next_user_id, self._next_transaction_id + 1)
        return tx

    def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id not in self._transactions:
            raise NotFoundError("Transaction", transaction.id)
        transactions = {**self._transactions, transaction.id: transaction}
        self._write(self._users, transactions, self._next_user_id, self._next_transaction_id)
        return transaction

    def delete_transaction(self, transaction_id: int) -> None:
        if transaction_id not in self._transactions:
            raise NotFoundError("Transaction", transaction_id)
        transactions = {
            tx_id: tx for tx_id, tx in self._transactions.items() if tx_id != transaction_id
        }
        self._write(self._users, transactions, self._next_user_id, self._next_transaction_id)

    def import_batch(
        self, users: Sequence[User], transactions: Sequence[Transaction]
    ) -> tuple[list[User], list[Transaction]]:
        next_user_id = self._next_user_id
        next_transaction_id = self._next_transaction_id
        user_ids: dict[int, int] = {}
        created_users: list[User] = []
        for user in users:
            created = User(id=next_user_id, name=user.name)
            user_ids[user.id] = created.id
            created_users.append(created)
            next_user_id += 1

        created_transactions: list[Transaction] = []
        for tx in transactions:
            created_tx = replace(
                tx,
                id=next_transaction_id,
                user_id=user_ids.get(tx.user_id, tx.user_id),
            )
            created_transactions.append(created_tx)
            next_transaction_id += 1

        merged_users = {**self._users, **{u.id: u for u in created_users}}
        merged_transactions = {
            **self._transactions,
            **{int(t.id): t for t in created_transactions},
        }
        self._write(merged_users, merged_transactions, next_user_id, next_transaction_id)
        return created_users, created_transactions
