"""SQLModel implementation of the ledger repository.

Rows are keyed by UUIDs and scoped to one owning account. The rest of the
package sees sequential integers; the two identifier maps translate between
them and are rebuilt from scratch on every ``load``.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Iterator, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ...domain.repositories.ledger import LedgerSnapshot
from ...errors import ExternalStoreError, NotFoundError
from ...infra.database import SessionFactory
from ...models.records import TransactionRecord, UserRecord
from ...models.transaction import Transaction, TransactionType
from ...models.user import User
from ...services.identifiers import IdentifierMap

logger = logging.getLogger(__name__)


class SQLModelLedgerRepository:
    """Relational ledger store scoped to ``account_id``."""

    def __init__(self, session_factory: SessionFactory, *, account_id: str):
        self.session_factory = session_factory
        self.account_id = account_id
        self.user_ids: IdentifierMap[uuid.UUID] = IdentifierMap()
        self.transaction_ids: IdentifierMap[uuid.UUID] = IdentifierMap()

    @contextmanager
    def _round_trip(self, action: str) -> Iterator[Session]:
        """Yield a committed-on-exit session, translating driver failures."""

        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error(
                "Ledger database round trip failed",
                extra={"action": action, "account_id": self.account_id},
                exc_info=True,
            )
            raise ExternalStoreError(f"Could not {action}: {exc}") from exc

    def _user_record(self, session: Session, user_id: int) -> UserRecord:
        external = self.user_ids.require_external(user_id, kind="User")
        record = session.get(UserRecord, external)
        if record is None or record.account_id != self.account_id:
            raise NotFoundError("User", user_id)
        return record

    def _transaction_record(self, session: Session, transaction_id: int) -> TransactionRecord:
        external = self.transaction_ids.require_external(transaction_id, kind="Transaction")
        record = session.get(TransactionRecord, external)
        if record is None or record.account_id != self.account_id:
            raise NotFoundError("Transaction", transaction_id)
        return record

    def _to_transaction(
        self,
        record: TransactionRecord,
        user_ids: IdentifierMap[uuid.UUID],
        transaction_ids: IdentifierMap[uuid.UUID],
    ) -> Transaction:
        return Transaction(
            id=transaction_ids.to_internal(record.id),
            type=TransactionType(record.type),
            user_id=user_ids.to_internal(record.user_id),
            amount=record.amount,
            description=record.description,
            date=record.date,
            time=record.time,
            image_url=record.image_url,
        )

    def _fill_record(self, record: TransactionRecord, tx: Transaction, user_uuid: uuid.UUID) -> None:
        record.user_id = user_uuid
        record.type = tx.type.value
        record.amount = tx.amount
        record.description = tx.description
        record.date = tx.date
        record.time = tx.time
        record.image_url = tx.image_url

    def load(self) -> LedgerSnapshot:
        # current bindings stay live until the reload has fully succeeded
        user_ids: IdentifierMap[uuid.UUID] = IdentifierMap()
        transaction_ids: IdentifierMap[uuid.UUID] = IdentifierMap()
        with self._round_trip("load ledger") as session:
            user_rows = session.exec(
                select(UserRecord)
                .where(UserRecord.account_id == self.account_id)
                .order_by(UserRecord.created_at, UserRecord.id)  # type: ignore
            ).all()
            tx_rows = session.exec(
                select(TransactionRecord)
                .where(TransactionRecord.account_id == self.account_id)
                .order_by(TransactionRecord.created_at, TransactionRecord.id)  # type: ignore
            ).all()
            users = tuple(
                User(id=user_ids.to_internal(row.id), name=row.name) for row in user_rows
            )
            transactions = tuple(
                self._to_transaction(row, user_ids, transaction_ids) for row in tx_rows
            )

        self.user_ids = user_ids
        self.transaction_ids = transaction_ids

        logger.info(
            "Loaded ledger from database",
            extra={"users": len(users), "transactions": len(transactions)},
        )
        return LedgerSnapshot(users=users, transactions=transactions)

    def create_user(self, name: str) -> User:
        record = UserRecord(account_id=self.account_id, name=name)
        with self._round_trip("create user") as session:
            session.add(record)
        return User(id=self.user_ids.to_internal(record.id), name=name)

    def update_user(self, user: User) -> User:
        with self._round_trip("update user") as session:
            record = self._user_record(session, user.id)
            record.name = user.name
            session.add(record)
        return user

    def delete_user(self, user_id: int) -> None:
        with self._round_trip("delete user") as session:
            record = self._user_record(session, user_id)
            dependents = session.exec(
                select(TransactionRecord)
                .where(TransactionRecord.account_id == self.account_id)
                .where(TransactionRecord.user_id == record.id)
            ).all()
            dependent_ids = [row.id for row in dependents]
            # dependents first so no row ever points at a missing user
            for row in dependents:
                session.delete(row)
            session.flush()
            session.delete(record)

        for external in dependent_ids:
            if external in self.transaction_ids:
                self.transaction_ids.forget(self.transaction_ids.to_internal(external))
        self.user_ids.forget(user_id)

    def create_transaction(self, draft: Transaction) -> Transaction:
        record = TransactionRecord(account_id=self.account_id)
        with self._round_trip("create transaction") as session:
            owner = self._user_record(session, draft.user_id)
            self._fill_record(record, draft, owner.id)
            session.add(record)
        return replace(draft, id=self.transaction_ids.to_internal(record.id))

    def update_transaction(self, transaction: Transaction) -> Transaction:
        if transaction.id is None:
            raise NotFoundError("Transaction", transaction.id)
        with self._round_trip("update transaction") as session:
            record = self._transaction_record(session, transaction.id)
            owner = self._user_record(session, transaction.user_id)
            self._fill_record(record, transaction, owner.id)
            session.add(record)
        return transaction

    def delete_transaction(self, transaction_id: int) -> None:
        with self._round_trip("delete transaction") as session:
            record = self._transaction_record(session, transaction_id)
            session.delete(record)
        self.transaction_ids.forget(transaction_id)

    def import_batch(
        self, users: Sequence[User], transactions: Sequence[Transaction]
    ) -> tuple[list[User], list[Transaction]]:
        # spread created_at so a reload keeps batch order
        base = datetime.now(timezone.utc)
        stamps = (base + timedelta(microseconds=i) for i in range(len(users) + len(transactions)))

        user_records = {
            user.id: UserRecord(account_id=self.account_id, name=user.name, created_at=next(stamps))
            for user in users
        }
        tx_records: list[TransactionRecord] = []
        with self._round_trip("import transactions") as session:
            for record in user_records.values():
                session.add(record)
            session.flush()
            for tx in transactions:
                if tx.user_id in user_records:
                    owner_uuid = user_records[tx.user_id].id
                else:
                    owner_uuid = self._user_record(session, tx.user_id).id
                record = TransactionRecord(account_id=self.account_id, created_at=next(stamps))
                self._fill_record(record, tx, owner_uuid)
                session.add(record)
                tx_records.append(record)

        created_users = [
            User(id=self.user_ids.to_internal(record.id), name=record.name)
            for record in user_records.values()
        ]
        created_transactions = [
            replace(
                tx,
                id=self.transaction_ids.to_internal(record.id),
                user_id=self.user_ids.to_internal(record.user_id),
            )
            for tx, record in zip(transactions, tx_records)
        ]
        return created_users, created_transactions
