"""Ledger persistence protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence

from ...models.transaction import Transaction
from ...models.user import User


@dataclass(frozen=True)
class LedgerSnapshot:
    """Everything a full reload returns, in insertion order."""

    users: tuple[User, ...] = ()
    transactions: tuple[Transaction, ...] = ()


class LedgerRepository(Protocol):
    """Backing store for users and transactions.

    Implementations issue the integer ids and raise ``ExternalStoreError``
    when a round trip fails, leaving their stored state untouched.
    """

    def load(self) -> LedgerSnapshot:
        """Load every user and transaction."""
        ...

    def create_user(self, name: str) -> User:
        """Persist a new user and return it with its id."""
        ...

    def update_user(self, user: User) -> User:
        """Persist a renamed user."""
        ...

    def delete_user(self, user_id: int) -> None:
        """Delete a user together with all of its transactions."""
        ...

    def create_transaction(self, draft: Transaction) -> Transaction:
        """Persist a draft transaction and return it with its id."""
        ...

    def update_transaction(self, transaction: Transaction) -> Transaction:
        """Persist an edited transaction."""
        ...

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction by id."""
        ...

    def import_batch(
        self, users: Sequence[User], transactions: Sequence[Transaction]
    ) -> tuple[list[User], list[Transaction]]:
        """Persist imported users and transactions in one round trip.

        Incoming ids are provisional; transactions may reference the
        provisional id of a user in the same batch. Returns both lists with
        store-issued ids.
        """
        ...
