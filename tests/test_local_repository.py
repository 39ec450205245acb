"""Tests for the JSON-file ledger repository."""

from __future__ import annotations

import json
from datetime import date, time
from decimal import Decimal

import pytest

from expensemanager.errors import ExternalStoreError, NotFoundError
from expensemanager.infra.repositories import LocalLedgerRepository
from expensemanager.models import Transaction, TransactionType, User


def _draft(user_id, amount="12.30", **kwargs):
    return Transaction(
        type=kwargs.pop("type", TransactionType.EXPENSE),
        user_id=user_id,
        amount=Decimal(amount),
        description=kwargs.pop("description", "Lunch"),
        date=kwargs.pop("date", date(2024, 4, 2)),
        **kwargs,
    )


def test_round_trips_through_file(tmp_path):
    path = tmp_path / "ledger.json"
    repo = LocalLedgerRepository(path)
    user = repo.create_user("Alice")
    tx = repo.create_transaction(_draft(user.id, time=time(13, 5), image_url="receipts/1.png"))

    snapshot = LocalLedgerRepository(path).load()

    assert snapshot.users == (user,)
    assert snapshot.transactions == (tx,)
    document = json.loads(path.read_text(encoding="utf-8"))
    assert document["transactions"][0]["amount"] == "12.30"
    assert document["transactions"][0]["time"] == "13:05:00"
    assert document["next_transaction_id"] == 2


def test_missing_file_loads_empty(tmp_path):
    snapshot = LocalLedgerRepository(tmp_path / "absent.json").load()

    assert snapshot.users == ()
    assert snapshot.transactions == ()


def test_counters_survive_deletes_and_reload(tmp_path):
    path = tmp_path / "ledger.json"
    repo = LocalLedgerRepository(path)
    user = repo.create_user("Alice")
    first = repo.create_transaction(_draft(user.id))
    repo.delete_transaction(first.id)

    reloaded = LocalLedgerRepository(path)
    reloaded.load()
    second = reloaded.create_transaction(_draft(user.id))

    assert second.id == 2


def test_delete_user_cascades(tmp_path):
    repo = LocalLedgerRepository(tmp_path / "ledger.json")
    alice = repo.create_user("Alice")
    bob = repo.create_user("Bob")
    repo.create_transaction(_draft(alice.id))
    kept = repo.create_transaction(_draft(bob.id))
    repo.delete_user(alice.id)

    snapshot = repo.load()
    assert snapshot.users == (bob,)
    assert snapshot.transactions == (kept,)


def test_missing_records_raise():
    repo = LocalLedgerRepository()
    with pytest.raises(NotFoundError):
        repo.delete_user(1)
    with pytest.raises(NotFoundError):
        repo.update_user(User(id=3, name="Ghost"))
    with pytest.raises(NotFoundError):
        repo.delete_transaction(1)
    with pytest.raises(NotFoundError):
        repo.update_transaction(_draft(1, id=8))


def test_import_batch_remaps_provisional_ids():
    repo = LocalLedgerRepository()
    alice = repo.create_user("Alice")
    repo.create_user("Temp")
    repo.delete_user(2)

    users, transactions = repo.import_batch(
        [User(id=2, name="Carol")],
        [_draft(2, id=1), _draft(alice.id, id=2)],
    )

    assert users == [User(id=3, name="Carol")]
    assert [(t.id, t.user_id) for t in transactions] == [(1, 3), (2, alice.id)]


def test_malformed_file_is_a_store_error(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text('{"users": [{"id": 1}]}', encoding="utf-8")
    with pytest.raises(ExternalStoreError):
        LocalLedgerRepository(path).load()

    path.write_text("not json", encoding="utf-8")
    with pytest.raises(ExternalStoreError):
        LocalLedgerRepository(path).load()


def test_failed_write_keeps_previous_state(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory", encoding="utf-8")
    repo = LocalLedgerRepository(blocker / "ledger.json")

    with pytest.raises(ExternalStoreError):
        repo.create_user("Alice")
    assert repo.load().users == ()
