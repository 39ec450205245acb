"""Tests for CSV export/import."""

from __future__ import annotations

import csv
import io
from collections import Counter
from datetime import date, time
from decimal import Decimal

import pytest

from expensemanager.errors import EmptyExportError, UnrecognizedFormatError, ValidationError
from expensemanager.models import Transaction, TransactionType, User
from expensemanager.services import csv_codec

USERS = [User(id=1, name="Alice"), User(id=2, name="Bob Smith")]
TRANSACTIONS = [
    Transaction(
        id=1,
        type=TransactionType.INCOME,
        user_id=1,
        amount=Decimal("1000"),
        description="Salary",
        date=date(2024, 1, 5),
    ),
    Transaction(
        id=2,
        type=TransactionType.EXPENSE,
        user_id=1,
        amount=Decimal("200.50"),
        description='Dinner, "fancy"',
        date=date(2024, 1, 6),
        time=time(19, 45, 10),
    ),
    Transaction(
        id=3,
        type=TransactionType.EXPENSE,
        user_id=2,
        amount=Decimal("150"),
        description="Fuel",
        date=date(2024, 1, 6),
    ),
]


def _rows(text):
    return list(csv.reader(io.StringIO(text)))


def test_export_minimal_layout():
    text = csv_codec.export_csv(TRANSACTIONS, USERS)
    lines = text.splitlines()

    assert lines[0] == '"Date","Account","Category","Note","INR","Income/Expense"'
    assert lines[1] == '"01/05/2024 00:00:00","Alice","Other","Salary",1000,"Income"'
    assert lines[2] == '"01/06/2024 19:45:10","Alice","Other","Dinner, ""fancy""",200.50,"Expense"'
    assert len(lines) == 4


def test_export_filters_by_user():
    rows = _rows(csv_codec.export_csv(TRANSACTIONS, USERS, filter_user_id=2))

    assert len(rows) == 2
    assert rows[1][1] == "Bob Smith"


def test_export_extended_layout_and_currency():
    rows = _rows(csv_codec.export_csv(TRANSACTIONS, USERS, layout="extended", currency="EUR"))

    assert rows[0] == [
        "Date", "Account", "Category", "Note", "EUR", "Income/Expense",
        "Description", "Amount", "Currency", "Account",
    ]
    assert rows[1][6:] == ["Salary", "1000", "EUR", "Alice"]


def test_export_never_uses_exponent_notation():
    tx = Transaction(
        id=1,
        type=TransactionType.INCOME,
        user_id=1,
        amount=Decimal("1E+3"),
        description="Round",
        date=date(2024, 1, 1),
    )

    assert _rows(csv_codec.export_csv([tx], USERS))[1][4] == "1000"


def test_export_empty_raises():
    with pytest.raises(EmptyExportError):
        csv_codec.export_csv([], USERS)
    with pytest.raises(EmptyExportError):
        csv_codec.export_csv(TRANSACTIONS, USERS, filter_user_id=99)


def test_export_rejects_unknown_layout():
    with pytest.raises(ValidationError):
        csv_codec.export_csv(TRANSACTIONS, USERS, layout="wide")


def test_filenames():
    today = date(2024, 2, 3)

    assert csv_codec.export_filename(None, today) == "expense_data_2024-02-03.csv"
    assert csv_codec.export_filename("Bob Smith", today) == "expense_data_Bob_Smith_2024-02-03.csv"
    assert (
        csv_codec.statement_filename("Bob Smith", today)
        == "transaction_statement_Bob_Smith_2024-02-03.docx"
    )


def test_write_csv_export(tmp_path):
    path = csv_codec.write_csv_export(
        TRANSACTIONS, USERS, tmp_path / "out", 2, today=date(2024, 2, 3)
    )

    assert path.name == "expense_data_Bob_Smith_2024-02-03.csv"
    assert path.read_text(encoding="utf-8").startswith('"Date","Account"')


def test_round_trip_reproduces_transactions_and_users():
    for layout in csv_codec.LAYOUTS:
        result = csv_codec.import_csv(csv_codec.export_csv(TRANSACTIONS, USERS, layout=layout), [])

        assert result.errors == []
        assert [u.name for u in result.new_users] == ["Alice", "Bob Smith"]
        original = Counter((t.amount, t.type, t.date, t.description) for t in TRANSACTIONS)
        imported = Counter((t.amount, t.type, t.date, t.description) for t in result.new_transactions)
        assert imported == original
        times = {t.description: t.time for t in result.new_transactions}
        assert times['Dinner, "fancy"'] == time(19, 45, 10)
        assert times["Salary"] == time(0, 0)


def test_import_matches_existing_users_case_insensitively():
    text = (
        "Date,Account,Category,Note,INR,Income/Expense\n"
        "01/07/2024 10:00:00,ALICE,Other,Coffee,3.5,Expense\n"
        "01/08/2024,Carol,Other,Pay,900,Income\n"
        "01/09/2024,carol,Other,Tea,\"1,200\",Expense\n"
    )
    result = csv_codec.import_csv(text, USERS)

    assert [u.name for u in result.new_users] == ["Carol"]
    assert result.new_users[0].id == 3
    owners = [t.user_id for t in result.new_transactions]
    assert owners == [1, 3, 3]
    assert result.new_transactions[2].amount == Decimal("1200")
    assert [t.id for t in result.new_transactions] == [1, 2, 3]


def test_import_collects_row_errors():
    text = (
        "\ufeffDate,Account,Category,Note,INR,Income/Expense\n"
        "13/45/2024,Alice,Other,Bad date,1,Expense\n"
        "01/02/2024,Alice,Other,Bad amount,abc,Expense\n"
        "01/02/2024,Alice,Other,Zero,0,Expense\n"
        "01/02/2024,Alice,Other,Odd type,5,Transfer\n"
        "01/02/2024,,Other,No account,5,Expense\n"
        "01/02/2024,Alice\n"
        "\n"
        "01/02/2024,Alice,Other,Fine,5,Expense\n"
    )
    result = csv_codec.import_csv(text, USERS)

    assert result.imported_count == 1
    assert result.failed_count == 6
    assert [e.split(":")[0] for e in result.errors] == [
        "Row 2", "Row 3", "Row 4", "Row 5", "Row 6", "Row 7",
    ]
    assert "Could not parse date" in result.errors[0]


def test_import_accepts_description_and_amount_columns():
    text = "Date,Account,Description,Amount,Income/Expense\n01/02/2024,Alice,Snacks,12,expense\n"
    result = csv_codec.import_csv(text, USERS)

    assert result.new_transactions[0].description == "Snacks"
    assert result.new_transactions[0].type is TransactionType.EXPENSE


def test_import_reads_currency_named_amount_column():
    text = "Date,Account,Category,Note,EUR,Income/Expense\n01/02/2024,Alice,Other,Snacks,12,Expense\n"

    assert csv_codec.import_csv(text, USERS).new_transactions[0].amount == Decimal("12")


@pytest.mark.parametrize(
    "header",
    [
        "Date,Account,Category,Note,INR,Type",
        "Date,Account,Category,Income/Expense",
        "",
    ],
)
def test_import_unrecognized_header(header):
    with pytest.raises(UnrecognizedFormatError):
        csv_codec.import_csv(header + "\n01/02/2024,Alice,Other,x\n", USERS)


def test_import_skips_unreadable_rows():
    text = (
        "Date,Account,Category,Note,INR,Income/Expense\n"
        "01/02/2024,Alice,Other,Before,5,Expense\n"
        f"01/02/2024,Alice,Other,{'x' * 200_000},5,Expense\n"
        "01/03/2024,Bob Smith,Other,After,7,Income\n"
    )
    result = csv_codec.import_csv(text, USERS)

    assert [t.description for t in result.new_transactions] == ["Before", "After"]
    assert result.failed_count == 1
    assert result.errors[0].startswith("Row 3: Could not read row")


def test_import_rejects_sub_cent_amounts_per_row():
    text = (
        "Date,Account,Category,Note,INR,Income/Expense\n"
        "01/02/2024,Alice,Other,Odd,10.005,Expense\n"
        "01/02/2024,Alice,Other,Even,10.50,Expense\n"
    )
    result = csv_codec.import_csv(text, USERS)

    assert [t.amount for t in result.new_transactions] == [Decimal("10.50")]
    assert result.errors == ["Row 2: Amount can have at most 2 decimal places."]
