"""End-to-end tests for the command line interface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner
from docx import Document

from expensemanager.cli import cli


@pytest.fixture
def runner(data_dir, monkeypatch):
    monkeypatch.setenv("EXPENSEMANAGER_DEV_MODE", "false")
    return CliRunner()


@pytest.fixture
def invoke(runner):
    def _invoke(*args, ok=True):
        result = runner.invoke(cli, list(args))
        if ok:
            assert result.exit_code == 0, result.output
        return result

    return _invoke


@pytest.fixture
def seeded(invoke):
    invoke("user", "add", "Alice")
    invoke("user", "add", "Bob")
    invoke("add", "--type", "income", "--user", "Alice", "--amount", "1000", "-d", "Salary", "--date", "2024-01-05")
    invoke("add", "--type", "expense", "--user", "alice", "--amount", "200", "-d", "Groceries", "--date", "2024-01-06", "--time", "18:30")
    invoke("add", "--type", "expense", "--user", "2", "--amount", "150", "-d", "Fuel", "--date", "2024-01-06")
    return invoke


def test_balances(seeded):
    output = seeded("balances").output

    assert "Alice" in output
    assert "₹800.00" in output
    assert "-₹150.00" in output
    assert "Total balance: ₹650.00" in output


def test_history_month(seeded):
    january = seeded("history", "--window", "month", "--year", "2024", "--month", "1").output
    february = seeded("history", "--window", "month", "--year", "2024", "--month", "2").output

    assert "6 January 2024" in january
    assert "6:30 PM" in january
    assert "3 transaction(s)" in january
    assert "net ₹650.00" in january
    assert "0 transaction(s)" in february


def test_history_search(seeded):
    output = seeded("history", "--search", "fuel").output

    assert "1 transaction(s)" in output
    assert "Fuel" in output


def test_rejected_mutation_reports_nothing_changed(seeded):
    result = seeded("add", "--type", "expense", "--user", "Bob", "--amount", "0", "-d", "Free", ok=False)

    assert result.exit_code == 1
    assert "Nothing changed" in result.output
    assert "Total balance: ₹650.00" in seeded("balances").output


def test_unknown_user_is_reported(seeded):
    result = seeded("user", "rename", "Zed", "Zack", ok=False)

    assert result.exit_code == 1
    assert "User Zed not found" in result.output


def test_edit_and_remove(seeded):
    seeded("edit", "3", "--amount", "50", "--user", "Alice")
    assert "Total balance: ₹750.00" in seeded("balances").output

    seeded("remove", "3")
    assert "Total balance: ₹800.00" in seeded("balances").output
    assert seeded("remove", "3", ok=False).exit_code == 1


def test_edit_requires_an_option(seeded):
    result = seeded("edit", "1", ok=False)

    assert result.exit_code == 2


def test_user_rename_and_delete(seeded):
    seeded("user", "rename", "Bob", "Robert")
    seeded("user", "delete", "Alice", "--yes")
    output = seeded("balances").output

    assert "Robert" in output
    assert "Alice" not in output
    assert "Total balance: -₹150.00" in output


def test_export_and_import(seeded, data_dir, tmp_path):
    result = seeded("export", "--user", "Bob", "--output-dir", str(tmp_path / "out"))
    files = list((tmp_path / "out").glob("expense_data_Bob_*.csv"))

    assert "Export written" in result.output
    assert len(files) == 1
    assert files[0].read_text(encoding="utf-8").count("\n") == 2

    incoming = tmp_path / "incoming.csv"
    incoming.write_text(
        "Date,Account,Category,Note,INR,Income/Expense\n"
        "02/01/2024 09:00:00,Carol,Other,Pay,300,Income\n"
        "02/02/2024,Carol,Other,Broken,zero,Expense\n"
        "02/03/2024,Bob,Other,Refund,50,Income\n",
        encoding="utf-8",
    )
    imported = seeded("import", str(incoming))

    assert "Imported 2, 1 rows failed" in imported.output
    assert "Row 3:" in imported.output
    assert "Total balance: ₹1,000.00" in seeded("balances").output


def test_import_unknown_format(seeded, tmp_path):
    bad = tmp_path / "bad.csv"
    bad.write_text("when,who,what\n1,2,3\n", encoding="utf-8")

    result = seeded("import", str(bad), ok=False)

    assert result.exit_code == 1
    assert "Income/Expense" in result.output


def test_export_empty_ledger(invoke):
    result = invoke("export", ok=False)

    assert result.exit_code == 1
    assert "No transactions to export." in result.output


def test_statement_and_charts(seeded, tmp_path):
    seeded("statement", "--user", "Alice", "--output-dir", str(tmp_path))
    statements = list(tmp_path.glob("transaction_statement_Alice_*.docx"))
    assert len(statements) == 1
    paragraphs = [p.text for p in Document(str(statements[0])).paragraphs]
    assert "Account Holder: Alice" in paragraphs

    seeded("charts", "--output-dir", str(tmp_path / "charts"))
    assert sorted(p.name for p in (tmp_path / "charts").iterdir()) == [
        "balance_distribution.png",
        "income_expense_by_user.png",
        "monthly_trend.png",
    ]


def test_database_backend(invoke, monkeypatch, data_dir):
    monkeypatch.setenv("EXPENSEMANAGER_STORAGE_BACKEND", "database")
    monkeypatch.setenv("EXPENSEMANAGER_ACCOUNT_ID", "household")

    invoke("user", "add", "Alice")
    invoke("add", "--type", "income", "--user", "Alice", "--amount", "42", "-d", "Gift", "--date", "2024-03-01")

    assert "Total balance: ₹42.00" in invoke("balances").output
    assert (data_dir / "expensemanager.db").exists()
    assert not (data_dir / "ledger.json").exists()
