"""Command line interface for the expense manager."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator, Optional

import click

from .config import BaseConfig
from .context import AppContext, create_app_context
from .errors import (
    EmptyExportError,
    ExternalStoreError,
    NotFoundError,
    UnrecognizedFormatError,
    ValidationError,
)
from .logging_config import setup_logging
from .models.user import User
from .services import analytics
from .services.formatting import display_name, format_currency, format_date, format_time
from .services.history import HistoryFilter, WindowKind
from .services.ledger_store import LedgerStore

pass_app = click.make_pass_decorator(AppContext)


@contextmanager
def reported() -> Iterator[None]:
    """Turn ledger errors into one-line click errors."""

    try:
        yield
    except (ValidationError, NotFoundError) as exc:
        raise click.ClickException(f"Nothing changed: {exc}") from exc
    except (UnrecognizedFormatError, EmptyExportError) as exc:
        raise click.ClickException(str(exc)) from exc
    except ExternalStoreError as exc:
        raise click.ClickException(f"Could not reach storage: {exc}") from exc


def resolve_user(store: LedgerStore, value: str) -> User:
    """Find a user by id or, failing that, by case-insensitive name."""

    user = store.get_user(int(value)) if value.isdigit() else None
    if user is None:
        user = store.find_user_by_name(value)
    if user is None:
        raise NotFoundError("User", value)
    return user


def _output_dir(app: AppContext, value: Optional[Path]) -> Path:
    return value if value is not None else app.config.export_dir


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Track shared income and expenses."""

    config = BaseConfig()
    setup_logging(config)
    with reported():
        app = create_app_context(config)
    ctx.obj = app
    ctx.call_on_close(app.close)


# ---------------------------------------------------------------- users


@cli.group()
def user() -> None:
    """Manage users."""


@user.command("add")
@click.argument("name")
@pass_app
def user_add(app: AppContext, name: str) -> None:
    """Add a user."""

    with reported():
        created = app.store.add_user(name)
    click.echo(f"Added user {created.id}: {created.name}")


@user.command("rename")
@click.argument("who")
@click.argument("new_name")
@pass_app
def user_rename(app: AppContext, who: str, new_name: str) -> None:
    """Rename a user given by id or name."""

    with reported():
        target = resolve_user(app.store, who)
        renamed = app.store.edit_user(target.id, new_name)
    click.echo(f"Renamed user {renamed.id} to {renamed.name}")


@user.command("delete")
@click.argument("who")
@click.confirmation_option(prompt="Delete this user and all of its transactions?")
@pass_app
def user_delete(app: AppContext, who: str) -> None:
    """Delete a user together with its transactions."""

    with reported():
        target = resolve_user(app.store, who)
        app.store.delete_user(target.id)
    click.echo(f"Deleted user {target.name}")


# --------------------------------------------------------- transactions


@cli.command("add")
@click.option("--type", "tx_type", type=click.Choice(["income", "expense"]), required=True)
@click.option("--user", "who", required=True, help="User id or name.")
@click.option("--amount", required=True)
@click.option("--description", "-d", required=True)
@click.option("--date", "on", default=None, help="YYYY-MM-DD, defaults to today.")
@click.option("--time", "at", default=None, help="HH:MM or HH:MM:SS.")
@click.option("--image-url", default=None)
@pass_app
def add_transaction(
    app: AppContext,
    tx_type: str,
    who: str,
    amount: str,
    description: str,
    on: Optional[str],
    at: Optional[str],
    image_url: Optional[str],
) -> None:
    """Record an income or expense."""

    with reported():
        owner = resolve_user(app.store, who)
        tx = app.store.add_transaction(
            tx_type,
            owner.id,
            amount,
            description,
            on or date.today().isoformat(),
            at,
            image_url,
        )
    click.echo(
        f"Added transaction {tx.id}: {tx.type.label} "
        f"{format_currency(tx.amount, app.config.CURRENCY_SYMBOL)} for {owner.name}"
    )


@cli.command("edit")
@click.argument("transaction_id", type=int)
@click.option("--type", "tx_type", type=click.Choice(["income", "expense"]))
@click.option("--user", "who", help="User id or name.")
@click.option("--amount")
@click.option("--description", "-d")
@click.option("--date", "on")
@click.option("--time", "at")
@click.option("--image-url")
@pass_app
def edit_transaction(
    app: AppContext,
    transaction_id: int,
    tx_type: Optional[str],
    who: Optional[str],
    amount: Optional[str],
    description: Optional[str],
    on: Optional[str],
    at: Optional[str],
    image_url: Optional[str],
) -> None:
    """Change selected fields of a transaction."""

    with reported():
        patch = {
            key: value
            for key, value in (
                ("type", tx_type),
                ("amount", amount),
                ("description", description),
                ("date", on),
                ("time", at),
                ("image_url", image_url),
            )
            if value is not None
        }
        if who is not None:
            patch["user_id"] = resolve_user(app.store, who).id
        if not patch:
            raise click.UsageError("Nothing to change; pass at least one option.")
        tx = app.store.edit_transaction(transaction_id, **patch)
    click.echo(f"Updated transaction {tx.id}")


@cli.command("remove")
@click.argument("transaction_id", type=int)
@pass_app
def remove_transaction(app: AppContext, transaction_id: int) -> None:
    """Delete a transaction."""

    with reported():
        app.store.delete_transaction(transaction_id)
    click.echo(f"Deleted transaction {transaction_id}")


# ---------------------------------------------------------------- views


@cli.command("balances")
@pass_app
def balances(app: AppContext) -> None:
    """Show every user's balance and the total."""

    symbol = app.config.CURRENCY_SYMBOL
    store = app.store
    if not store.users:
        click.echo("No users yet.")
    for entry in store.users:
        click.echo(f"{entry.id:>4}  {entry.name:<24} {format_currency(entry.balance, symbol):>16}")
    click.echo(f"Total balance: {format_currency(store.total_balance, symbol)}")
    for warning in store.integrity_warnings:
        click.echo(f"Warning: {warning}", err=True)


@cli.command("history")
@click.option(
    "--window",
    type=click.Choice([kind.value for kind in WindowKind]),
    default=WindowKind.TOTAL.value,
    show_default=True,
)
@click.option("--year", type=int)
@click.option("--month", type=click.IntRange(1, 12), help="1-12.")
@click.option("--week", type=click.IntRange(1, 5), help="Week of month, 1-5.")
@click.option("--search", default="")
@pass_app
def history(
    app: AppContext,
    window: str,
    year: Optional[int],
    month: Optional[int],
    week: Optional[int],
    search: str,
) -> None:
    """List transactions grouped by day, newest first."""

    today = date.today()
    with reported():
        if window == WindowKind.TOTAL.value:
            spec = HistoryFilter(search_text=search)
        else:
            current = HistoryFilter.for_today(window, today, search)
            spec = HistoryFilter(
                window=window,
                year=year if year is not None else current.year,
                month_index=month - 1 if month is not None else current.month_index,
                week_of_month=week if week is not None else current.week_of_month,
                search_text=search,
            )
        view = app.store.history(spec)

    symbol = app.config.CURRENCY_SYMBOL
    users = app.store.users
    for group in view.groups:
        click.echo(format_date(group.date))
        for tx in group.items:
            click.echo(
                f"  #{tx.id:<4} {format_time(tx.time):>8}  {display_name(users, tx.user_id):<16} "
                f"{tx.type.label:<8} {format_currency(tx.amount, symbol):>14}  {tx.description}"
            )
    summary = view.summary
    click.echo(
        f"{view.match_count} transaction(s) | income {format_currency(summary.income, symbol)} "
        f"| expense {format_currency(summary.expense, symbol)} "
        f"| net {format_currency(summary.net, symbol)}"
    )


# ----------------------------------------------------------- import/export


@cli.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_app
def import_command(app: AppContext, csv_file: Path) -> None:
    """Import transactions from a CSV export."""

    with reported():
        result = app.store.import_csv(csv_file.read_text(encoding="utf-8"))
    click.echo(f"Imported {result.imported_count}, {result.failed_count} rows failed")
    for line in result.errors:
        click.echo(f"  {line}", err=True)


@cli.command("export")
@click.option("--user", "who", help="Only this user's transactions.")
@click.option("--layout", type=click.Choice(["minimal", "extended"]))
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
@pass_app
def export_command(
    app: AppContext, who: Optional[str], layout: Optional[str], output_dir: Optional[Path]
) -> None:
    """Write transactions to a CSV file."""

    with reported():
        user_id = resolve_user(app.store, who).id if who else None
        path = app.store.write_csv_export(_output_dir(app, output_dir), user_id, layout)
    click.echo(f"Export written: {path}")


@cli.command("statement")
@click.option("--user", "who", help="Only this user's transactions.")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
@pass_app
def statement_command(app: AppContext, who: Optional[str], output_dir: Optional[Path]) -> None:
    """Write a Word transaction statement."""

    with reported():
        user_id = resolve_user(app.store, who).id if who else None
        path = app.store.export_statement(_output_dir(app, output_dir), user_id)
    click.echo(f"Statement written: {path}")


@cli.command("charts")
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path))
@click.option("--months", type=click.IntRange(1, 120), default=6, show_default=True)
@pass_app
def charts(app: AppContext, output_dir: Optional[Path], months: int) -> None:
    """Render balance, income/expense and trend charts as PNG files."""

    target = _output_dir(app, output_dir)
    store = app.store
    figures = {
        "balance_distribution.png": analytics.build_balance_chart(
            store.users, currency_symbol=app.config.CURRENCY_SYMBOL
        ),
        "income_expense_by_user.png": analytics.build_income_expense_chart(
            store.users, store.transactions
        ),
        "monthly_trend.png": analytics.build_trend_chart(store.transactions, months),
    }
    for filename, figure in figures.items():
        path = analytics.export_chart_png(figure, target / filename)
        click.echo(f"Chart written: {path}")


if __name__ == "__main__":  # pragma: no cover
    cli()
