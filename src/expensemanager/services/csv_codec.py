"""CSV export/import in the Money Manager style layout.

Export writes ``Date,Account,Category,Note,<currency>,Income/Expense`` rows
(optionally followed by ``Description,Amount,Currency,Account``); import
accepts any header carrying an ``Income/Expense`` column.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Optional, Sequence

from ..errors import EmptyExportError, UnrecognizedFormatError, ValidationError
from ..models.transaction import Transaction
from ..models.user import UNKNOWN_USER_NAME, User
from . import validation

logger = logging.getLogger(__name__)

TYPE_COLUMN = "Income/Expense"
DEFAULT_CATEGORY = "Other"
EXTENDED_COLUMNS = ["Description", "Amount", "Currency", "Account"]
LAYOUTS = ("minimal", "extended")

_DATE_FORMAT = "%m/%d/%Y"
_TIME_FORMATS = ("%H:%M:%S", "%H:%M")


@dataclass
class ImportResult:
    """Result of a CSV import; ids are provisional until persisted."""

    new_users: list[User] = field(default_factory=list)
    new_transactions: list[Transaction] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.new_transactions)

    @property
    def failed_count(self) -> int:
        return len(self.errors)


def csv_header(*, layout: str = "minimal", currency: str = "INR") -> list[str]:
    if layout not in LAYOUTS:
        raise ValidationError(f"Unknown CSV layout {layout!r}.", field="layout")
    header = ["Date", "Account", "Category", "Note", currency, TYPE_COLUMN]
    if layout == "extended":
        header.extend(EXTENDED_COLUMNS)
    return header


def _plain_amount(amount: Decimal) -> Decimal:
    # avoid exponent notation such as 1E+3 in the written file
    return Decimal(format(amount, "f"))


def _format_timestamp(tx: Transaction) -> str:
    return tx.occurred_at.strftime(f"{_DATE_FORMAT} %H:%M:%S")


def export_csv(
    transactions: Iterable[Transaction],
    users: Iterable[User],
    filter_user_id: Optional[int] = None,
    *,
    layout: str = "minimal",
    currency: str = "INR",
) -> str:
    """Serialise transactions to CSV text.

    Raises:
        EmptyExportError: when nothing is left after the optional user filter.
    """

    header = csv_header(layout=layout, currency=currency)
    names = {user.id: user.name for user in users}
    selected = [
        tx for tx in transactions if filter_user_id is None or tx.user_id == filter_user_id
    ]
    if not selected:
        raise EmptyExportError("No transactions to export.")

    buffer = io.StringIO()
    # non-numeric values are quoted with embedded quotes doubled
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(header)
    for tx in selected:
        account = names.get(tx.user_id, UNKNOWN_USER_NAME)
        amount = _plain_amount(tx.amount)
        row: list[object] = [
            _format_timestamp(tx),
            account,
            DEFAULT_CATEGORY,
            tx.description,
            amount,
            tx.type.label,
        ]
        if layout == "extended":
            row.extend([tx.description, amount, currency, account])
        writer.writerow(row)

    logger.info(
        "Exported transactions to CSV",
        extra={"rows": len(selected), "layout": layout, "user_id": filter_user_id},
    )
    return buffer.getvalue()


def _safe_name(name: str) -> str:
    return "_".join(name.split())


def export_filename(user_name: Optional[str] = None, today: Optional[date] = None) -> str:
    """``expense_data[_<name>]_<YYYY-MM-DD>.csv``"""

    suffix = f"_{_safe_name(user_name)}" if user_name else ""
    return f"expense_data{suffix}_{(today or date.today()).isoformat()}.csv"


def statement_filename(user_name: Optional[str] = None, today: Optional[date] = None) -> str:
    """``transaction_statement[_<name>]_<YYYY-MM-DD>.docx``"""

    suffix = f"_{_safe_name(user_name)}" if user_name else ""
    return f"transaction_statement{suffix}_{(today or date.today()).isoformat()}.docx"


def write_csv_export(
    transactions: Iterable[Transaction],
    users: Sequence[User],
    output_dir: Path,
    filter_user_id: Optional[int] = None,
    *,
    layout: str = "minimal",
    currency: str = "INR",
    today: Optional[date] = None,
) -> Path:
    """Write the export to ``output_dir`` and return the file path."""

    content = export_csv(
        transactions, users, filter_user_id, layout=layout, currency=currency
    )
    user_name = None
    if filter_user_id is not None:
        user_name = next((u.name for u in users if u.id == filter_user_id), UNKNOWN_USER_NAME)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / export_filename(user_name, today)
    # Use newline='' so the writer's line endings are kept as-is
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        fh.write(content)
    return output_path


def _resolve_columns(header: list[str]) -> dict[str, int]:
    """Map logical fields to the first matching column index."""

    def first(*names: str) -> Optional[int]:
        for name in names:
            if name in header:
                return header.index(name)
        return None

    if TYPE_COLUMN not in header:
        raise UnrecognizedFormatError(
            f"Unknown CSV format: expected a '{TYPE_COLUMN}' column, found {header}"
        )
    columns = {
        "date": first("Date"),
        "account": first("Account"),
        "note": first("Note", "Description"),
        "amount": first("INR", "Amount"),
        "type": header.index(TYPE_COLUMN),
    }
    if columns["amount"] is None:
        # the amount column is named after the export currency
        type_idx = columns["type"]
        if type_idx > 0 and header[type_idx - 1] not in ("Date", "Account", "Category", "Note"):
            columns["amount"] = type_idx - 1
    missing = [name for name, idx in columns.items() if idx is None]
    if missing:
        raise UnrecognizedFormatError(
            f"Unknown CSV format: missing columns for {', '.join(missing)}"
        )
    return columns  # type: ignore[return-value]


def _parse_timestamp(raw: str) -> tuple[date, Optional[time]]:
    parts = raw.strip().split(None, 1)
    if not parts:
        raise ValueError("empty date")
    day = datetime.strptime(parts[0], _DATE_FORMAT).date()
    if len(parts) == 1:
        return day, None
    for fmt in _TIME_FORMATS:
        try:
            return day, datetime.strptime(parts[1].strip(), fmt).time()
        except ValueError:
            continue
    raise ValueError(f"bad time {parts[1]!r}")


def import_csv(
    text: str,
    existing_users: Iterable[User],
    *,
    next_user_id: Optional[int] = None,
    next_transaction_id: int = 1,
) -> ImportResult:
    """Parse CSV text into new users and transactions.

    Unmatched account names (compared case-insensitively) become new users,
    visible to the rows that follow. Row failures are collected in
    ``errors`` and skipped. Importing the same file twice yields duplicates.

    Raises:
        UnrecognizedFormatError: when the header lacks the expected columns.
    """

    known = list(existing_users)
    if next_user_id is None:
        next_user_id = max((u.id for u in known), default=0) + 1

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    try:
        header = [h.strip() for h in next(reader, [])]
    except csv.Error as exc:
        raise UnrecognizedFormatError(f"Could not read the CSV header: {exc}") from exc
    columns = _resolve_columns(header)
    width = max(columns.values()) + 1

    result = ImportResult()
    logger.info("Starting CSV import", extra={"headers": header})

    row_num = 1
    while True:
        row_num += 1
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as exc:
            # the reader drops the rest of the offending line and carries on
            result.errors.append(f"Row {row_num}: Could not read row: {exc}")
            continue
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < width:
            result.errors.append(f"Row {row_num}: Expected at least {width} columns, found {len(row)}")
            continue

        raw_date = row[columns["date"]]
        try:
            day, clock = _parse_timestamp(raw_date)
        except ValueError:
            result.errors.append(f"Row {row_num}: Could not parse date '{raw_date}'")
            continue

        raw_amount = row[columns["amount"]].replace(",", "")
        try:
            amount = validation.coerce_amount(raw_amount)
            tx_type = validation.coerce_type(row[columns["type"]])
            description = validation.require_text(row[columns["note"]], "note")
            account = validation.require_text(row[columns["account"]], "account", max_length=128)
        except ValidationError as exc:
            result.errors.append(f"Row {row_num}: {exc}")
            continue

        user = next((u for u in known if u.matches_name(account)), None)
        if user is None:
            user = User(id=next_user_id, name=account)
            next_user_id += 1
            known.append(user)
            result.new_users.append(user)

        result.new_transactions.append(
            Transaction(
                id=next_transaction_id,
                type=tx_type,
                user_id=user.id,
                amount=amount,
                description=description,
                date=day,
                time=clock,
            )
        )
        next_transaction_id += 1

    logger.info(
        "Finished CSV import",
        extra={
            "imported": result.imported_count,
            "failed": result.failed_count,
            "new_users": len(result.new_users),
        },
    )
    return result
