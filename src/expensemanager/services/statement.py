"""Word (.docx) transaction statements built with python-docx."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Sequence

from docx import Document  # type: ignore[import]
from docx.enum.text import WD_ALIGN_PARAGRAPH  # type: ignore[import]
from docx.oxml import parse_xml  # type: ignore[import]
from docx.oxml.ns import nsdecls  # type: ignore[import]
from docx.shared import RGBColor  # type: ignore[import]

from ..errors import EmptyExportError
from ..models.transaction import Transaction, TransactionType
from ..models.user import User
from .csv_codec import statement_filename
from .formatting import format_currency, format_date
from .history import compute_summary

logger = logging.getLogger(__name__)

ALL_USERS_LABEL = "All Users"
DETAIL_COLUMNS = ("Date", "Account", "Description", "Type", "Amount")

INCOME_FILL = "E8F5E9"
EXPENSE_FILL = "FFEBEE"
NET_FILL = "E3F2FD"
HEADER_FILL = "BBDEFB"
TYPE_COLORS = {
    TransactionType.INCOME: RGBColor(0x2E, 0x7D, 0x32),
    TransactionType.EXPENSE: RGBColor(0xC6, 0x28, 0x28),
}


def _shade(cell, fill: str) -> None:
    cell._tc.get_or_add_tcPr().append(parse_xml(f'<w:shd {nsdecls("w")} w:fill="{fill}"/>'))


def _bold_cell(cell, text: str, fill: Optional[str] = None) -> None:
    cell.paragraphs[0].add_run(text).bold = True
    if fill:
        _shade(cell, fill)


def _right_cell(cell, text: str) -> None:
    paragraph = cell.paragraphs[0]
    paragraph.add_run(text)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.RIGHT


def _newest_first(transactions: Iterable[Transaction]) -> list[Transaction]:
    return sorted(
        transactions,
        key=lambda tx: (tx.occurred_at, tx.id if tx.id is not None else -1),
        reverse=True,
    )


def build_statement(
    transactions: Iterable[Transaction],
    users: Sequence[User],
    user_id: Optional[int] = None,
    *,
    generated_at: Optional[datetime] = None,
    currency_symbol: str = "₹",
):
    """Build the statement document for ``user_id`` (or all users).

    Raises:
        EmptyExportError: when no transaction survives the user filter.
    """

    selected = [tx for tx in transactions if user_id is None or tx.user_id == user_id]
    if not selected:
        raise EmptyExportError("No transactions to export.")

    names = {user.id: user.name for user in users}
    holder = names.get(user_id, ALL_USERS_LABEL) if user_id is not None else ALL_USERS_LABEL
    stamp = generated_at or datetime.now()
    summary = compute_summary(selected)

    document = Document()
    title = document.add_heading("Transaction Statement", level=1)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    document.add_paragraph(f"Account Holder: {holder}")
    document.add_paragraph(f"Statement Date: {format_date(stamp.date())}")

    document.add_heading("Account Summary", level=2)
    summary_table = document.add_table(rows=3, cols=2)
    summary_table.style = "Table Grid"
    summary_rows = (
        ("Total Income", summary.income, INCOME_FILL),
        ("Total Expenses", summary.expense, EXPENSE_FILL),
        ("Net Balance", summary.net, NET_FILL),
    )
    for row, (label, amount, fill) in zip(summary_table.rows, summary_rows):
        _bold_cell(row.cells[0], label, fill)
        _right_cell(row.cells[1], format_currency(amount, currency_symbol))

    document.add_heading("Transaction Details", level=2)
    detail_table = document.add_table(rows=1, cols=len(DETAIL_COLUMNS))
    detail_table.style = "Table Grid"
    for cell, heading in zip(detail_table.rows[0].cells, DETAIL_COLUMNS):
        label = f"{heading} ({currency_symbol})" if heading == "Amount" and currency_symbol else heading
        _bold_cell(cell, label, HEADER_FILL)
    detail_table.rows[0].cells[-1].paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.RIGHT

    for tx in _newest_first(selected):
        cells = detail_table.add_row().cells
        cells[0].text = tx.date.strftime("%m/%d/%Y")
        cells[1].text = names.get(tx.user_id, "N/A")
        cells[2].text = tx.description or "-"
        type_run = cells[3].paragraphs[0].add_run(tx.type.label)
        type_run.font.color.rgb = TYPE_COLORS[tx.type]
        _right_cell(cells[4], f"{tx.amount:,.2f}")

    footer = document.add_paragraph()
    footer.alignment = WD_ALIGN_PARAGRAPH.CENTER
    footer.add_run(
        f"Generated on {stamp:%A}, {format_date(stamp.date())} at {stamp:%H:%M}"
    ).italic = True

    return document


def write_statement(
    transactions: Iterable[Transaction],
    users: Sequence[User],
    user_id: Optional[int] = None,
    *,
    output_dir: Path,
    generated_at: Optional[datetime] = None,
    currency_symbol: str = "₹",
) -> Path:
    """Save the statement under ``output_dir`` and return the file path."""

    stamp = generated_at or datetime.now()
    document = build_statement(
        transactions, users, user_id, generated_at=stamp, currency_symbol=currency_symbol
    )
    holder = None
    if user_id is not None:
        holder = next((user.name for user in users if user.id == user_id), None)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / statement_filename(holder, stamp.date())
    document.save(str(output_path))
    logger.info(
        "Statement written", extra={"path": str(output_path), "user_id": user_id}
    )
    return output_path
