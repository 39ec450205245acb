"""Field coercion shared by the ledger store and the CSV importer.

Every helper either returns a normalised value or raises ``ValidationError``
naming the offending field.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..errors import ValidationError
from ..models.transaction import TransactionType

_TIME_FORMATS = ("%H:%M", "%H:%M:%S")

# matches the Numeric(14, 2) ledger column
CENT = Decimal("0.01")
MAX_AMOUNT = Decimal(10) ** 12


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field.capitalize()} is required.", field=field)
    if len(text) > max_length:
        raise ValidationError(
            f"{field.capitalize()} must be {max_length} characters or fewer.", field=field
        )
    return text


def coerce_amount(value: Any) -> Decimal:
    """Return a positive ``Decimal`` that fits the ledger column, whole cents only."""

    if isinstance(value, bool) or value is None:
        raise ValidationError("Amount is required.", field="amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Enter a valid number for the amount, got {value!r}.", field="amount")
    if not amount.is_finite():
        raise ValidationError("Amount must be a finite number.", field="amount")
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero.", field="amount")
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"Amount must be less than {MAX_AMOUNT:,}.", field="amount")
    if amount != amount.quantize(CENT):
        raise ValidationError("Amount can have at most 2 decimal places.", field="amount")
    return amount


def coerce_date(value: Any) -> date:
    """Accept a ``date`` or a ``YYYY-MM-DD`` string."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = "" if value is None else str(value).strip()
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Enter a valid date (YYYY-MM-DD), got {value!r}.", field="date")


def coerce_time(value: Any) -> Optional[time]:
    """Accept ``None``/blank, a ``time`` or an ``HH:MM[:SS]`` string."""

    if value is None:
        return None
    if isinstance(value, time):
        return value.replace(microsecond=0, tzinfo=None)
    raw = str(value).strip()
    if not raw:
        return None
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Enter a valid time (HH:MM), got {value!r}.", field="time")


def coerce_type(value: Any) -> TransactionType:
    if isinstance(value, TransactionType):
        return value
    raw = "" if value is None else str(value).strip().lower()
    try:
        return TransactionType(raw)
    except ValueError:
        raise ValidationError(
            f"Type must be 'income' or 'expense', got {value!r}.", field="type"
        )


def coerce_image_url(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
