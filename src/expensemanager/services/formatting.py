"""Display helpers for amounts, dates and user names."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import Iterable, Optional

from ..models.user import UNKNOWN_USER_NAME, User


def format_currency(amount: Decimal | float | int, symbol: str = "₹") -> str:
    value = Decimal(str(amount))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_date(value: date) -> str:
    """Long form, e.g. ``5 January 2024``."""

    return f"{value.day} {value:%B %Y}"


def format_time(value: Optional[time]) -> str:
    """12-hour clock, e.g. ``1:05 PM``; an absent time renders as empty."""

    if value is None:
        return ""
    hour = (value.hour + 11) % 12 + 1
    suffix = "PM" if value.hour >= 12 else "AM"
    return f"{hour}:{value.minute:02d} {suffix}"


def display_name(users: Iterable[User], user_id: int) -> str:
    for user in users:
        if user.id == user_id:
            return user.name
    return UNKNOWN_USER_NAME
