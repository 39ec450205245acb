"""Transaction history filtering, grouping and summaries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from ..errors import ValidationError
from ..models.transaction import Transaction
from ..models.user import UNKNOWN_USER_NAME, User

ZERO = Decimal("0")
MIDNIGHT = time(0, 0)


class WindowKind(str, Enum):
    """Date window applied before grouping."""

    MONTH = "month"
    WEEK = "week"
    YEAR = "year"
    TOTAL = "total"


def week_of_month(day: date) -> int:
    """Simple ``ceil(day / 7)`` bucket: days 1-7 are week 1, 8-14 week 2, ..."""

    return math.ceil(day.day / 7)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class HistoryFilter:
    """Window plus free-text search.

    ``month_index`` is 0-based (0 = January); ``week_of_month`` is 1-based.
    """

    window: WindowKind = WindowKind.TOTAL
    year: Optional[int] = None
    month_index: Optional[int] = None
    week_of_month: Optional[int] = None
    search_text: str = ""

    def __post_init__(self) -> None:
        window = WindowKind(self.window)
        object.__setattr__(self, "window", window)
        if window is WindowKind.TOTAL:
            return
        if not _is_int(self.year):
            raise ValidationError(f"A year is required for the {window.value} window.", field="year")
        if window in (WindowKind.MONTH, WindowKind.WEEK):
            if not _is_int(self.month_index) or not 0 <= self.month_index <= 11:
                raise ValidationError(
                    "month_index must be between 0 and 11.", field="month_index"
                )
        if window is WindowKind.WEEK:
            if not _is_int(self.week_of_month) or not 1 <= self.week_of_month <= 5:
                raise ValidationError(
                    "week_of_month must be between 1 and 5.", field="week_of_month"
                )

    @classmethod
    def for_today(cls, window: WindowKind | str, today: date, search_text: str = "") -> HistoryFilter:
        """Build the filter for the period containing ``today``."""

        window = WindowKind(window)
        if window is WindowKind.TOTAL:
            return cls(search_text=search_text)
        return cls(
            window=window,
            year=today.year,
            month_index=today.month - 1 if window is not WindowKind.YEAR else None,
            week_of_month=week_of_month(today) if window is WindowKind.WEEK else None,
            search_text=search_text,
        )

    def includes_date(self, day: date) -> bool:
        if self.window is WindowKind.TOTAL:
            return True
        if day.year != self.year:
            return False
        if self.window is WindowKind.YEAR:
            return True
        if day.month - 1 != self.month_index:
            return False
        if self.window is WindowKind.WEEK:
            return week_of_month(day) == self.week_of_month
        return True


@dataclass(frozen=True)
class DateGroup:
    date: date
    items: tuple[Transaction, ...]


@dataclass(frozen=True)
class HistorySummary:
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class HistoryView:
    groups: tuple[DateGroup, ...]
    summary: HistorySummary
    match_count: int

    def transactions(self) -> list[Transaction]:
        """Flattened view in display order."""

        return [tx for group in self.groups for tx in group.items]


def compute_summary(transactions: Iterable[Transaction]) -> HistorySummary:
    """Compute income and expense totals from the provided transactions."""

    income = ZERO
    expense = ZERO
    for tx in transactions:
        if tx.is_income:
            income += tx.amount
        else:
            expense += tx.amount
    return HistorySummary(income=income, expense=expense)


def _matches_search(tx: Transaction, needle: str, names: dict[int, str]) -> bool:
    if not needle:
        return True
    owner = names.get(tx.user_id, UNKNOWN_USER_NAME)
    return needle in tx.description.casefold() or needle in owner.casefold()


def _item_sort_key(tx: Transaction) -> tuple[time, int]:
    return (tx.time or MIDNIGHT, tx.id if tx.id is not None else -1)


def filter_and_group(
    transactions: Iterable[Transaction],
    spec: HistoryFilter,
    users: Iterable[User] = (),
) -> HistoryView:
    """Filter by window and search text, then group by day.

    Days are ordered most recent first; within a day, latest time first with
    a missing time counted as midnight and ties broken by id descending. The
    summary covers the filtered set only.
    """

    names = {user.id: user.name for user in users}
    needle = spec.search_text.strip().casefold()

    matched = [
        tx
        for tx in transactions
        if spec.includes_date(tx.date) and _matches_search(tx, needle, names)
    ]

    by_date: dict[date, list[Transaction]] = {}
    for tx in matched:
        by_date.setdefault(tx.date, []).append(tx)

    groups = tuple(
        DateGroup(date=day, items=tuple(sorted(by_date[day], key=_item_sort_key, reverse=True)))
        for day in sorted(by_date, reverse=True)
    )

    return HistoryView(groups=groups, summary=compute_summary(matched), match_count=len(matched))
