"""Analytics datasets and matplotlib charts for the ledger."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from ..models.transaction import Transaction  # noqa: E402
from ..models.user import User  # noqa: E402
from .formatting import format_currency  # noqa: E402
from .history import HistorySummary, compute_summary  # noqa: E402

ZERO = Decimal("0")
INCOME_COLOR = "#22c55e"
EXPENSE_COLOR = "#ef4444"
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


@dataclass(frozen=True)
class UserFlow:
    name: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class MonthlyFlow:
    year: int
    month: int
    income: Decimal
    expense: Decimal

    @property
    def label(self) -> str:
        """Short label such as ``Jan 2024``."""

        return f"{_MONTH_ABBR[self.month - 1]} {self.year}"


@dataclass(frozen=True)
class BalanceShare:
    name: str
    balance: Decimal
    percentage: float


def totals(transactions: Iterable[Transaction]) -> HistorySummary:
    """Overall income, expense and net."""

    return compute_summary(transactions)


def income_expense_by_user(
    users: Sequence[User], transactions: Iterable[Transaction]
) -> list[UserFlow]:
    """Per-user income and expense sums, in user order."""

    sums = {user.id: [ZERO, ZERO] for user in users}
    for tx in transactions:
        bucket = sums.get(tx.user_id)
        if bucket is None:
            continue
        bucket[0 if tx.is_income else 1] += tx.amount
    return [UserFlow(user.name, sums[user.id][0], sums[user.id][1]) for user in users]


def monthly_trend(transactions: Iterable[Transaction], months: int = 6) -> list[MonthlyFlow]:
    """Income and expense per calendar month, oldest first.

    Only months that have transactions appear; the last ``months`` of them
    are kept.
    """

    buckets: dict[tuple[int, int], list[Decimal]] = {}
    for tx in transactions:
        bucket = buckets.setdefault((tx.date.year, tx.date.month), [ZERO, ZERO])
        bucket[0 if tx.is_income else 1] += tx.amount
    ordered = sorted(buckets.items())
    if months > 0:
        ordered = ordered[-months:]
    return [MonthlyFlow(year, month, income, expense) for (year, month), (income, expense) in ordered]


def balance_distribution(users: Iterable[User]) -> list[BalanceShare]:
    """Share of the positive balances held by each user.

    Users at or below zero are left out; a pie cannot show them.
    """

    positive = [user for user in users if user.balance > 0]
    total = sum((user.balance for user in positive), ZERO)
    return [
        BalanceShare(user.name, user.balance, float(user.balance / total * 100))
        for user in positive
    ]


def build_balance_chart(users: Iterable[User], *, currency_symbol: str = "₹") -> Figure:
    """Pie chart of positive user balances."""

    shares = balance_distribution(users)
    fig, ax = plt.subplots(figsize=(8, 6))
    if shares:
        ax.pie(
            [float(share.balance) for share in shares],
            labels=[f"{share.name}: {format_currency(share.balance, currency_symbol)}" for share in shares],
            autopct="%1.1f%%",
            startangle=90,
            wedgeprops=dict(edgecolor="white", linewidth=1.5),
        )
        ax.axis("equal")
    else:
        ax.text(0.5, 0.5, "No positive balances", ha="center", va="center", fontsize=14, color="#666")
        ax.axis("off")
    ax.set_title("Balance Distribution", fontsize=16, fontweight="bold")
    plt.tight_layout()
    return fig


def build_income_expense_chart(
    users: Sequence[User], transactions: Iterable[Transaction]
) -> Figure:
    """Grouped bars of income and expense per user."""

    flows = income_expense_by_user(users, transactions)
    fig, ax = plt.subplots(figsize=(10, 6))
    if flows:
        positions = range(len(flows))
        width = 0.38
        ax.bar(
            [p - width / 2 for p in positions],
            [float(f.income) for f in flows],
            width,
            label="Income",
            color=INCOME_COLOR,
        )
        ax.bar(
            [p + width / 2 for p in positions],
            [float(f.expense) for f in flows],
            width,
            label="Expense",
            color=EXPENSE_COLOR,
        )
        ax.set_xticks(list(positions))
        ax.set_xticklabels([f.name for f in flows])
        ax.grid(axis="y", linestyle="--", alpha=0.4)
        ax.legend()
    else:
        ax.text(0.5, 0.5, "No users yet", ha="center", va="center", fontsize=14, color="#666")
        ax.axis("off")
    ax.set_title("Income vs Expense by User", fontsize=16, fontweight="bold")
    plt.tight_layout()
    return fig


def build_trend_chart(transactions: Iterable[Transaction], months: int = 6) -> Figure:
    """Line chart of monthly income and expense."""

    trend = monthly_trend(transactions, months)
    fig, ax = plt.subplots(figsize=(10, 5))
    if trend:
        labels = [point.label for point in trend]
        ax.plot(labels, [float(p.income) for p in trend], marker="o", linewidth=2, color=INCOME_COLOR, label="Income")
        ax.plot(labels, [float(p.expense) for p in trend], marker="o", linewidth=2, color=EXPENSE_COLOR, label="Expense")
        ax.grid(linestyle="--", alpha=0.4)
        ax.legend()
    else:
        ax.text(0.5, 0.5, "No transactions yet", ha="center", va="center", fontsize=14, color="#666")
        ax.axis("off")
    ax.set_title("Monthly Income & Expense Trend", fontsize=16, fontweight="bold")
    plt.tight_layout()
    return fig


def export_chart_png(figure: Figure, output_path: Path) -> Path:
    """Render ``figure`` to PNG, close it and return the path."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    figure.savefig(output_path, bbox_inches="tight", dpi=120)
    plt.close(figure)
    return output_path
