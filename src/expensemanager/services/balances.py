"""Balance derivation from the transaction log."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Iterable, Optional

from ..errors import IntegrityWarning
from ..models.transaction import Transaction
from ..models.user import User

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def signed_amount(transaction: Transaction) -> Decimal:
    """Income counts positive, expense negative."""

    return transaction.signed_amount


@dataclass(frozen=True)
class BalanceSheet:
    """Users with recomputed balances plus the consistency diagnostics."""

    users: tuple[User, ...]
    total: Decimal
    transaction_total: Decimal
    orphans: tuple[Transaction, ...] = ()
    warnings: tuple[IntegrityWarning, ...] = field(default_factory=tuple)

    @property
    def is_consistent(self) -> bool:
        """True when every transaction belongs to a known user."""

        return not self.orphans and self.total == self.transaction_total

    def balance_for(self, user_id: int) -> Optional[Decimal]:
        for user in self.users:
            if user.id == user_id:
                return user.balance
        return None


def recompute_balances(
    users: Iterable[User], transactions: Iterable[Transaction]
) -> BalanceSheet:
    """Derive every user's balance and the grand total.

    The total is the sum of per-user balances. Transactions pointing at an
    unknown user contribute to no balance; they are reported as orphans with
    an ``IntegrityWarning`` so the gap against the raw transaction sum stays
    visible.
    """

    user_list = list(users)
    totals: dict[int, Decimal] = {user.id: ZERO for user in user_list}
    transaction_total = ZERO
    orphans: list[Transaction] = []

    for tx in transactions:
        amount = tx.signed_amount
        transaction_total += amount
        if tx.user_id in totals:
            totals[tx.user_id] += amount
        else:
            orphans.append(tx)

    recomputed = tuple(replace(user, balance=totals[user.id]) for user in user_list)
    total = sum((user.balance for user in recomputed), ZERO)
    warnings = tuple(IntegrityWarning(tx.id, tx.user_id) for tx in orphans)

    if orphans:
        logger.warning(
            "Balances exclude transactions with unknown users",
            extra={
                "orphan_ids": [tx.id for tx in orphans],
                "total": str(total),
                "transaction_total": str(transaction_total),
            },
        )

    return BalanceSheet(
        users=recomputed,
        total=total,
        transaction_total=transaction_total,
        orphans=tuple(orphans),
        warnings=warnings,
    )
