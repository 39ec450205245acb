"""Ledger user (household member or spending bucket)."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

UNKNOWN_USER_NAME = "Unknown user"


@dataclass(frozen=True, slots=True)
class User:
    """A named participant owning transactions.

    ``balance`` is derived: only the balance calculator produces users with a
    non-zero value, every other path leaves the default.
    """

    id: int
    name: str
    balance: Decimal = Decimal("0")

    def matches_name(self, name: str) -> bool:
        """Case-insensitive exact name comparison used by lookups and imports."""

        return self.name.strip().casefold() == name.strip().casefold()
