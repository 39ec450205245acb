"""Error taxonomy shared by the ledger core, codecs and repositories."""

from __future__ import annotations

from typing import Optional


class ExpenseManagerError(Exception):
    """Base class for every error raised by the expense manager."""


class ValidationError(ExpenseManagerError):
    """Input has the wrong shape or value; nothing was changed."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(ExpenseManagerError):
    """The targeted user or transaction does not exist."""

    def __init__(self, kind: str, identifier: object):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier


class UnrecognizedFormatError(ExpenseManagerError):
    """A CSV header does not match the supported import format."""


class EmptyExportError(ExpenseManagerError):
    """An export was requested for an empty transaction set."""


class ExternalStoreError(ExpenseManagerError):
    """The backing store could not complete a round trip."""


class IntegrityWarning(UserWarning):
    """A transaction references a user that no longer exists.

    Collected and surfaced to callers rather than raised.
    """

    def __init__(self, transaction_id: Optional[int], user_id: int):
        super().__init__(
            f"Transaction {transaction_id} references unknown user {user_id}; "
            "it is excluded from balances"
        )
        self.transaction_id = transaction_id
        self.user_id = user_id
