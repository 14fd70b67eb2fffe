"""Exception types raised by the reconciliation core."""

from __future__ import annotations


class PantryTripError(Exception):
    """Base class for every error raised by pantrytrip."""


class ValidationError(PantryTripError, ValueError):
    """Receipt, list or configuration input is malformed or empty."""


class NotFoundError(PantryTripError, LookupError):
    """A receipt, list or pantry item id is unknown to the store."""


class AlreadyCompletedError(PantryTripError):
    """The shopping list has already been completed."""


class AlreadyLinkedError(PantryTripError):
    """The receipt is already linked to a different shopping list."""


class InvalidStateError(PantryTripError):
    """An operation was attempted from a state that does not allow it."""


class RemoteCallFailure(PantryTripError):
    """An external store call failed or timed out.

    The original exception is kept as ``__cause__``.
    """

    def __init__(self, operation: str, subject: str, message: str = "") -> None:
        self.operation = operation
        self.subject = subject
        detail = f": {message}" if message else ""
        super().__init__(f"{operation}({subject}) failed{detail}")
