"""Error taxonomy shared by the expense store, the REST service and the client."""

from __future__ import annotations

from typing import ClassVar


class ExpenseError(RuntimeError):
    """Base class for every failure surfaced by the expense tracker.

    Subclasses carry the HTTP status the service answers with so that the
    exception handlers and the client can map errors in both directions.
    """

    status_code: ClassVar[int] = 500
    default_message: ClassVar[str] = "Server Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ExpenseError):
    """Raised when required fields are missing or carry invalid values."""

    status_code = 400
    default_message = "Invalid expense data"


class InvalidIdError(ExpenseError):
    """Raised when an identifier is not a well-formed expense id."""

    status_code = 400
    default_message = "Invalid expense ID"


class NotFoundError(ExpenseError):
    """Raised when a well-formed id does not match any stored expense."""

    status_code = 404
    default_message = "Expense not found"


class UnknownServerError(ExpenseError):
    """Raised for uncaught server-side failures (HTTP 500)."""

    status_code = 500
    default_message = "Server Error"


class TransportError(ExpenseError):
    """Raised by the client when the backend cannot be reached."""

    status_code = 503
    default_message = "Unable to reach the expense service"


def error_for_status(status_code: int, message: str | None = None) -> ExpenseError:
    """Rebuild the exception matching an error envelope received over HTTP."""

    if status_code == NotFoundError.status_code:
        return NotFoundError(message)
    if status_code == 400:
        if message == InvalidIdError.default_message:
            return InvalidIdError(message)
        return ValidationError(message)
    return UnknownServerError(message)


__all__ = [
    "ExpenseError",
    "InvalidIdError",
    "NotFoundError",
    "TransportError",
    "UnknownServerError",
    "ValidationError",
    "error_for_status",
]
