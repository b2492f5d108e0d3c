"""
Application error taxonomy.

Services raise these; handlers in app.main turn them into
{"error": message, "details": ...} JSON bodies with the class status code.
"""
from __future__ import annotations

from typing import Any

from app.core import messages


class AppError(Exception):
    status_code = 400
    default_message = messages.GENERIC_FAILURE

    def __init__(self, message: str | None = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(AppError):
    status_code = 400
    default_message = messages.INVALID_DATA


class Unauthorized(AppError):
    status_code = 401
    default_message = messages.UNAUTHORIZED


class NotFound(AppError):
    status_code = 404


class InvalidState(AppError):
    """Edit, delete or transition not allowed for the record's current status."""

    status_code = 403
    default_message = messages.INVOICE_NOT_EDITABLE


class NoCreditsRemaining(AppError):
    status_code = 403
    default_message = messages.NO_CREDITS


class Conflict(AppError):
    status_code = 409


class NumberAllocationFailed(Conflict):
    default_message = messages.INVOICE_NUMBER_CONFLICT


class DeliveryFailed(AppError):
    status_code = 502
    default_message = messages.EMAIL_FAILED
