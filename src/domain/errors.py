"""Failures raised by the role registry and card directory.

Each error is terminal for the single operation that raised it; nothing is
retried and no mutation is partially applied.
"""
from __future__ import annotations


class CardDirectoryError(Exception):
    """Base class for domain failures surfaced to API callers."""

    status_code = 400
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class NotAuthenticated(CardDirectoryError):
    status_code = 401
    default_message = "Not authenticated"


class Unauthorized(CardDirectoryError):
    status_code = 403
    default_message = "Only admins can perform this action"


class NotFound(CardDirectoryError):
    status_code = 404
    default_message = "Record not found"


class AlreadyBound(CardDirectoryError):
    status_code = 409
    default_message = "This NFC card has already been assigned and cannot be changed"


class ConcurrentModification(CardDirectoryError):
    status_code = 409
    default_message = "The record was changed concurrently"


class InvalidInput(CardDirectoryError):
    status_code = 422
    default_message = "Invalid input"


class InvalidTagId(InvalidInput):
    default_message = "Please enter an NFC ID"
