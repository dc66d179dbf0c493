"""
User facing error taxonomy.

Every error carries its HTTP status and the plaintext message sent to the
client. Storage-engine exceptions are translated into these at the dispatch
boundary; handlers never see sqlite3 or SQLAlchemy errors.
"""
from __future__ import annotations

from typing import Dict, Optional


class AppError(Exception):
    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message())

    def public_message(self) -> str:
        return "An internal error has occurred. Please try again later."

    def headers(self) -> Dict[str, str]:
        return {}


class ValidationError(AppError):
    status_code = 400

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__()

    def public_message(self) -> str:
        return f"Validation error on field: {self.field}"


class NotFound(AppError):
    status_code = 404

    def public_message(self) -> str:
        return "Not found"


class DatabaseError(AppError):
    status_code = 500

    def __init__(self, error_msg: str) -> None:
        self.error_msg = error_msg
        super().__init__()

    def public_message(self) -> str:
        return f"Database error has occurred: {self.error_msg}. Please try again later."


class DatabaseBusy(DatabaseError):
    """The database stayed locked for longer than the sqlite busy timeout."""

    status_code = 503
    retryable = True

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": "1"}


class InternalError(AppError):
    status_code = 500

    def __init__(self, detail: Optional[str] = None) -> None:
        # detail is for logs only, never sent to the client
        self.detail = detail
        super().__init__()


class MappingError(InternalError):
    """A persisted row did not have the shape of the entity it was mapped to."""


class ConsistencyError(InternalError):
    """A statement keyed on a unique id touched an unexpected number of rows."""


class ServiceUnavailable(AppError):
    status_code = 503
    retryable = True

    def public_message(self) -> str:
        return "Service unavailable. Please try again later."

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": "1"}


class NotImplementedYet(AppError):
    status_code = 501

    def public_message(self) -> str:
        return "Not implemented yet."
