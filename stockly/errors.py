"""Exception types mapped onto HTTP status codes by the API layer."""

from typing import Optional


class StocklyError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(StocklyError):
    status_code = 400


class AuthError(StocklyError):
    status_code = 401


class NotFoundError(StocklyError):
    status_code = 404


class PersistenceError(StocklyError):
    """A write failed after validation succeeded."""

    status_code = 500


__all__ = [
    "StocklyError",
    "ValidationError",
    "AuthError",
    "NotFoundError",
    "PersistenceError",
]
