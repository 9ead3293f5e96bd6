"""
Domain error taxonomy.

Every error raised by the services carries the HTTP status the routes answer
with and an optional `details` dict for the JSON body. None of them is fatal:
they are all handled at the request boundary.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for expected, caller-visible failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class ValidationError(PosError, ValueError):
    """400-level input problem."""


class NotFoundError(PosError):
    """404: unknown product or sale id."""

    status_code = 404


class ProductNotFoundError(NotFoundError):
    pass


class SaleNotFoundError(NotFoundError):
    pass


class ConflictError(PosError, ValueError):
    """409-level business rule conflict (e.g., duplicate name + variant)."""

    status_code = 409


class AlreadyRefundedError(ConflictError):
    """The sale already took its one-way transition to refunded."""


class InsufficientStockError(PosError):
    """Requested quantity exceeds on-hand; the whole operation is aborted."""

    status_code = 409
