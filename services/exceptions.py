"""
services.exceptions - Error taxonomy shared by services and the API.

Each error carries the HTTP status the API layer answers with, so the
services never import Flask.
"""

from __future__ import annotations


class InventoryError(Exception):
    """Base class for every expected, caller-visible failure."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(InventoryError):
    """Malformed / missing input, or a physically impossible request."""
    status_code = 400


class InsufficientQuantityError(InventoryError):
    """The lot has no whole piece left to cut from."""
    status_code = 400

    def __init__(self, lot_id, message: str = "Insufficient quantity"):
        super().__init__(message)
        self.lot_id = lot_id


class NotFoundError(InventoryError):
    status_code = 404


class ConflictError(InventoryError):
    status_code = 409


class InternalError(InventoryError):
    """Store / transport failure.  Detail is only shown in development."""
    status_code = 500
