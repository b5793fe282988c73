# Overview: Error taxonomy shared by services and routes.

"""
Every failure the API reports to a client is one of these classes.

Each carries a stable `kind` (safe to branch on in a client), the HTTP
status it maps to, a human message and optional structured details.
Routes render them with `to_dict()`; nothing else about the failure
(stack, SQL, internal ids) reaches the response body.
"""

from __future__ import annotations


class BuildmartError(Exception):
    """Base class for errors with a client-facing representation."""

    kind = "InternalError"
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(BuildmartError, ValueError):
    """400-level input problem."""

    kind = "ValidationError"
    status_code = 400


class AuthenticationRequiredError(BuildmartError):
    kind = "AuthenticationRequired"
    status_code = 401


class PermissionDeniedError(BuildmartError):
    """Role or ownership mismatch."""

    kind = "Forbidden"
    status_code = 403


class NotFoundError(BuildmartError):
    kind = "NotFound"
    status_code = 404


class ConflictError(BuildmartError, ValueError):
    """409-level business rule conflict (e.g., duplicate username)."""

    kind = "Conflict"
    status_code = 409


class InvalidTransitionError(ConflictError):
    kind = "InvalidTransition"


class ProductNotFoundError(BuildmartError):
    """A requested order line names a product that cannot be sold."""

    kind = "ProductNotFound"
    status_code = 400


class InsufficientStockError(BuildmartError):
    kind = "InsufficientStock"
    status_code = 400