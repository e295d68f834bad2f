# Overview: Error taxonomy shared by services and routes.

"""
Service-layer exceptions and their HTTP status codes.

Routes catch these and answer {"error": message} with the mapped status.
Anything outside this taxonomy is treated as a fatal error: logged with a
stack trace and answered with an opaque 500.
"""

from __future__ import annotations


class InventarioError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class ValidationError(InventarioError, ValueError):
    """Missing or malformed input, rejected before any transaction begins."""

    status_code = 400


class ConstraintError(InventarioError):
    """Unique-key collision (duplicate asset tag, username, email...)."""

    status_code = 409

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class NotFoundError(InventarioError, LookupError):
    """Target id absent, or no longer in the state the operation requires."""

    status_code = 404


class AuthError(InventarioError):
    """Bad credentials or bad TOTP code. Messages never say which factor failed."""

    status_code = 401


class PermissionDeniedError(InventarioError):
    """Authenticated actor lacks the capability for the action."""

    status_code = 403


class TransientError(InventarioError):
    """Connection, lock or pool failure. Safe for the caller to retry."""

    status_code = 503


class FatalError(InventarioError):
    """Programming or schema error. Never retried."""

    status_code = 500


def error_response(exc: InventarioError):
    return exc.to_dict(), exc.status_code
