from __future__ import annotations

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Stable error kinds surfaced by the API.

    Each kind maps to exactly one default HTTP status; a few call sites
    override the status (e.g. a wrong current password on change-password
    is a 400, not a 401) without changing the kind.
    """

    VALIDATION_FAILED = "validation_failed"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    DUPLICATE_IDENTITY = "duplicate_identity"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected at startup."""


class ServiceError(Exception):
    """Base class for service-layer exceptions mapped to HTTP responses."""

    status_code: int = 400
    kind: ErrorKind = ErrorKind.VALIDATION_FAILED

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[dict]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.errors = errors


class ValidationFailed(ServiceError):
    """Malformed or missing input (400)."""
    status_code = 400
    kind = ErrorKind.VALIDATION_FAILED


class InvalidCredentials(ServiceError):
    """Unknown email or wrong secret (401). The two cases are indistinguishable."""
    status_code = 401
    kind = ErrorKind.INVALID_CREDENTIALS


class AccountDeactivated(ServiceError):
    """Credentials are valid but the identity is inactive (401)."""
    status_code = 401
    kind = ErrorKind.ACCOUNT_DEACTIVATED


class DuplicateIdentity(ServiceError):
    """Email already registered within the tenant (409)."""
    status_code = 409
    kind = ErrorKind.DUPLICATE_IDENTITY


class Unauthorized(ServiceError):
    """Missing, invalid or expired session, or identity gone (401)."""
    status_code = 401
    kind = ErrorKind.UNAUTHORIZED

    def __init__(
        self,
        message: str,
        *,
        clear_cookie: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.clear_cookie = clear_cookie


class NotFound(ServiceError):
    """Requested resource not found (404)."""
    status_code = 404
    kind = ErrorKind.NOT_FOUND


class Internal(ServiceError):
    """Store or codec failure (500)."""
    status_code = 500
    kind = ErrorKind.INTERNAL


__all__ = [
    "ErrorKind",
    "ConfigurationError",
    "ServiceError",
    "ValidationFailed",
    "InvalidCredentials",
    "AccountDeactivated",
    "DuplicateIdentity",
    "Unauthorized",
    "NotFound",
    "Internal",
]
