from __future__ import annotations

from typing import Any, Dict, Optional


class ConstraintViolation(Exception):
    """A uniqueness constraint was violated while writing a record.

    ``field`` names the offending column (``email`` for identities) so the
    service layer can turn it into a field-level message.
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.detail = detail or {}


__all__ = ["ConstraintViolation"]
