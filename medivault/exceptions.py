"""
Error taxonomy for the access-control and consistency core.

Every error here is a request-validation failure: it is surfaced to the
caller as a 4xx response and never retried.  The HTTP layer translates
them through a single error handler using ``status_code`` and ``to_dict``.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class MedivaultError(Exception):
    """Base class for all errors surfaced to API callers."""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class InvalidCredentials(MedivaultError):
    """Login failed.  The message never says which part was wrong."""
    status_code = 401

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class InvalidToken(MedivaultError):
    """Missing, malformed, badly signed or expired bearer token."""
    status_code = 401

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


class Forbidden(MedivaultError):
    """Authenticated, but the role or ownership check failed."""
    status_code = 403

    # Role and ownership denials share one message so the response never
    # confirms that another patient's record exists.
    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class NotFound(MedivaultError):
    status_code = 404


class InvalidInput(MedivaultError):
    status_code = 400


class InvalidFormat(InvalidInput):
    pass


class InvalidRange(InvalidInput):
    pass


class InvalidStatus(InvalidInput):
    pass


class InvalidRole(InvalidInput):
    pass


class ValidationFailed(InvalidInput):
    """Structured validation failure with per-field messages."""

    def __init__(self, fields: Dict[str, str], message: str = "Validation failed"):
        self.fields = dict(fields)
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "status": self.status_code,
            "error": self.message,
            "fields": self.fields,
        }


class Conflict(MedivaultError):
    """Uniqueness violation (e.g. duplicate email at registration)."""
    status_code = 400


def require_fields(data: Optional[Dict[str, Any]], *names: str) -> None:
    """Raise ValidationFailed listing every required field that is blank."""
    data = data or {}
    missing = {}
    for name in names:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing[name] = "must not be blank"
    if missing:
        raise ValidationFailed(missing)
