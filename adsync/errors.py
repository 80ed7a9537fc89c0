# adsync/errors.py
"""Service error taxonomy.

Each error carries the HTTP status it maps to; the app renders all of them
as a flat `{"error": message}` body.
"""
from pydantic import ValidationError


class ServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ServiceError):
    status_code = 400
    default_message = "Invalid input"


class Unauthorized(ServiceError):
    status_code = 401
    default_message = "Unauthorized"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Advertisement not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Advertisement already exists"


class RateLimited(ServiceError):
    status_code = 429
    default_message = "Too many requests, try again later"


class Internal(ServiceError):
    pass


def describe_validation_errors(errors) -> str:
    """Collapse pydantic error dicts into one user-facing line."""
    parts = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        where = ".".join(loc)
        parts.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return "; ".join(parts) or "Invalid input"


def from_validation_error(exc: ValidationError) -> InvalidInput:
    return InvalidInput(describe_validation_errors(exc.errors()))
