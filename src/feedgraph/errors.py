"""
Error taxonomy shared by the storage gateways, the resolution engine and the
REST endpoints.

Each error carries a stable ``code``. graphql-core copies an original error's
``extensions`` attribute onto the located GraphQL error, so the code reaches
the caller as ``errors[].extensions.code``.
"""

from typing import Any


class FeedGraphError(Exception):
    """Base exception for all domain failures."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def extensions(self) -> dict[str, Any]:
        return {"code": self.code, **self.details}


class InputValidationError(FeedGraphError):
    """Malformed identifier, unknown enum value or missing required field."""

    code = "BAD_USER_INPUT"
    http_status = 400


class NotFoundError(FeedGraphError):
    """A lookup, update or delete target has no matching row."""

    code = "NOT_FOUND"
    http_status = 404

    def __init__(self, entity: str, key: Any, message: str | None = None):
        super().__init__(
            message or f"{entity} not found: {format_key(key)}",
            entity=entity,
            key=format_key(key),
        )


class ConstraintViolationError(FeedGraphError):
    """A write would break a uniqueness or referential constraint."""

    code = "CONSTRAINT_VIOLATION"
    http_status = 409


class UpstreamFailure(FeedGraphError):
    """The storage backend is unreachable or failed to execute a call."""

    code = "UPSTREAM_FAILURE"
    http_status = 503


def format_key(key: Any) -> str:
    if isinstance(key, tuple):
        return ",".join(str(part) for part in key)
    return str(key)
