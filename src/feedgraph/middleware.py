"""
Middleware for request context and logging
"""

import json
import re
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)

SENSITIVE_PARAM_KEYWORDS = frozenset(
    {
        "password",
        "token",
        "api_key",
        "secret",
        "auth",
        "authorization",
        "key",
        "session",
        "cookie",
        "credentials",
    }
)

# GraphQL payload carried in a query string is never logged.
GRAPHQL_PAYLOAD_PARAMS = ("query", "variables", "extensions")

_OPERATION_PATTERN = re.compile(r"\b(query|mutation)\s+(\w+)")


def sanitize_query_params(params: dict[str, Any], graphql: bool = False) -> dict[str, Any]:
    """Redact sensitive query parameters before logging.

    Args:
        params: Dictionary of query parameters
        graphql: Whether the request targets the GraphQL endpoint

    Returns:
        Dictionary with sensitive parameters redacted
    """
    sanitized = {}
    for key, value in params.items():
        lowered = key.lower()
        if any(sensitive in lowered for sensitive in SENSITIVE_PARAM_KEYWORDS):
            sanitized[key] = "[REDACTED]"
        elif graphql and key in GRAPHQL_PAYLOAD_PARAMS:
            sanitized[key] = "[REDACTED]"
        else:
            sanitized[key] = value
    return sanitized


def operation_from_document(document: Any) -> str | None:
    """Derive a log label for a GraphQL document without parsing it."""
    if not isinstance(document, str) or not document:
        return None
    if "__schema" in document or "IntrospectionQuery" in document:
        return "__introspection"
    match = _OPERATION_PATTERN.search(document)
    if match is None:
        return "unnamed_operation"
    kind, name = match.groups()
    return f"mutation:{name}" if kind == "mutation" else name


async def extract_graphql_operation_name(request: Request) -> str | None:
    """Find the operation name of a GET or POST request to ``/graphql``."""
    if request.url.path != "/graphql":
        return None

    if request.method == "GET":
        payload: dict[str, Any] = dict(request.query_params)
    elif request.method == "POST":
        body = await request.body()
        if not body:
            return None
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(payload, dict):
            return None
    else:
        return None

    operation = payload.get("operationName")
    if isinstance(operation, str) and operation:
        return operation
    return operation_from_document(payload.get("query"))


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """Middleware to set logging context for each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and set logging context."""
        graphql_operation = await extract_graphql_operation_name(request)
        set_request_context(operation=graphql_operation)

        try:
            sanitized_params = None
            if request.query_params:
                sanitized_params = sanitize_query_params(
                    dict(request.query_params), graphql=request.url.path == "/graphql"
                )

            logger.info(
                "Request started",
                method=request.method,
                path=request.url.path,
                query_params=sanitized_params,
                user_agent=request.headers.get("user-agent"),
                remote_addr=request.client.host if request.client else None,
            )

            response = await call_next(request)

            logger.info(
                "Request completed",
                status_code=response.status_code,
                method=request.method,
                path=request.url.path,
            )
            return response

        except Exception as e:
            logger.error(
                "Request failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise

        finally:
            clear_request_context()
