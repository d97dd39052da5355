"""
Shared FastAPI dependencies
"""

from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from fastapi import HTTPException, Request

from ..errors import FeedGraphError
from ..storage.base import StorageGateway

T = TypeVar("T")


def get_gateway(request: Request) -> StorageGateway:
    """Storage gateway installed on the application by its lifespan."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=503, detail="Storage is not initialized")
    return gateway


async def call_gateway(operation: Callable[[], Coroutine[Any, Any, T]]) -> T:
    """Run a gateway operation, mapping domain errors to HTTP errors."""
    try:
        return await operation()
    except FeedGraphError as e:
        raise HTTPException(
            status_code=e.http_status, detail={"code": e.code, "message": e.message}
        ) from e
