"""
REST endpoints for the user subscription graph.

``/users/{userId}/user-subscribed-to`` lists, adds and removes the authors a
user subscribes to. Writes answer 204 with an empty body.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...errors import NotFoundError
from ...graphql.scalars import parse_uuid
from ...logging import get_logger
from ...registry import SUBSCRIPTION, USER
from ...storage.base import Row, StorageGateway
from ..dependencies import call_gateway, get_gateway

logger = get_logger(__name__)

router = APIRouter()


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubscribeRequest(_CamelModel):
    """Request model for subscribing to an author."""

    author_id: str = Field(..., description="UUID of the author to subscribe to")


class UserResponse(_CamelModel):
    """Response model for a user."""

    id: UUID
    name: str
    balance: float

    @classmethod
    def from_row(cls, row: Row) -> "UserResponse":
        return cls(id=row["id"], name=row["name"], balance=row["balance"])


async def _list_authors(gateway: StorageGateway, user_id: UUID) -> list[Row]:
    if await gateway.find_one(USER, user_id) is None:
        raise NotFoundError(USER, user_id)
    edges = await gateway.find_many(SUBSCRIPTION, {"subscriber_id": user_id})
    if not edges:
        return []
    return await gateway.find_many(USER, {"id": [edge["author_id"] for edge in edges]})


async def _subscribe(gateway: StorageGateway, user_id: UUID, author_id: UUID) -> Row:
    if await gateway.find_one(USER, user_id) is None:
        raise NotFoundError(USER, user_id)
    return await gateway.create(SUBSCRIPTION, {"subscriber_id": user_id, "author_id": author_id})


@router.get("/{user_id}/user-subscribed-to", response_model=list[UserResponse])
async def list_subscribed_authors(
    user_id: str,
    gateway: StorageGateway = Depends(get_gateway),
) -> list[UserResponse]:
    """List the authors a user subscribes to."""
    rows = await call_gateway(lambda: _list_authors(gateway, parse_uuid(user_id)))
    return [UserResponse.from_row(row) for row in rows]


@router.post("/{user_id}/user-subscribed-to", status_code=204)
async def subscribe_to_author(
    user_id: str,
    body: SubscribeRequest,
    gateway: StorageGateway = Depends(get_gateway),
) -> Response:
    """Subscribe a user to an author."""
    await call_gateway(
        lambda: _subscribe(gateway, parse_uuid(user_id), parse_uuid(body.author_id))
    )
    logger.info("Subscription created", subscriber_id=user_id, author_id=body.author_id)
    return Response(status_code=204)


@router.delete("/{user_id}/user-subscribed-to/{author_id}", status_code=204)
async def unsubscribe_from_author(
    user_id: str,
    author_id: str,
    gateway: StorageGateway = Depends(get_gateway),
) -> Response:
    """Remove a subscription; 404 when the user does not subscribe to the author."""
    await call_gateway(
        lambda: gateway.delete(SUBSCRIPTION, (parse_uuid(user_id), parse_uuid(author_id)))
    )
    logger.info("Subscription removed", subscriber_id=user_id, author_id=author_id)
    return Response(status_code=204)
