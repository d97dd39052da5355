from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ...errors import NotFoundError
from ...logging import get_logger
from ...registry import SUBSCRIPTION, USER
from ..engine import perform_write, resolve_all, resolve_by_key, resolve_edge
from .common import input_to_data

if TYPE_CHECKING:
    from ..mutations.root import ChangeUserInput, CreateUserInput
    from ..types.post import Post
    from ..types.profile import Profile
    from ..types.user import User

logger = get_logger(__name__)


# Query resolvers
async def resolve_users(info: strawberry.Info) -> list[User]:
    from ..types.user import User

    return await resolve_all(info, USER, User.from_row)


async def resolve_user_by_id(info: strawberry.Info, id: UUID) -> User | None:
    from ..types.user import User

    return await resolve_by_key(info, USER, id, User.from_row)


# User field resolvers
async def resolve_user_profile(user: User, info: strawberry.Info) -> Profile | None:
    from ..types.profile import Profile

    return await resolve_edge(info, "user.profile", user.id, Profile.from_row)


async def resolve_user_posts(user: User, info: strawberry.Info) -> list[Post]:
    from ..types.post import Post

    return await resolve_edge(info, "user.posts", user.id, Post.from_row)


async def resolve_user_subscribed_to(user: User, info: strawberry.Info) -> list[User]:
    from ..types.user import User

    return await resolve_edge(info, "user.user_subscribed_to", user.id, User.from_row)


async def resolve_subscribed_to_user(user: User, info: strawberry.Info) -> list[User]:
    from ..types.user import User

    return await resolve_edge(info, "user.subscribed_to_user", user.id, User.from_row)


# Mutation resolvers
async def create_user(info: strawberry.Info, dto: CreateUserInput) -> User:
    from ..types.user import User

    data = input_to_data(dto)
    row = await perform_write(info, "createUser", lambda gateway: gateway.create(USER, data))
    logger.info("User created", user_id=str(row["id"]))
    return User.from_row(row)


async def change_user(info: strawberry.Info, id: UUID, dto: ChangeUserInput) -> User:
    from ..types.user import User

    data = input_to_data(dto)
    row = await perform_write(info, "changeUser", lambda gateway: gateway.update(USER, id, data))
    return User.from_row(row)


async def delete_user(info: strawberry.Info, id: UUID) -> UUID:
    """
    Delete a user.

    Profile, posts and subscription edges of the user are removed with it.
    """
    await perform_write(info, "deleteUser", lambda gateway: gateway.delete(USER, id))
    logger.info("User deleted", user_id=str(id))
    return id


async def subscribe_to(info: strawberry.Info, user_id: UUID, author_id: UUID) -> User:
    """
    Subscribe ``user_id`` to ``author_id`` and return the subscriber.

    A repeated subscription for the same pair is a constraint violation.
    """
    from ..types.user import User

    await perform_write(
        info,
        "subscribeTo",
        lambda gateway: gateway.create(
            SUBSCRIPTION, {"subscriber_id": user_id, "author_id": author_id}
        ),
    )
    logger.info("Subscription created", subscriber_id=str(user_id), author_id=str(author_id))

    subscriber = await resolve_by_key(info, USER, user_id, User.from_row)
    if subscriber is None:
        raise NotFoundError(USER, user_id)
    return subscriber


async def unsubscribe_from(info: strawberry.Info, user_id: UUID, author_id: UUID) -> UUID:
    await perform_write(
        info,
        "unsubscribeFrom",
        lambda gateway: gateway.delete(SUBSCRIPTION, (user_id, author_id)),
    )
    logger.info("Subscription removed", subscriber_id=str(user_id), author_id=str(author_id))
    return author_id
