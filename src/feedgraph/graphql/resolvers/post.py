from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ...logging import get_logger
from ...registry import POST
from ..engine import perform_write, resolve_all, resolve_by_key, resolve_edge
from .common import input_to_data

if TYPE_CHECKING:
    from ..mutations.root import ChangePostInput, CreatePostInput
    from ..types.post import Post
    from ..types.user import User

logger = get_logger(__name__)


# Query resolvers
async def resolve_posts(info: strawberry.Info) -> list[Post]:
    from ..types.post import Post

    return await resolve_all(info, POST, Post.from_row)


async def resolve_post_by_id(info: strawberry.Info, id: UUID) -> Post | None:
    from ..types.post import Post

    return await resolve_by_key(info, POST, id, Post.from_row)


# Post field resolvers
async def resolve_post_author(post: Post, info: strawberry.Info) -> User:
    """
    Resolve the author of a post.

    The author may have been deleted while the request was running; that
    raises NotFoundError and nulls the nearest nullable parent.
    """
    from ..types.user import User

    return await resolve_edge(info, "post.author", post.author_id, User.from_row)


# Mutation resolvers
async def create_post(info: strawberry.Info, dto: CreatePostInput) -> Post:
    from ..types.post import Post

    data = input_to_data(dto)
    row = await perform_write(info, "createPost", lambda gateway: gateway.create(POST, data))
    logger.info("Post created", post_id=str(row["id"]), author_id=str(row["author_id"]))
    return Post.from_row(row)


async def change_post(info: strawberry.Info, id: UUID, dto: ChangePostInput) -> Post:
    from ..types.post import Post

    data = input_to_data(dto)
    row = await perform_write(info, "changePost", lambda gateway: gateway.update(POST, id, data))
    return Post.from_row(row)


async def delete_post(info: strawberry.Info, id: UUID) -> UUID:
    await perform_write(info, "deletePost", lambda gateway: gateway.delete(POST, id))
    logger.info("Post deleted", post_id=str(id))
    return id
