"""
Post GraphQL type definitions
"""

from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

import strawberry

if TYPE_CHECKING:
    from .user import User


@strawberry.type
class Post:
    """Post type for GraphQL API."""

    id: UUID
    title: str
    content: str
    author_id: UUID

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Post":
        return cls(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            author_id=row["author_id"],
        )

    @strawberry.field
    async def author(self, info: strawberry.Info) -> Annotated["User", strawberry.lazy(".user")]:
        """Get the author of this post."""
        from ..resolvers.post import resolve_post_author

        return await resolve_post_author(self, info)
