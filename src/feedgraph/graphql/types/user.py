"""
User GraphQL type definitions
"""

from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

import strawberry

if TYPE_CHECKING:
    from .post import Post
    from .profile import Profile


@strawberry.type
class User:
    """User type for GraphQL API."""

    id: UUID
    name: str
    balance: float

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "User":
        return cls(id=row["id"], name=row["name"], balance=row["balance"])

    @strawberry.field
    async def profile(
        self, info: strawberry.Info
    ) -> Annotated["Profile", strawberry.lazy(".profile")] | None:
        """Get this user's profile, if one exists."""
        from ..resolvers.user import resolve_user_profile

        return await resolve_user_profile(self, info)

    @strawberry.field
    async def posts(
        self, info: strawberry.Info
    ) -> list[Annotated["Post", strawberry.lazy(".post")]]:
        """Get posts written by this user."""
        from ..resolvers.user import resolve_user_posts

        return await resolve_user_posts(self, info)

    @strawberry.field
    async def user_subscribed_to(self, info: strawberry.Info) -> list["User"]:
        """Get the authors this user subscribes to."""
        from ..resolvers.user import resolve_user_subscribed_to

        return await resolve_user_subscribed_to(self, info)

    @strawberry.field
    async def subscribed_to_user(self, info: strawberry.Info) -> list["User"]:
        """Get the users subscribed to this user."""
        from ..resolvers.user import resolve_subscribed_to_user

        return await resolve_subscribed_to_user(self, info)
