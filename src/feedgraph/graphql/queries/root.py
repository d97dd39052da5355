"""
Root GraphQL query definitions
"""

from uuid import UUID

import strawberry

from ..types.member_type import MemberType, MemberTypeId
from ..types.post import Post
from ..types.profile import Profile
from ..types.user import User


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field
    async def member_types(self, info: strawberry.Info) -> list[MemberType]:
        """Get all membership tiers."""
        from ..resolvers.member_type import resolve_member_types

        return await resolve_member_types(info)

    @strawberry.field
    async def member_type(self, info: strawberry.Info, id: MemberTypeId) -> MemberType | None:
        """Get a membership tier by ID."""
        from ..resolvers.member_type import resolve_member_type_by_id

        return await resolve_member_type_by_id(info, id)

    @strawberry.field
    async def posts(self, info: strawberry.Info) -> list[Post]:
        """Get all posts."""
        from ..resolvers.post import resolve_posts

        return await resolve_posts(info)

    @strawberry.field
    async def post(self, info: strawberry.Info, id: UUID) -> Post | None:
        """Get a post by ID."""
        from ..resolvers.post import resolve_post_by_id

        return await resolve_post_by_id(info, id)

    @strawberry.field
    async def profiles(self, info: strawberry.Info) -> list[Profile]:
        """Get all profiles."""
        from ..resolvers.profile import resolve_profiles

        return await resolve_profiles(info)

    @strawberry.field
    async def profile(self, info: strawberry.Info, id: UUID) -> Profile | None:
        """Get a profile by ID."""
        from ..resolvers.profile import resolve_profile_by_id

        return await resolve_profile_by_id(info, id)

    @strawberry.field
    async def users(self, info: strawberry.Info) -> list[User]:
        """Get all users."""
        from ..resolvers.user import resolve_users

        return await resolve_users(info)

    @strawberry.field
    async def user(self, info: strawberry.Info, id: UUID) -> User | None:
        """Get a user by ID."""
        from ..resolvers.user import resolve_user_by_id

        return await resolve_user_by_id(info, id)
