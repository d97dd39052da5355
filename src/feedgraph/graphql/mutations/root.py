"""
Root GraphQL mutation definitions
"""

from uuid import UUID

import strawberry

from ..types.member_type import MemberTypeId
from ..types.post import Post
from ..types.profile import Profile
from ..types.user import User


# Input types for mutations. Change* inputs leave omitted fields UNSET so
# only supplied attributes are written.
@strawberry.input
class CreatePostInput:
    """Input for creating a post."""

    title: str
    content: str
    author_id: UUID


@strawberry.input
class ChangePostInput:
    """Input for changing a post."""

    title: str | None = strawberry.UNSET
    content: str | None = strawberry.UNSET


@strawberry.input
class CreateProfileInput:
    """Input for creating a profile."""

    is_male: bool
    year_of_birth: int
    user_id: UUID
    member_type_id: MemberTypeId


@strawberry.input
class ChangeProfileInput:
    """Input for changing a profile."""

    is_male: bool | None = strawberry.UNSET
    year_of_birth: int | None = strawberry.UNSET
    member_type_id: MemberTypeId | None = strawberry.UNSET


@strawberry.input
class CreateUserInput:
    """Input for creating a user."""

    name: str
    balance: float


@strawberry.input
class ChangeUserInput:
    """Input for changing a user."""

    name: str | None = strawberry.UNSET
    balance: float | None = strawberry.UNSET


@strawberry.type
class Mutation:
    """Root GraphQL mutation type."""

    # Post mutations
    @strawberry.mutation(name="createPost")
    async def create_post(self, info: strawberry.Info, dto: CreatePostInput) -> Post:
        """Create a new post."""
        from ..resolvers.post import create_post

        return await create_post(info, dto)

    @strawberry.mutation(name="changePost")
    async def change_post(self, info: strawberry.Info, id: UUID, dto: ChangePostInput) -> Post:
        """Change an existing post."""
        from ..resolvers.post import change_post

        return await change_post(info, id, dto)

    @strawberry.mutation(name="deletePost")
    async def delete_post(self, info: strawberry.Info, id: UUID) -> UUID:
        """Delete a post and return its ID."""
        from ..resolvers.post import delete_post

        return await delete_post(info, id)

    # Profile mutations
    @strawberry.mutation(name="createProfile")
    async def create_profile(self, info: strawberry.Info, dto: CreateProfileInput) -> Profile:
        """Create a profile for a user."""
        from ..resolvers.profile import create_profile

        return await create_profile(info, dto)

    @strawberry.mutation(name="changeProfile")
    async def change_profile(
        self, info: strawberry.Info, id: UUID, dto: ChangeProfileInput
    ) -> Profile:
        """Change an existing profile."""
        from ..resolvers.profile import change_profile

        return await change_profile(info, id, dto)

    @strawberry.mutation(name="deleteProfile")
    async def delete_profile(self, info: strawberry.Info, id: UUID) -> UUID:
        """Delete a profile and return its ID."""
        from ..resolvers.profile import delete_profile

        return await delete_profile(info, id)

    # User mutations
    @strawberry.mutation(name="createUser")
    async def create_user(self, info: strawberry.Info, dto: CreateUserInput) -> User:
        """Create a new user."""
        from ..resolvers.user import create_user

        return await create_user(info, dto)

    @strawberry.mutation(name="changeUser")
    async def change_user(self, info: strawberry.Info, id: UUID, dto: ChangeUserInput) -> User:
        """Change an existing user."""
        from ..resolvers.user import change_user

        return await change_user(info, id, dto)

    @strawberry.mutation(name="deleteUser")
    async def delete_user(self, info: strawberry.Info, id: UUID) -> UUID:
        """Delete a user together with its profile, posts and subscriptions."""
        from ..resolvers.user import delete_user

        return await delete_user(info, id)

    # Subscription graph mutations
    @strawberry.mutation(name="subscribeTo")
    async def subscribe_to(self, info: strawberry.Info, user_id: UUID, author_id: UUID) -> User:
        """Subscribe a user to an author; returns the subscriber."""
        from ..resolvers.user import subscribe_to

        return await subscribe_to(info, user_id, author_id)

    @strawberry.mutation(name="unsubscribeFrom")
    async def unsubscribe_from(
        self, info: strawberry.Info, user_id: UUID, author_id: UUID
    ) -> UUID:
        """Remove a subscription; returns the author's ID."""
        from ..resolvers.user import unsubscribe_from

        return await unsubscribe_from(info, user_id, author_id)
