"""
Profile GraphQL type definitions
"""

from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

import strawberry

from .member_type import MemberType, MemberTypeId

if TYPE_CHECKING:
    from .user import User


@strawberry.type
class Profile:
    """Profile type for GraphQL API."""

    id: UUID
    is_male: bool
    year_of_birth: int
    user_id: UUID
    member_type_id: MemberTypeId

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Profile":
        return cls(
            id=row["id"],
            is_male=row["is_male"],
            year_of_birth=row["year_of_birth"],
            user_id=row["user_id"],
            member_type_id=MemberTypeId(row["member_type_id"]),
        )

    @strawberry.field
    async def user(self, info: strawberry.Info) -> Annotated["User", strawberry.lazy(".user")]:
        """Get the user owning this profile."""
        from ..resolvers.profile import resolve_profile_user

        return await resolve_profile_user(self, info)

    @strawberry.field
    async def member_type(self, info: strawberry.Info) -> MemberType:
        """Get the membership tier of this profile."""
        from ..resolvers.profile import resolve_profile_member_type

        return await resolve_profile_member_type(self, info)
