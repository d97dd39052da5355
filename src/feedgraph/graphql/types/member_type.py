"""
MemberType GraphQL type definitions
"""

from enum import Enum
from typing import TYPE_CHECKING, Annotated, Any

import strawberry

if TYPE_CHECKING:
    from .profile import Profile


@strawberry.enum
class MemberTypeId(Enum):
    """Closed set of membership tiers."""

    BASIC = "BASIC"
    BUSINESS = "BUSINESS"


@strawberry.type
class MemberType:
    """Membership tier with its discount and monthly post quota."""

    id: MemberTypeId
    discount: float
    posts_limit_per_month: int

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MemberType":
        return cls(
            id=MemberTypeId(row["id"]),
            discount=row["discount"],
            posts_limit_per_month=row["posts_limit_per_month"],
        )

    @strawberry.field
    async def profiles(
        self, info: strawberry.Info
    ) -> list[Annotated["Profile", strawberry.lazy(".profile")]]:
        """Profiles on this membership tier."""
        from ..resolvers.member_type import resolve_member_type_profiles

        return await resolve_member_type_profiles(self, info)
