from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import strawberry

from ...logging import get_logger
from ...registry import PROFILE
from ..engine import perform_write, resolve_all, resolve_by_key, resolve_edge
from .common import input_to_data

if TYPE_CHECKING:
    from ..mutations.root import ChangeProfileInput, CreateProfileInput
    from ..types.member_type import MemberType
    from ..types.profile import Profile
    from ..types.user import User

logger = get_logger(__name__)


# Query resolvers
async def resolve_profiles(info: strawberry.Info) -> list[Profile]:
    from ..types.profile import Profile

    return await resolve_all(info, PROFILE, Profile.from_row)


async def resolve_profile_by_id(info: strawberry.Info, id: UUID) -> Profile | None:
    from ..types.profile import Profile

    return await resolve_by_key(info, PROFILE, id, Profile.from_row)


# Profile field resolvers
async def resolve_profile_user(profile: Profile, info: strawberry.Info) -> User:
    from ..types.user import User

    return await resolve_edge(info, "profile.user", profile.user_id, User.from_row)


async def resolve_profile_member_type(profile: Profile, info: strawberry.Info) -> MemberType:
    from ..types.member_type import MemberType

    return await resolve_edge(
        info, "profile.member_type", profile.member_type_id.value, MemberType.from_row
    )


# Mutation resolvers
async def create_profile(info: strawberry.Info, dto: CreateProfileInput) -> Profile:
    """
    Create a profile for an existing user.

    A user has at most one profile; a second one is a constraint violation.
    """
    from ..types.profile import Profile

    data = input_to_data(dto)
    row = await perform_write(
        info, "createProfile", lambda gateway: gateway.create(PROFILE, data)
    )
    logger.info("Profile created", profile_id=str(row["id"]), user_id=str(row["user_id"]))
    return Profile.from_row(row)


async def change_profile(info: strawberry.Info, id: UUID, dto: ChangeProfileInput) -> Profile:
    from ..types.profile import Profile

    data = input_to_data(dto)
    row = await perform_write(
        info, "changeProfile", lambda gateway: gateway.update(PROFILE, id, data)
    )
    return Profile.from_row(row)


async def delete_profile(info: strawberry.Info, id: UUID) -> UUID:
    await perform_write(info, "deleteProfile", lambda gateway: gateway.delete(PROFILE, id))
    logger.info("Profile deleted", profile_id=str(id))
    return id
