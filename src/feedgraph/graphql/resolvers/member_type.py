from __future__ import annotations

from typing import TYPE_CHECKING

import strawberry

from ...registry import MEMBER_TYPE
from ..engine import resolve_all, resolve_by_key, resolve_edge

if TYPE_CHECKING:
    from ..types.member_type import MemberType, MemberTypeId
    from ..types.profile import Profile


async def resolve_member_types(info: strawberry.Info) -> list[MemberType]:
    from ..types.member_type import MemberType

    return await resolve_all(info, MEMBER_TYPE, MemberType.from_row)


async def resolve_member_type_by_id(
    info: strawberry.Info, id: MemberTypeId
) -> MemberType | None:
    from ..types.member_type import MemberType

    return await resolve_by_key(info, MEMBER_TYPE, id.value, MemberType.from_row)


async def resolve_member_type_profiles(
    member_type: MemberType, info: strawberry.Info
) -> list[Profile]:
    from ..types.profile import Profile

    return await resolve_edge(
        info, "member_type.profiles", member_type.id.value, Profile.from_row
    )
