"""
Reusable seed data functions for database initialization.

Member types are reference data: they are inserted once and never changed
through the GraphQL or REST surface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..logging import get_logger
from ..registry import MEMBER_TYPE

if TYPE_CHECKING:
    from ..storage.base import StorageGateway

logger = get_logger(__name__)

DEFAULT_MEMBER_TYPES = (
    {"id": "BASIC", "discount": 2.3, "posts_limit_per_month": 20},
    {"id": "BUSINESS", "discount": 7.7, "posts_limit_per_month": 100},
)


async def ensure_member_types(
    gateway: StorageGateway,
    member_types: tuple[dict, ...] = DEFAULT_MEMBER_TYPES,
) -> list[str]:
    """
    Ensure every member type exists.

    Existing member types are left untouched.

    Returns:
        IDs of the member types that were created
    """
    created = []
    for member_type in member_types:
        existing = await gateway.find_one(MEMBER_TYPE, member_type["id"])
        if existing:
            logger.debug("Member type already exists", member_type_id=member_type["id"])
            continue

        await gateway.create(MEMBER_TYPE, member_type)
        created.append(member_type["id"])

    if created:
        logger.info("Seeded member types", member_type_ids=created)
    return created
