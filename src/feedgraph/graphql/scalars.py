"""
Custom GraphQL scalars
"""

import re
from typing import Any
from uuid import UUID

import strawberry

from ..errors import InputValidationError

CANONICAL_UUID = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def parse_uuid(value: Any) -> UUID:
    """Parse a 36-character hyphenated UUID string.

    Braced, URN and unhyphenated forms are rejected even though ``uuid.UUID``
    would accept them.
    """
    if not isinstance(value, str) or not CANONICAL_UUID.match(value):
        raise InputValidationError(f"Invalid UUID: {value!r}")
    return UUID(value)


def serialize_uuid(value: Any) -> str:
    if isinstance(value, UUID):
        return str(value)
    return str(parse_uuid(value))


UUIDScalar = strawberry.scalar(
    name="UUID",
    description="Canonical 36-character UUID string",
    serialize=serialize_uuid,
    parse_value=parse_uuid,
)
