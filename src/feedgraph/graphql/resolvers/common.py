"""Helpers shared by mutation resolvers."""

from enum import Enum
from typing import Any

import strawberry


def input_to_data(dto: Any) -> dict[str, Any]:
    """Convert a strawberry input object into storage attributes.

    Fields left UNSET are omitted, which is what makes ``change*`` inputs
    partial. Enum members are stored by value.
    """
    data = {}
    for name, value in vars(dto).items():
        if value is strawberry.UNSET:
            continue
        data[name] = value.value if isinstance(value, Enum) else value
    return data
