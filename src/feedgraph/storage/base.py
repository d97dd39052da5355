"""Storage gateway interface.

The gateway is the only component that talks to the relational store. It
exposes exactly five call shapes: point lookup, filtered scan, create, update
and delete. Rows travel as plain dicts keyed by attribute name.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from ..errors import InputValidationError
from ..registry import EntityDescriptor, EntityRegistry

Row = dict[str, Any]

# attribute -> value (equality) or attribute -> list/tuple/set/frozenset (membership)
Filter = Mapping[str, Any]

MEMBERSHIP_TYPES = (list, tuple, set, frozenset)


class StorageGateway(ABC):
    """Abstract base class for all storage gateways."""

    name = "abstract"

    def __init__(self, registry: EntityRegistry):
        self.registry = registry

    @abstractmethod
    async def find_one(self, entity: str, key: Any) -> Row | None:
        """Fetch one row by primary key, or None when it does not exist."""

    @abstractmethod
    async def find_many(self, entity: str, filter: Filter | None = None) -> list[Row]:
        """Fetch every row matching ``filter`` (all rows when it is empty)."""

    @abstractmethod
    async def create(self, entity: str, data: Mapping[str, Any]) -> Row:
        """Insert a row and return it with generated attributes filled in.

        Raises:
            InputValidationError: On unknown or missing attributes
            ConstraintViolationError: On unique or foreign key violations
        """

    @abstractmethod
    async def update(self, entity: str, key: Any, data: Mapping[str, Any]) -> Row:
        """Apply a partial update and return the updated row.

        Raises:
            NotFoundError: When no row has this key
        """

    @abstractmethod
    async def delete(self, entity: str, key: Any) -> Row:
        """Delete a row and return it as it was before deletion.

        Raises:
            NotFoundError: When no row has this key
        """

    async def close(self) -> None:
        """Release backend resources."""

    # Validation shared by implementations

    def _validate_filter(self, descriptor: EntityDescriptor, filter: Filter | None) -> None:
        for attr in filter or {}:
            if not descriptor.has_field(attr):
                raise InputValidationError(f"Unknown {descriptor.name} attribute: {attr}")

    def _prepare_create(self, descriptor: EntityDescriptor, data: Mapping[str, Any]) -> Row:
        unknown = set(data) - set(descriptor.field_names)
        if unknown:
            raise InputValidationError(
                f"Unknown {descriptor.name} attributes: {', '.join(sorted(unknown))}"
            )

        row: Row = {}
        for f in descriptor.fields:
            value = data.get(f.name)
            if value is None and not (f.generated or f.nullable):
                raise InputValidationError(f"Missing required {descriptor.name} field: {f.name}")
            if value is not None or f.nullable:
                row[f.name] = value
        return row

    def _prepare_update(self, descriptor: EntityDescriptor, data: Mapping[str, Any]) -> Row:
        changes: Row = {}
        for attr, value in data.items():
            if not descriptor.has_field(attr):
                raise InputValidationError(f"Unknown {descriptor.name} attribute: {attr}")
            f = descriptor.get_field(attr)
            if not f.updatable:
                raise InputValidationError(f"{descriptor.name}.{attr} cannot be changed")
            if value is None and not f.nullable:
                raise InputValidationError(f"{descriptor.name}.{attr} cannot be null")
            changes[attr] = value
        return changes
