"""In-memory storage gateway for development and tests."""

import copy
import uuid
from collections.abc import Mapping
from typing import Any

from ...errors import ConstraintViolationError, NotFoundError
from ...logging import get_logger
from ...registry import EntityDescriptor, EntityRegistry, OnDelete
from ..base import MEMBERSHIP_TYPES, Filter, Row, StorageGateway

logger = get_logger(__name__)


class InMemoryStorageGateway(StorageGateway):
    """Dict-backed gateway that enforces the registry's keys and constraints.

    Tables map primary key to row. Every call returns copies, so callers never
    share mutable state with the store.
    """

    name = "memory"

    def __init__(self, registry: EntityRegistry):
        super().__init__(registry)
        self._tables: dict[str, dict[Any, Row]] = {
            descriptor.name: {} for descriptor in registry.entities()
        }

    async def find_one(self, entity: str, key: Any) -> Row | None:
        self.registry.entity(entity)
        row = self._tables[entity].get(key)
        return copy.deepcopy(row) if row is not None else None

    async def find_many(self, entity: str, filter: Filter | None = None) -> list[Row]:
        descriptor = self.registry.entity(entity)
        self._validate_filter(descriptor, filter)
        return [
            copy.deepcopy(row)
            for row in self._tables[entity].values()
            if _matches(row, filter or {})
        ]

    async def create(self, entity: str, data: Mapping[str, Any]) -> Row:
        descriptor = self.registry.entity(entity)
        row = self._prepare_create(descriptor, data)
        for f in descriptor.fields:
            if f.generated and row.get(f.name) is None:
                row[f.name] = uuid.uuid4()

        key = descriptor.key_of(row)
        if key in self._tables[entity]:
            raise ConstraintViolationError(
                f"{entity} already exists: {key}", entity=entity, constraint="primary_key"
            )
        self._check_unique(descriptor, row)
        self._check_references(descriptor, row)

        self._tables[entity][key] = row
        logger.debug("Row created", entity=entity, key=str(key))
        return copy.deepcopy(row)

    async def update(self, entity: str, key: Any, data: Mapping[str, Any]) -> Row:
        descriptor = self.registry.entity(entity)
        changes = self._prepare_update(descriptor, data)
        current = self._tables[entity].get(key)
        if current is None:
            raise NotFoundError(entity, key)

        updated = {**current, **changes}
        self._check_unique(descriptor, updated, ignore_key=key)
        self._check_references(descriptor, updated)

        self._tables[entity][key] = updated
        return copy.deepcopy(updated)

    async def delete(self, entity: str, key: Any) -> Row:
        descriptor = self.registry.entity(entity)
        row = self._tables[entity].get(key)
        if row is None:
            raise NotFoundError(entity, key)

        # Check every restricting reference before removing anything
        self._check_restrict(descriptor, row)
        self._delete_row(descriptor, key)
        return copy.deepcopy(row)

    def _delete_row(self, descriptor: EntityDescriptor, key: Any) -> None:
        row = self._tables[descriptor.name].pop(key)
        target_key = descriptor.key_of(row)
        for child, fk in self.registry.referencing(descriptor.name):
            if fk.on_delete is not OnDelete.CASCADE:
                continue
            doomed = [
                child_key
                for child_key, child_row in self._tables[child.name].items()
                if child_row.get(fk.column) == target_key
            ]
            for child_key in doomed:
                if child_key in self._tables[child.name]:
                    self._delete_row(child, child_key)

    def _check_restrict(self, descriptor: EntityDescriptor, row: Row) -> None:
        target_key = descriptor.key_of(row)
        for child, fk in self.registry.referencing(descriptor.name):
            if fk.on_delete is not OnDelete.RESTRICT:
                continue
            if any(r.get(fk.column) == target_key for r in self._tables[child.name].values()):
                raise ConstraintViolationError(
                    f"{descriptor.name} {target_key} is still referenced by {child.name}",
                    entity=descriptor.name,
                    constraint=f"{child.table}_{fk.column}_fkey",
                )

    def _check_unique(
        self, descriptor: EntityDescriptor, row: Row, ignore_key: Any = None
    ) -> None:
        for columns in descriptor.unique:
            values = tuple(row.get(column) for column in columns)
            for other_key, other in self._tables[descriptor.name].items():
                if other_key == ignore_key:
                    continue
                if tuple(other.get(column) for column in columns) == values:
                    raise ConstraintViolationError(
                        f"{descriptor.name} with {', '.join(columns)} already exists",
                        entity=descriptor.name,
                        constraint=f"{descriptor.table}_{'_'.join(columns)}_key",
                    )

    def _check_references(self, descriptor: EntityDescriptor, row: Row) -> None:
        for fk in descriptor.foreign_keys:
            value = row.get(fk.column)
            if value is None:
                continue
            if value not in self._tables[fk.target]:
                raise ConstraintViolationError(
                    f"{descriptor.name}.{fk.column} references missing {fk.target}: {value}",
                    entity=descriptor.name,
                    constraint=f"{descriptor.table}_{fk.column}_fkey",
                )


def _matches(row: Row, filter: Filter) -> bool:
    for attr, expected in filter.items():
        if isinstance(expected, MEMBERSHIP_TYPES):
            if row.get(attr) not in expected:
                return False
        elif row.get(attr) != expected:
            return False
    return True
