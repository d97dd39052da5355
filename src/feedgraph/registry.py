"""
Entity registry: the static shape of every domain entity and the relationship
edges between them.

The registry is built once at import time and never mutated. Storage gateways
use it to validate writes and enforce keys; the batch loader uses the edges to
decide how a relationship is fetched in bulk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any
from uuid import UUID


class EdgeKind(Enum):
    """How a relationship edge maps source rows to target rows."""

    TO_ONE = "to_one"
    TO_MANY = "to_many"
    MANY_TO_MANY = "many_to_many"


class OnDelete(Enum):
    CASCADE = "cascade"
    RESTRICT = "restrict"


@dataclass(frozen=True)
class Field:
    name: str
    type: type
    nullable: bool = False
    generated: bool = False
    updatable: bool = True


@dataclass(frozen=True)
class ForeignKey:
    column: str
    target: str
    target_column: str = "id"
    on_delete: OnDelete = OnDelete.CASCADE


@dataclass(frozen=True)
class JoinSpec:
    """Join entity used by a many-to-many edge.

    ``source_column`` holds the source row's key, ``target_column`` the key of
    the related target row.
    """

    entity: str
    source_column: str
    target_column: str


@dataclass(frozen=True)
class Edge:
    """A named relationship from one entity to another.

    For ``TO_ONE`` and ``TO_MANY`` edges, the value of ``source_attr`` on the
    parent row is matched against ``target_attr`` on target rows. For
    ``MANY_TO_MANY`` edges the match goes through ``join`` and the related
    target rows are matched on ``target_attr``.
    """

    source: str
    name: str
    kind: EdgeKind
    target: str
    source_attr: str
    target_attr: str
    nullable: bool = False
    join: JoinSpec | None = None

    @property
    def id(self) -> str:
        return f"{self.source}.{self.name}"

    @property
    def is_collection(self) -> bool:
        return self.kind is not EdgeKind.TO_ONE


@dataclass(frozen=True)
class EntityDescriptor:
    name: str
    table: str
    fields: tuple[Field, ...]
    primary_key: tuple[str, ...] = ("id",)
    unique: tuple[tuple[str, ...], ...] = ()
    foreign_keys: tuple[ForeignKey, ...] = ()
    edges: tuple[Edge, ...] = ()
    _fields_by_name: dict[str, Field] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_fields_by_name", MappingProxyType({f.name: f for f in self.fields})
        )

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def get_field(self, name: str) -> Field:
        return self._fields_by_name[name]

    def has_field(self, name: str) -> bool:
        return name in self._fields_by_name

    def key_of(self, row: dict[str, Any]) -> Any:
        """Return the primary key of a row: a scalar, or a tuple for compound keys."""
        if len(self.primary_key) == 1:
            return row[self.primary_key[0]]
        return tuple(row[column] for column in self.primary_key)

    def key_filter(self, key: Any) -> dict[str, Any]:
        """Turn a key into an equality filter over the primary key columns."""
        if len(self.primary_key) == 1:
            return {self.primary_key[0]: key}
        if not isinstance(key, tuple) or len(key) != len(self.primary_key):
            raise ValueError(f"{self.name} requires a compound key {self.primary_key}")
        return dict(zip(self.primary_key, key, strict=True))


class EntityRegistry:
    """Read-only lookup of entity descriptors and their edges."""

    def __init__(self, entities: list[EntityDescriptor]):
        self._entities = MappingProxyType({entity.name: entity for entity in entities})
        self._edges = MappingProxyType(
            {edge.id: edge for entity in entities for edge in entity.edges}
        )
        self._check_references()

    def _check_references(self) -> None:
        for edge in self._edges.values():
            target = self.entity(edge.target)
            if not target.has_field(edge.target_attr):
                raise ValueError(f"Edge {edge.id} matches unknown field {edge.target_attr}")
            if edge.kind is EdgeKind.MANY_TO_MANY:
                if edge.join is None:
                    raise ValueError(f"Edge {edge.id} needs a join entity")
                join = self.entity(edge.join.entity)
                for column in (edge.join.source_column, edge.join.target_column):
                    if not join.has_field(column):
                        raise ValueError(f"Edge {edge.id} joins on unknown field {column}")

    def entity(self, name: str) -> EntityDescriptor:
        try:
            return self._entities[name]
        except KeyError:
            raise KeyError(f"Unknown entity: {name}") from None

    def describe(self, name: str) -> tuple[Edge, ...]:
        return self.entity(name).edges

    def edge(self, edge_id: str) -> Edge:
        try:
            return self._edges[edge_id]
        except KeyError:
            raise KeyError(f"Unknown edge: {edge_id}") from None

    def entities(self) -> tuple[EntityDescriptor, ...]:
        return tuple(self._entities.values())

    def referencing(self, name: str) -> list[tuple[EntityDescriptor, ForeignKey]]:
        """Entities holding a foreign key to ``name``."""
        return [
            (entity, fk)
            for entity in self._entities.values()
            for fk in entity.foreign_keys
            if fk.target == name
        ]


MEMBER_TYPE = "member_type"
USER = "user"
PROFILE = "profile"
POST = "post"
SUBSCRIPTION = "subscription"


def build_default_registry() -> EntityRegistry:
    return EntityRegistry(
        [
            EntityDescriptor(
                name=MEMBER_TYPE,
                table="member_types",
                fields=(
                    Field("id", str),
                    Field("discount", float),
                    Field("posts_limit_per_month", int),
                ),
                edges=(
                    Edge(
                        MEMBER_TYPE, "profiles", EdgeKind.TO_MANY, PROFILE, "id", "member_type_id"
                    ),
                ),
            ),
            EntityDescriptor(
                name=USER,
                table="users",
                fields=(
                    Field("id", UUID, generated=True, updatable=False),
                    Field("name", str),
                    Field("balance", float),
                ),
                edges=(
                    Edge(USER, "profile", EdgeKind.TO_ONE, PROFILE, "id", "user_id", nullable=True),
                    Edge(USER, "posts", EdgeKind.TO_MANY, POST, "id", "author_id"),
                    Edge(
                        USER,
                        "user_subscribed_to",
                        EdgeKind.MANY_TO_MANY,
                        USER,
                        "id",
                        "id",
                        join=JoinSpec(SUBSCRIPTION, "subscriber_id", "author_id"),
                    ),
                    Edge(
                        USER,
                        "subscribed_to_user",
                        EdgeKind.MANY_TO_MANY,
                        USER,
                        "id",
                        "id",
                        join=JoinSpec(SUBSCRIPTION, "author_id", "subscriber_id"),
                    ),
                ),
            ),
            EntityDescriptor(
                name=PROFILE,
                table="profiles",
                fields=(
                    Field("id", UUID, generated=True, updatable=False),
                    Field("is_male", bool),
                    Field("year_of_birth", int),
                    Field("user_id", UUID, updatable=False),
                    Field("member_type_id", str),
                ),
                unique=(("user_id",),),
                foreign_keys=(
                    ForeignKey("user_id", USER),
                    ForeignKey("member_type_id", MEMBER_TYPE, on_delete=OnDelete.RESTRICT),
                ),
                edges=(
                    Edge(PROFILE, "user", EdgeKind.TO_ONE, USER, "user_id", "id"),
                    Edge(
                        PROFILE, "member_type", EdgeKind.TO_ONE, MEMBER_TYPE, "member_type_id", "id"
                    ),
                ),
            ),
            EntityDescriptor(
                name=POST,
                table="posts",
                fields=(
                    Field("id", UUID, generated=True, updatable=False),
                    Field("title", str),
                    Field("content", str),
                    Field("author_id", UUID, updatable=False),
                ),
                foreign_keys=(ForeignKey("author_id", USER),),
                edges=(Edge(POST, "author", EdgeKind.TO_ONE, USER, "author_id", "id"),),
            ),
            EntityDescriptor(
                name=SUBSCRIPTION,
                table="subscribers_on_authors",
                fields=(
                    Field("subscriber_id", UUID, updatable=False),
                    Field("author_id", UUID, updatable=False),
                ),
                primary_key=("subscriber_id", "author_id"),
                foreign_keys=(ForeignKey("subscriber_id", USER), ForeignKey("author_id", USER)),
            ),
        ]
    )


default_registry = build_default_registry()
