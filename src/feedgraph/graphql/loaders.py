"""
Request-scoped batch loading for relationship edges.

One ``BatchLoader`` is created per GraphQL request. It keeps one strawberry
``DataLoader`` per edge, so every ``load(edge_id, key)`` issued while the event
loop runs the current tick lands in the same batch and is fetched with a single
storage call. Keys are deduplicated by the DataLoader cache, which lives only
as long as the request.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Awaitable, Hashable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

from strawberry.dataloader import DataLoader

from ..logging import get_logger
from ..registry import Edge, EdgeKind, EntityRegistry
from ..storage.base import Row, StorageGateway

logger = get_logger(__name__)


class _Absent:
    """Marker for a to-one key that matched no row."""

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()


@dataclass
class BatchStats:
    """Dispatch counters for one loader."""

    batches: int = 0
    keys: int = 0


class BatchLoader:
    """Coalesces relationship lookups per edge and per event loop tick.

    Edge semantics:
    - ``TO_ONE``: each key resolves to a row, or to ``ABSENT`` when none matches.
    - ``TO_MANY``: each key resolves to a list of rows, ``[]`` when none match.
    - ``MANY_TO_MANY``: one scan of the join entity for all keys, then one scan
      of the target entity for every related id; each key gets a list.

    If a bulk fetch raises, the DataLoader fails every key of that batch with
    the same exception.
    """

    def __init__(
        self,
        gateway: StorageGateway,
        registry: EntityRegistry,
        max_batch_size: int | None = None,
    ):
        self.gateway = gateway
        self.registry = registry
        self.max_batch_size = max_batch_size
        self._loaders: dict[str, DataLoader[Hashable, Any]] = {}
        self.stats: dict[str, BatchStats] = defaultdict(BatchStats)

    def load(self, edge_id: str, key: Hashable) -> Awaitable[Any]:
        """Register ``key`` for ``edge_id`` and return an awaitable for its value."""
        return self._edge_loader(edge_id).load(key)

    def load_many(self, edge_id: str, keys: Sequence[Hashable]) -> Awaitable[list[Any]]:
        return self._edge_loader(edge_id).load_many(keys)

    def load_by_key(self, entity: str, key: Hashable) -> Awaitable[Any]:
        """Load an entity by primary key; resolves to the row or ``ABSENT``."""
        loader_id = f"{entity}#key"
        loader = self._loaders.get(loader_id)
        if loader is None:
            loader = self._new_loader(partial(self._fetch_by_key, entity, loader_id))
            self._loaders[loader_id] = loader
        return loader.load(key)

    def clear_all(self) -> None:
        """Forget every cached value, so reads after a write see fresh rows."""
        for loader in self._loaders.values():
            loader.clear_all()

    def _edge_loader(self, edge_id: str) -> DataLoader[Hashable, Any]:
        loader = self._loaders.get(edge_id)
        if loader is None:
            edge = self.registry.edge(edge_id)
            loader = self._new_loader(partial(self._dispatch, edge))
            self._loaders[edge_id] = loader
        return loader

    def _new_loader(self, load_fn: Any) -> DataLoader[Hashable, Any]:
        return DataLoader(load_fn=load_fn, max_batch_size=self.max_batch_size)

    def _record(self, loader_id: str, keys: Sequence[Hashable]) -> None:
        stats = self.stats[loader_id]
        stats.batches += 1
        stats.keys += len(keys)
        logger.debug("Dispatching batch", loader=loader_id, keys=len(keys))

    async def _dispatch(self, edge: Edge, keys: list[Hashable]) -> list[Any]:
        self._record(edge.id, keys)
        try:
            if edge.kind is EdgeKind.TO_ONE:
                return await self._fetch_to_one(edge, keys)
            if edge.kind is EdgeKind.TO_MANY:
                return await self._fetch_to_many(edge, keys)
            return await self._fetch_many_to_many(edge, keys)
        except Exception as e:
            logger.warning("Batch fetch failed", loader=edge.id, keys=len(keys), error=str(e))
            raise

    async def _fetch_to_one(self, edge: Edge, keys: list[Hashable]) -> list[Row | _Absent]:
        rows = await self.gateway.find_many(edge.target, {edge.target_attr: list(keys)})
        rows_by_key = {row[edge.target_attr]: row for row in rows}
        return [rows_by_key.get(key, ABSENT) for key in keys]

    async def _fetch_to_many(self, edge: Edge, keys: list[Hashable]) -> list[list[Row]]:
        rows = await self.gateway.find_many(edge.target, {edge.target_attr: list(keys)})
        grouped: dict[Hashable, list[Row]] = defaultdict(list)
        for row in rows:
            grouped[row[edge.target_attr]].append(row)
        return [grouped.get(key, []) for key in keys]

    async def _fetch_many_to_many(self, edge: Edge, keys: list[Hashable]) -> list[list[Row]]:
        join = edge.join
        assert join is not None

        links = await self.gateway.find_many(join.entity, {join.source_column: list(keys)})
        related: dict[Hashable, list[Hashable]] = defaultdict(list)
        for link in links:
            related[link[join.source_column]].append(link[join.target_column])

        target_ids = {target_id for ids in related.values() for target_id in ids}
        if not target_ids:
            return [[] for _ in keys]

        targets = await self.gateway.find_many(edge.target, {edge.target_attr: list(target_ids)})
        targets_by_id = {row[edge.target_attr]: row for row in targets}

        # A target deleted between the two scans is skipped, not reported
        return [
            [targets_by_id[t] for t in related.get(key, []) if t in targets_by_id] for key in keys
        ]

    async def _fetch_by_key(
        self, entity: str, loader_id: str, keys: list[Hashable]
    ) -> list[Row | _Absent]:
        self._record(loader_id, keys)
        if len(keys) == 1:
            row = await self.gateway.find_one(entity, keys[0])
            return [row if row is not None else ABSENT]

        descriptor = self.registry.entity(entity)
        (pk,) = descriptor.primary_key
        rows = await self.gateway.find_many(entity, {pk: list(keys)})
        rows_by_key = {row[pk]: row for row in rows}
        return [rows_by_key.get(key, ABSENT) for key in keys]
