"""SQLAlchemy storage gateway backed by the async PostgreSQL pool."""

from collections.abc import AsyncGenerator, Callable, Mapping
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from sqlalchemy import and_, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ...database.connection import get_async_session
from ...dbmodels import MODELS_BY_TABLE, Base
from ...errors import ConstraintViolationError, NotFoundError, UpstreamFailure
from ...logging import get_logger
from ...registry import EntityDescriptor, EntityRegistry
from ..base import MEMBERSHIP_TYPES, Filter, Row, StorageGateway

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class SqlAlchemyStorageGateway(StorageGateway):
    """Gateway issuing one statement per call in its own transaction."""

    name = "sqlalchemy"

    def __init__(
        self,
        registry: EntityRegistry,
        session_factory: SessionFactory = get_async_session,
    ):
        super().__init__(registry)
        self._session_factory = session_factory

    def _model(self, descriptor: EntityDescriptor) -> type[Base]:
        return MODELS_BY_TABLE[descriptor.table]

    @asynccontextmanager
    async def _session(self, operation: str, entity: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                yield session
        except IntegrityError as e:
            constraint = getattr(getattr(e.orig, "__cause__", None), "constraint_name", None)
            logger.info(
                "Constraint violation", operation=operation, entity=entity, constraint=constraint
            )
            raise ConstraintViolationError(
                f"{operation} {entity} violates a constraint",
                entity=entity,
                constraint=constraint,
            ) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error("Storage call failed", operation=operation, entity=entity, error=str(e))
            raise UpstreamFailure(f"Storage unavailable during {operation} {entity}") from e

    async def find_one(self, entity: str, key: Any) -> Row | None:
        descriptor = self.registry.entity(entity)
        model = self._model(descriptor)
        async with self._session("find_one", entity) as session:
            instance = await session.get(model, key)
            return _to_row(instance) if instance is not None else None

    async def find_many(self, entity: str, filter: Filter | None = None) -> list[Row]:
        descriptor = self.registry.entity(entity)
        self._validate_filter(descriptor, filter)
        model = self._model(descriptor)

        conditions = []
        for attr, expected in (filter or {}).items():
            column = getattr(model, attr)
            if isinstance(expected, MEMBERSHIP_TYPES):
                conditions.append(column.in_(list(expected)))
            else:
                conditions.append(column == expected)

        stmt = select(model)
        if conditions:
            stmt = stmt.where(and_(*conditions))

        async with self._session("find_many", entity) as session:
            result = await session.execute(stmt)
            return [_to_row(instance) for instance in result.scalars().all()]

    async def create(self, entity: str, data: Mapping[str, Any]) -> Row:
        descriptor = self.registry.entity(entity)
        row = self._prepare_create(descriptor, data)
        model = self._model(descriptor)

        async with self._session("create", entity) as session:
            instance = model(**row)
            session.add(instance)
            await session.flush()
            created = _to_row(instance)

        logger.debug("Row created", entity=entity, key=str(descriptor.key_of(created)))
        return created

    async def update(self, entity: str, key: Any, data: Mapping[str, Any]) -> Row:
        descriptor = self.registry.entity(entity)
        changes = self._prepare_update(descriptor, data)
        model = self._model(descriptor)

        async with self._session("update", entity) as session:
            instance = await session.get(model, key)
            if instance is None:
                raise NotFoundError(entity, key)
            for attr, value in changes.items():
                setattr(instance, attr, value)
            await session.flush()
            return _to_row(instance)

    async def delete(self, entity: str, key: Any) -> Row:
        descriptor = self.registry.entity(entity)
        model = self._model(descriptor)

        async with self._session("delete", entity) as session:
            instance = await session.get(model, key)
            if instance is None:
                raise NotFoundError(entity, key)
            deleted = _to_row(instance)
            await session.delete(instance)
            await session.flush()
            return deleted


def _to_row(instance: Base) -> Row:
    mapper = inspect(instance).mapper
    return {attr.key: getattr(instance, attr.key) for attr in mapper.column_attrs}
