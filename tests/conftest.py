"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from collections.abc import Generator, Mapping
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

from feedgraph.database.seed_data import ensure_member_types
from feedgraph.graphql.engine import ResolutionEngine
from feedgraph.registry import (
    POST,
    PROFILE,
    SUBSCRIPTION,
    USER,
    EntityRegistry,
    default_registry,
)
from feedgraph.storage.base import Filter, Row, StorageGateway
from feedgraph.storage.implementations.memory import InMemoryStorageGateway


class RecordingGateway(StorageGateway):
    """Wraps another gateway and records every call made through it."""

    name = "recording"

    def __init__(self, inner: StorageGateway):
        super().__init__(inner.registry)
        self.inner = inner
        self.calls: list[tuple[str, str, Any]] = []

    async def find_one(self, entity: str, key: Any) -> Row | None:
        self.calls.append(("find_one", entity, key))
        return await self.inner.find_one(entity, key)

    async def find_many(self, entity: str, filter: Filter | None = None) -> list[Row]:
        self.calls.append(("find_many", entity, dict(filter or {})))
        return await self.inner.find_many(entity, filter)

    async def create(self, entity: str, data: Mapping[str, Any]) -> Row:
        self.calls.append(("create", entity, dict(data)))
        return await self.inner.create(entity, data)

    async def update(self, entity: str, key: Any, data: Mapping[str, Any]) -> Row:
        self.calls.append(("update", entity, key))
        return await self.inner.update(entity, key, data)

    async def delete(self, entity: str, key: Any) -> Row:
        self.calls.append(("delete", entity, key))
        return await self.inner.delete(entity, key)

    def count(self, method: str, entity: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1] == entity)

    def reads(self) -> list[tuple[str, str, Any]]:
        return [call for call in self.calls if call[0] in ("find_one", "find_many")]


@pytest.fixture
def registry() -> EntityRegistry:
    return default_registry


@pytest.fixture
def memory_gateway(registry: EntityRegistry) -> InMemoryStorageGateway:
    return InMemoryStorageGateway(registry)


@pytest_asyncio.fixture
async def seeded_gateway(memory_gateway: InMemoryStorageGateway) -> InMemoryStorageGateway:
    """In-memory gateway holding the default member types."""
    await ensure_member_types(memory_gateway)
    return memory_gateway


@pytest.fixture
def recorder(seeded_gateway: InMemoryStorageGateway) -> RecordingGateway:
    return RecordingGateway(seeded_gateway)


@pytest.fixture
def engine(recorder: RecordingGateway) -> ResolutionEngine:
    return ResolutionEngine(recorder)


@pytest_asyncio.fixture
async def sample_data(seeded_gateway: InMemoryStorageGateway) -> dict[str, Any]:
    """Three users; alice has a BUSINESS profile and two posts, bob follows alice."""
    alice = await seeded_gateway.create(USER, {"name": "alice", "balance": 100.0})
    bob = await seeded_gateway.create(USER, {"name": "bob", "balance": 50.0})
    carol = await seeded_gateway.create(USER, {"name": "carol", "balance": 0.0})

    profile = await seeded_gateway.create(
        PROFILE,
        {
            "is_male": False,
            "year_of_birth": 1990,
            "user_id": alice["id"],
            "member_type_id": "BUSINESS",
        },
    )
    posts = [
        await seeded_gateway.create(
            POST, {"title": f"post {i}", "content": "text", "author_id": alice["id"]}
        )
        for i in range(2)
    ]
    bob_post = await seeded_gateway.create(
        POST, {"title": "bob's post", "content": "hi", "author_id": bob["id"]}
    )
    await seeded_gateway.create(
        SUBSCRIPTION, {"subscriber_id": bob["id"], "author_id": alice["id"]}
    )

    return {
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "profile": profile,
        "posts": posts,
        "bob_post": bob_post,
    }


# Database fixtures (pytest-postgresql); only tests marked requires_db use them


@pytest.fixture(scope="function")
def test_database(postgresql: Any) -> Generator[str, None, None]:
    """Return the DSN for the running pytest-postgresql database."""
    info = postgresql.info
    yield (
        f"postgresql://{info.user}:{getattr(info, 'password', '') or ''}"
        f"@{info.host}:{info.port}/{info.dbname}"
    )


@pytest.fixture(scope="function")
def alembic_migrate(test_database: str) -> Generator[None, None, None]:
    """Run Alembic upgrade to head against the pytest-postgresql instance."""
    from alembic import command
    from alembic.config import Config

    root = Path(__file__).parent.parent
    os.environ["FEEDGRAPH_DATABASE_URL"] = test_database
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "alembic"))
    command.upgrade(cfg, "head")
    yield
    command.downgrade(cfg, "base")


@pytest.fixture(scope="function")
def reset_shared_db_connections(test_database: str) -> Generator[None, None, None]:
    """Point the shared async engine at the test database."""
    from feedgraph.database.connection import init_database, reset_database

    reset_database()
    init_database(test_database, force_reinit=True)
    yield
    reset_database()


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)
