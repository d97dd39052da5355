"""
Integration tests for the SQLAlchemy storage gateway against PostgreSQL.
"""

import uuid

import pytest

from feedgraph.errors import ConstraintViolationError, NotFoundError
from feedgraph.graphql.engine import ResolutionEngine
from feedgraph.registry import MEMBER_TYPE, POST, PROFILE, SUBSCRIPTION, USER, default_registry
from feedgraph.storage.implementations.sql import SqlAlchemyStorageGateway

pytestmark = [pytest.mark.requires_db, pytest.mark.integration]


@pytest.fixture
def sql_gateway(alembic_migrate, reset_shared_db_connections) -> SqlAlchemyStorageGateway:
    _ = alembic_migrate, reset_shared_db_connections
    return SqlAlchemyStorageGateway(default_registry)


@pytest.mark.asyncio
class TestSqlAlchemyGateway:
    async def test_migration_seeds_member_types(self, sql_gateway):
        rows = await sql_gateway.find_many(MEMBER_TYPE)

        assert {row["id"]: row["posts_limit_per_month"] for row in rows} == {
            "BASIC": 20,
            "BUSINESS": 100,
        }

    async def test_crud_round_trip(self, sql_gateway):
        user = await sql_gateway.create(USER, {"name": "alice", "balance": 3.5})

        assert isinstance(user["id"], uuid.UUID)
        assert await sql_gateway.find_one(USER, user["id"]) == user

        updated = await sql_gateway.update(USER, user["id"], {"balance": 4.0})
        assert updated["balance"] == 4.0
        assert updated["name"] == "alice"

        assert await sql_gateway.delete(USER, user["id"]) == updated
        with pytest.raises(NotFoundError):
            await sql_gateway.delete(USER, user["id"])

    async def test_membership_filter(self, sql_gateway):
        a = await sql_gateway.create(USER, {"name": "a", "balance": 0.0})
        b = await sql_gateway.create(USER, {"name": "b", "balance": 0.0})
        await sql_gateway.create(USER, {"name": "c", "balance": 0.0})

        rows = await sql_gateway.find_many(USER, {"id": [a["id"], b["id"]]})

        assert {row["name"] for row in rows} == {"a", "b"}

    async def test_constraints_are_translated(self, sql_gateway):
        user = await sql_gateway.create(USER, {"name": "alice", "balance": 0.0})
        profile = {
            "is_male": True,
            "year_of_birth": 1990,
            "user_id": user["id"],
            "member_type_id": "BASIC",
        }
        await sql_gateway.create(PROFILE, profile)

        with pytest.raises(ConstraintViolationError):
            await sql_gateway.create(PROFILE, profile)
        with pytest.raises(ConstraintViolationError):
            await sql_gateway.create(
                POST, {"title": "t", "content": "c", "author_id": uuid.uuid4()}
            )

    async def test_compound_key_and_cascade(self, sql_gateway):
        alice = await sql_gateway.create(USER, {"name": "alice", "balance": 0.0})
        bob = await sql_gateway.create(USER, {"name": "bob", "balance": 0.0})
        await sql_gateway.create(
            SUBSCRIPTION, {"subscriber_id": bob["id"], "author_id": alice["id"]}
        )
        await sql_gateway.create(POST, {"title": "t", "content": "c", "author_id": alice["id"]})

        assert await sql_gateway.find_one(SUBSCRIPTION, (bob["id"], alice["id"])) is not None

        await sql_gateway.delete(USER, alice["id"])

        assert await sql_gateway.find_many(SUBSCRIPTION) == []
        assert await sql_gateway.find_many(POST) == []

    async def test_engine_over_sql(self, sql_gateway):
        alice = await sql_gateway.create(USER, {"name": "alice", "balance": 0.0})
        await sql_gateway.create(POST, {"title": "t", "content": "c", "author_id": alice["id"]})

        outcome = await ResolutionEngine(sql_gateway).execute(
            "{ users { name posts { title author { name } } } }"
        )

        assert outcome.errors == []
        assert outcome.data == {
            "users": [{"name": "alice", "posts": [{"title": "t", "author": {"name": "alice"}}]}]
        }
