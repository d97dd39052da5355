"""
Main GraphQL schema definition using Strawberry
"""

from typing import Any
from uuid import UUID

import strawberry
from fastapi import Request
from graphql import GraphQLError
from graphql import validate_schema as gql_validate_schema
from strawberry.fastapi import GraphQLRouter
from strawberry.http import GraphQLHTTPResponse
from strawberry.schema.config import StrawberryConfig
from strawberry.types import ExecutionContext, ExecutionResult

from ..errors import FeedGraphError
from ..logging import get_logger
from .engine import (
    CONTEXT_KEY,
    RequestContext,
    ResolutionEngine,
    ResolutionTracker,
    settle_request,
)
from .mutations.root import Mutation
from .queries.root import Query
from .scalars import UUIDScalar

logger = get_logger(__name__)


class FeedGraphSchema(strawberry.Schema):
    """Schema that reports resolution errors through structlog."""

    def process_errors(
        self,
        errors: list[GraphQLError],
        execution_context: ExecutionContext | None = None,
    ) -> None:
        for error in errors:
            original = error.original_error
            if original is None or isinstance(original, (FeedGraphError, GraphQLError)):
                logger.info(
                    "GraphQL error",
                    message=error.message,
                    path=error.path,
                    code=(error.extensions or {}).get("code"),
                )
            else:
                logger.error(
                    "Unexpected error during resolution",
                    message=error.message,
                    path=error.path,
                    exc_info=original,
                )


schema = FeedGraphSchema(
    query=Query,
    mutation=Mutation,
    extensions=[ResolutionTracker],
    config=StrawberryConfig(scalar_map={UUID: UUIDScalar}),
)


def validate_schema() -> None:
    """Validate the GraphQL schema at startup.

    Raises:
        RuntimeError: If the schema is invalid or introspection fails
    """
    try:
        graphql_schema = schema._schema

        errors = gql_validate_schema(graphql_schema)
        if errors:
            error_messages = [str(e) for e in errors]
            raise RuntimeError(f"GraphQL schema validation failed: {'; '.join(error_messages)}")

        from graphql import get_introspection_query, graphql_sync

        result = graphql_sync(graphql_schema, get_introspection_query())
        if result.errors:
            error_messages = [str(e) for e in result.errors]
            raise RuntimeError(f"GraphQL introspection failed: {'; '.join(error_messages)}")

        logger.info("GraphQL schema validation successful")

    except Exception as e:
        logger.error("GraphQL schema validation failed", error=str(e))
        raise


class FeedGraphRouter(GraphQLRouter[dict[str, Any], None]):
    """GraphQL router that settles the request state before responding.

    Clients that disconnected while their request was resolving get nothing
    written back; the result is discarded.
    """

    async def process_result(
        self, request: Request, result: ExecutionResult
    ) -> GraphQLHTTPResponse:
        resolution: RequestContext | None = getattr(request.state, CONTEXT_KEY, None)
        if resolution is not None:
            if await request.is_disconnected():
                resolution.discard()
            settle_request(resolution)
        return await super().process_result(request, result)


def create_graphql_router(graphiql: bool = True) -> FeedGraphRouter:
    """Create a GraphQL router for FastAPI.

    Each request gets its context from the ``ResolutionEngine`` installed on
    ``app.state.engine`` by the application lifespan.
    """

    async def get_context(request: Request) -> dict[str, Any]:
        """Get the context for GraphQL resolvers."""
        engine: ResolutionEngine = request.app.state.engine
        context = engine.create_context(request)
        setattr(request.state, CONTEXT_KEY, context[CONTEXT_KEY])
        return context

    return FeedGraphRouter(
        schema,
        path="/graphql",
        graphql_ide="graphiql" if graphiql else None,
        context_getter=get_context,
    )
