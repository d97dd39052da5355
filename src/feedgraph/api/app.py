"""
Main FastAPI application for the feedgraph backend
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..config import settings
from ..database.seed_data import ensure_member_types
from ..graphql.engine import ResolutionEngine
from ..logging import configure_logging, get_logger
from ..middleware import LoggingContextMiddleware
from ..storage.base import StorageGateway
from ..storage.factory import get_storage_gateway

# Configure logging before creating logger
configure_logging(debug=settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting feedgraph API...")

    gateway: StorageGateway | None = app.state.gateway
    if gateway is None:
        gateway = get_storage_gateway()
        app.state.gateway = gateway
    logger.info("Storage gateway ready", backend=gateway.name)

    if settings.seed_member_types:
        await ensure_member_types(gateway)

    app.state.engine = ResolutionEngine(gateway, max_batch_size=settings.loader_max_batch_size)

    yield

    logger.info("Shutting down feedgraph API...")
    await gateway.close()


def create_app(gateway: StorageGateway | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        gateway: Storage gateway to serve from. When omitted, the lifespan
            creates one from ``settings.storage_backend``.
    """
    app = FastAPI(
        title="feedgraph API",
        description="GraphQL API over users, profiles, posts and subscriptions",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.gateway = gateway
    app.state.engine = None

    app.add_middleware(LoggingContextMiddleware)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():  # pyright: ignore [reportUnusedFunction]
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    try:
        from ..graphql.schema import create_graphql_router, validate_schema

        logger.info("Validating GraphQL schema...")
        validate_schema()

        app.include_router(create_graphql_router(graphiql=settings.graphiql), prefix="")
        logger.info("GraphQL endpoint initialized successfully", endpoint="/graphql")
    except Exception as e:  # pragma: no cover
        logger.error("Failed to initialize GraphQL endpoint", error=str(e))
        raise

    from .endpoints import member_types, subscriptions

    app.include_router(member_types.router, prefix="/member-types", tags=["Member Types"])
    app.include_router(subscriptions.router, prefix="/users", tags=["Subscriptions"])

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "feedgraph.api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
        log_level=settings.log_level.lower(),
    )
