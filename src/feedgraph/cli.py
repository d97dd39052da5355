#!/usr/bin/env python3
"""
Main CLI entry point for the feedgraph server.
"""

import asyncio
import json
import sys
from typing import Any

import click
import uvicorn

from feedgraph import __version__
from feedgraph.config import settings
from feedgraph.logging import configure_logging, get_logger

logger = get_logger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="feedgraph")
def cli() -> None:
    """feedgraph CLI - run the server and execute GraphQL documents."""
    pass


@cli.command()
@click.option("--host", default=settings.api_host, help="Host to bind to")
@click.option("--port", default=settings.api_port, type=int, help="Port to bind to")
@click.option(
    "--reload",
    is_flag=True,
    default=settings.api_reload,
    help="Enable auto-reload for development",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
def serve(host: str, port: int, reload: bool, log_level: str) -> None:
    """Start the feedgraph API server."""
    configure_logging(debug=(log_level == "debug"))

    logger.info("Starting feedgraph API server", host=host, port=port, reload=reload)

    try:
        uvicorn.run(
            "feedgraph.api.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            access_log=True,
        )
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error("Server startup failed", error=str(e))
        sys.exit(1)


@cli.command()
@click.argument("document", type=click.File("r"), default="-")
@click.option("--variables", "-v", default=None, help="JSON object of variable values")
@click.option("--operation-name", "-o", default=None, help="Operation to run")
@click.option(
    "--backend",
    default=settings.storage_backend,
    type=click.Choice(["sqlalchemy", "memory"]),
    help="Storage backend to query",
)
def query(document: Any, variables: str | None, operation_name: str | None, backend: str) -> None:
    """Execute a GraphQL DOCUMENT (file path or '-' for stdin) and print the result."""
    from feedgraph.database.seed_data import ensure_member_types
    from feedgraph.graphql.engine import RequestState, ResolutionEngine
    from feedgraph.storage.factory import create_storage_gateway

    configure_logging(debug=settings.debug)

    try:
        variable_values = json.loads(variables) if variables else None
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--variables") from e

    source = document.read()

    async def do_query():
        gateway = create_storage_gateway(backend)
        try:
            if settings.seed_member_types:
                await ensure_member_types(gateway)
            engine = ResolutionEngine(gateway, max_batch_size=settings.loader_max_batch_size)
            return await engine.execute(source, variable_values, operation_name)
        finally:
            await gateway.close()

    outcome = asyncio.run(do_query())

    payload: dict[str, Any] = {"data": outcome.data}
    if outcome.errors:
        payload["errors"] = [error.formatted for error in outcome.errors]
    click.echo(json.dumps(payload, indent=2, default=str))

    if outcome.state is RequestState.FAILED:
        sys.exit(1)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()
