#!/usr/bin/env python3
"""
CLI entry point for feedgraph database migrations.
"""

import asyncio
import sys
from pathlib import Path

import click

from alembic import command
from alembic.config import Config
from feedgraph import __version__
from feedgraph.logging import configure_logging, get_logger

logger = get_logger(__name__)


def get_alembic_config() -> Config:
    """Get Alembic configuration from the alembic.ini at the project root."""
    project_dir = Path(__file__).parent.parent.parent.parent
    alembic_ini = project_dir / "alembic.ini"

    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(project_dir / "alembic"))
    return config


@click.group()
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.version_option(version=__version__, prog_name="feedgraph-migrate")
def main(log_level: str) -> None:
    """feedgraph database migration management."""
    configure_logging(debug=(log_level == "debug"))


@main.command()
@click.argument("revision", default="head")
def upgrade(revision: str) -> None:
    """Upgrade database to a revision (default: head)."""
    try:
        config = get_alembic_config()
        logger.info("Upgrading database", revision=revision)
        command.upgrade(config, revision)
        logger.info("Database upgrade completed successfully")
    except Exception as e:
        logger.error("Database upgrade failed", error=str(e))
        sys.exit(1)


@main.command()
@click.argument("revision", default="-1")
def downgrade(revision: str) -> None:
    """Downgrade database to a revision (default: -1)."""
    try:
        config = get_alembic_config()
        logger.info("Downgrading database", revision=revision)
        command.downgrade(config, revision)
        logger.info("Database downgrade completed successfully")
    except Exception as e:
        logger.error("Database downgrade failed", error=str(e))
        sys.exit(1)


@main.command()
def current() -> None:
    """Show current database revision."""
    try:
        command.current(get_alembic_config())
    except Exception as e:
        logger.error("Failed to get current revision", error=str(e))
        sys.exit(1)


@main.command()
def history() -> None:
    """Show migration history."""
    try:
        command.history(get_alembic_config())
    except Exception as e:
        logger.error("Failed to get migration history", error=str(e))
        sys.exit(1)


@main.command()
def seed() -> None:
    """Insert any missing member types."""
    from feedgraph.database.seed_data import ensure_member_types
    from feedgraph.storage.factory import create_storage_gateway

    async def do_seed() -> list[str]:
        gateway = create_storage_gateway("sqlalchemy")
        try:
            return await ensure_member_types(gateway)
        finally:
            await gateway.close()

    try:
        created = asyncio.run(do_seed())
        click.echo(f"✓ Member types seeded ({len(created)} created)")
    except Exception as e:
        logger.error("Failed to seed member types", error=str(e))
        click.echo(f"✗ Error seeding member types: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
