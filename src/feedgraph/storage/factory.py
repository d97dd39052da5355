"""Factory for creating storage gateways."""

from ..logging import get_logger
from ..registry import EntityRegistry, default_registry
from .base import StorageGateway
from .implementations.memory import InMemoryStorageGateway
from .implementations.sql import SqlAlchemyStorageGateway

logger = get_logger(__name__)

# Process-wide gateway, created once by the application lifespan
_gateway: StorageGateway | None = None


def create_storage_gateway(
    backend: str, registry: EntityRegistry = default_registry
) -> StorageGateway:
    """Create a storage gateway instance.

    Args:
        backend: Gateway type ('sqlalchemy' or 'memory')
        registry: Entity registry describing the stored entities

    Raises:
        ValueError: If the backend type is unknown
    """
    if backend == "sqlalchemy":
        from ..database.connection import init_database

        init_database()
        return SqlAlchemyStorageGateway(registry)
    elif backend == "memory":
        return InMemoryStorageGateway(registry)
    else:
        raise ValueError(f"Unknown storage backend: {backend}")


def get_storage_gateway() -> StorageGateway:
    """Get the process-wide gateway, creating it from settings on first access."""
    global _gateway

    if _gateway is None:
        from ..config import settings

        _gateway = create_storage_gateway(settings.storage_backend)
        logger.info("Storage gateway created", backend=_gateway.name)

    return _gateway


def set_storage_gateway(gateway: StorageGateway | None) -> None:
    """Install a specific gateway (or clear it, with None)."""
    global _gateway
    _gateway = gateway
