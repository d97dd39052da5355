"""Storage gateways for feedgraph entities.

Main components:
- StorageGateway: Abstract base class for storage implementations
- InMemoryStorageGateway: Dict-backed gateway for development and tests
- SqlAlchemyStorageGateway: PostgreSQL gateway over the async session pool
"""

from .base import Filter, Row, StorageGateway
from .factory import create_storage_gateway, get_storage_gateway, set_storage_gateway
from .implementations import InMemoryStorageGateway, SqlAlchemyStorageGateway

__all__ = [
    "Filter",
    "Row",
    "StorageGateway",
    "InMemoryStorageGateway",
    "SqlAlchemyStorageGateway",
    "create_storage_gateway",
    "get_storage_gateway",
    "set_storage_gateway",
]
