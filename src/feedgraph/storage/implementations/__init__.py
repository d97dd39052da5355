"""Storage gateway implementations."""

from .memory import InMemoryStorageGateway
from .sql import SqlAlchemyStorageGateway

__all__ = ["InMemoryStorageGateway", "SqlAlchemyStorageGateway"]
