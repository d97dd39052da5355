"""
feedgraph
GraphQL service over users, profiles, posts, member types and subscriptions
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
