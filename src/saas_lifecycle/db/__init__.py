"""Persistence for the test subscription cache.

PostgreSQL in shared deployments, SQLite for development.
"""

from saas_lifecycle.db.base import Base, close_database, get_session, init_database
from saas_lifecycle.db.models import CachedSubscriptionModel

__all__ = [
    "Base",
    "get_session",
    "init_database",
    "close_database",
    "CachedSubscriptionModel",
]
