"""
Graph store factory.

Creates the configured GraphStore backend from settings. The returned store
is not yet initialized; the connector owns the connect/retry step.
"""

import logging

from ..config import Settings
from .base import GraphStore
from .falkordb_store import FalkorDBGraphStore
from .sqlite_store import SQLiteGraphStore

logger = logging.getLogger(__name__)


def create_store(config: Settings) -> GraphStore:
    """
    Create the graph store backend named by ``config.store.backend``.

    Returns:
        Uninitialized GraphStore instance
    """
    store_config = config.store

    if store_config.backend == "sqlite":
        logger.info(f"Creating SQLite graph store at {store_config.sqlite_path}")
        return SQLiteGraphStore(db_path=store_config.sqlite_path)

    password = store_config.password.get_secret_value() if store_config.password else None
    logger.info(f"Creating FalkorDB graph store: {store_config.host}:{store_config.port}/{store_config.graph_name}")
    return FalkorDBGraphStore(
        host=store_config.host,
        port=store_config.port,
        password=password,
        graph_name=store_config.graph_name,
        max_connections=store_config.max_connections,
    )
