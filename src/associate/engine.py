"""
Graph engine wiring.

``GraphEngine`` bundles one GraphStore with the repositories, relationship
engine and traversal engine built on it. Dependencies are passed in
explicitly; there are no module-level singletons besides the shared engine
slot the servers use.
"""

import asyncio
import logging

from .config import Settings, settings
from .graph.relationships import RelationshipEngine
from .graph.traversal import TraversalEngine
from .repository.memories import MemoryRepository
from .repository.plans import PlanRepository
from .repository.tasks import TaskRepository
from .repository.zones import ZoneRepository
from .store.base import GraphStore
from .store.connector import RetryPolicy, connect_with_retry

logger = logging.getLogger(__name__)


class GraphEngine:
    """In-process API over one backing store."""

    def __init__(self, store: GraphStore, default_zone_name: str | None = None):
        self.store = store
        self.relationships = RelationshipEngine(store)
        self.traversal = TraversalEngine(store)
        self.zones = ZoneRepository(store, self.relationships)
        self.plans = PlanRepository(store, self.relationships, self.zones)
        self.tasks = TaskRepository(store, self.relationships, self.plans)
        self.memories = MemoryRepository(store, self.relationships, self.zones, default_zone_name)

    @classmethod
    async def open(
        cls,
        config: Settings | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> "GraphEngine":
        """Connect (with retry) to the configured store and build an engine on it."""
        config = config or settings
        store = await connect_with_retry(
            config,
            RetryPolicy.from_settings(config.retry),
            cancel_event=cancel_event,
        )
        return cls(store, default_zone_name=config.server.default_zone_name)

    async def close(self) -> None:
        await self.store.close()


# Shared engine slot. When set (e.g. by tests or an embedding process) the
# servers use it instead of opening their own connection.
_shared_engine: GraphEngine | None = None
_shared_lock = asyncio.Lock()


def set_shared_engine(engine: GraphEngine | None) -> None:
    global _shared_engine
    _shared_engine = engine


def get_shared_engine() -> GraphEngine | None:
    return _shared_engine


async def get_or_open_engine(config: Settings | None = None, cancel_event: asyncio.Event | None = None) -> GraphEngine:
    """Return the shared engine, opening it on first use."""
    global _shared_engine
    if _shared_engine is not None:
        return _shared_engine
    async with _shared_lock:
        if _shared_engine is None:
            logger.info("Opening shared graph engine...")
            _shared_engine = await GraphEngine.open(config, cancel_event)
    return _shared_engine
