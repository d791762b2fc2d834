"""Memory repository."""

import logging
from typing import Any

from ..config import settings
from ..errors import NotFoundError
from ..models.nodes import Memory
from ..store.base import Scope
from .base import DEFAULT_LIMIT, Relations, Repository, scope_for
from .zones import ZoneRepository

logger = logging.getLogger(__name__)


class MemoryRepository(Repository[Memory]):
    MODEL = Memory

    def __init__(self, store, relationships, zones: ZoneRepository, default_zone_name: str | None = None):
        super().__init__(store, relationships)
        self.zones = zones
        self.default_zone_name = default_zone_name or settings.server.default_zone_name

    async def create(
        self,
        content: str,
        type: str | None = None,
        zone_id: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
    ) -> Memory:
        """Store a memory; without ``zone_id`` it goes to the default zone."""
        fields: dict[str, Any] = {"content": content, "tags": tags, "metadata": metadata or {}}
        if type is not None:
            fields["type"] = type

        async with self.store.transaction():
            if zone_id:
                if await self.zones.get(zone_id) is None:
                    raise NotFoundError("Zone", zone_id)
            else:
                zone_id = (await self.zones.get_or_create(self.default_zone_name)).id

            memory = self._build(zone_id=zone_id, **fields)
            pending = await self._validate_relations(memory, relations)

            await self.store.create_node(self.label, memory.to_props())
            await self.store.merge_edge(memory.id, zone_id, "BELONGS_TO")
            await self._write_relations(memory.id, pending)

        logger.info(f"Stored memory {memory.id} in zone {zone_id}")
        return memory

    async def update(
        self,
        memory_id: str,
        content: str | None = None,
        type: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
        scope: Scope | None = None,
    ) -> Memory:
        async with self.store.transaction():
            memory = await self.require(memory_id, scope)
            memory = self._revise(memory, {"content": content, "type": type, "tags": tags, "metadata": metadata})
            pending = await self._validate_relations(memory, relations)
            await self._save(memory)
            await self._write_relations(memory_id, pending)
        logger.info(f"Updated memory {memory_id}")
        return memory

    async def delete(self, memory_id: str, scope: Scope | None = None) -> None:
        await self._delete(memory_id, scope)

    async def list_memories(
        self,
        zone_id: str | None = None,
        type: str | None = None,
        tags: list[str] | None = None,
        text: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Memory]:
        query = self._query(scope_for(zone_id), tags=tags, text=text, limit=limit, offset=offset, type=type)
        return await self.find(query)

    async def search(
        self,
        query: str,
        zone_id: str | None = None,
        type: str | None = None,
        tags: list[str] | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Memory]:
        return await self.list_memories(zone_id=zone_id, type=type, tags=tags, text=query, limit=limit, offset=offset)
