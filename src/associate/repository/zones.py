"""Zone repository: isolation boundaries and their contents."""

import logging
from typing import Any

from ..errors import ZoneNotEmptyError
from ..models.nodes import Zone
from ..store.base import NodeQuery, Scope
from .base import DEFAULT_LIMIT, Repository

logger = logging.getLogger(__name__)

COUNT_KEYS = {"Plan": "plans", "Task": "tasks", "Memory": "memories"}


class ZoneRepository(Repository[Zone]):
    MODEL = Zone

    async def create(
        self,
        name: str,
        description: str = "",
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Zone:
        zone = self._build(name=name, description=description or "", tags=tags, metadata=metadata or {})
        await self.store.create_node(self.label, zone.to_props())
        logger.info(f"Created zone {zone.id} ({zone.name!r})")
        return zone

    async def get_or_create(self, name: str) -> Zone:
        """Zone with exactly this name, created on first use."""
        async with self.store.transaction():
            query = NodeQuery(label=self.label, scope=Scope.everywhere(), equals={"name": name}, limit=1)
            matches = await self.find(query)
            if matches:
                return matches[0]
            return await self.create(name=name)

    async def counts(self, zone_id: str) -> dict[str, int]:
        scope = Scope.zone(zone_id)
        return {key: await self.store.count_nodes(label, scope) for label, key in COUNT_KEYS.items()}

    async def update(
        self,
        zone_id: str,
        name: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Zone:
        async with self.store.transaction():
            zone = await self.require(zone_id)
            zone = self._revise(zone, {"name": name, "description": description, "tags": tags, "metadata": metadata})
            await self._save(zone)
        logger.info(f"Updated zone {zone_id}")
        return zone

    async def delete(self, zone_id: str, cascade: bool = False) -> dict[str, int]:
        """
        Delete a zone.

        A zone that still holds plans, tasks or memories is only deleted with
        ``cascade=True``; every plan goes through the plan cascade, then the
        remaining tasks and memories are removed.

        Returns:
            Counts of deleted plans, tasks and memories
        """
        async with self.store.transaction():
            await self.require(zone_id)
            counts = await self.counts(zone_id)
            if any(counts.values()) and not cascade:
                raise ZoneNotEmptyError(
                    f"Zone {zone_id} still holds {counts['plans']} plans, {counts['tasks']} tasks and "
                    f"{counts['memories']} memories; pass cascade=true to delete them"
                )

            deleted = {"plans_deleted": 0, "tasks_deleted": 0, "memories_deleted": 0}
            for plan in await self.records_in_zone("Plan", zone_id):
                deleted["tasks_deleted"] += await self.relationships.cascade_plan_delete(plan.id)
                deleted["plans_deleted"] += 1
            for task in await self.records_in_zone("Task", zone_id):
                await self.store.delete_node(task.id)
                deleted["tasks_deleted"] += 1
            for memory in await self.records_in_zone("Memory", zone_id):
                await self.store.delete_node(memory.id)
                deleted["memories_deleted"] += 1
            await self.store.delete_node(zone_id)

        logger.info(f"Deleted zone {zone_id}: {deleted}")
        return deleted

    async def list_zones(
        self,
        tags: list[str] | None = None,
        text: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Zone]:
        return await self.find(self._query(Scope.everywhere(), tags=tags, text=text, limit=limit, offset=offset))

    async def search(self, query: str, tags: list[str] | None = None, limit: int = DEFAULT_LIMIT, offset: int = 0) -> list[Zone]:
        return await self.list_zones(tags=tags, text=query, limit=limit, offset=offset)
