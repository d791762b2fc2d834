"""Plan repository."""

import logging
from typing import Any

from ..errors import NotFoundError
from ..models.nodes import Plan, Task, TaskInPlan
from ..store.base import Scope
from .base import DEFAULT_LIMIT, Relations, Repository, scope_for
from .zones import ZoneRepository

logger = logging.getLogger(__name__)


class PlanRepository(Repository[Plan]):
    MODEL = Plan

    def __init__(self, store, relationships, zones: ZoneRepository):
        super().__init__(store, relationships)
        self.zones = zones

    async def create(
        self,
        name: str,
        description: str = "",
        status: str | None = None,
        zone_id: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
    ) -> Plan:
        """
        Create a plan in ``zone_id``.

        Without a zone a new zone named after the plan is created for it.
        """
        fields: dict[str, Any] = {"name": name, "description": description or "", "tags": tags, "metadata": metadata or {}}
        if status is not None:
            fields["status"] = status

        async with self.store.transaction():
            if zone_id:
                if await self.zones.get(zone_id) is None:
                    raise NotFoundError("Zone", zone_id)
                plan = self._build(zone_id=zone_id, **fields)
                pending = await self._validate_relations(plan, relations)
            else:
                # Validate against a provisional zone id before anything is written
                plan = self._build(zone_id="", **fields)
                pending = await self._validate_relations(plan, relations)
                zone = await self.zones.create(name=plan.name, description=f"Zone for plan {plan.name}")
                plan.zone_id = zone.id

            await self.store.create_node(self.label, plan.to_props())
            await self.store.merge_edge(plan.id, plan.zone_id, "BELONGS_TO")
            await self._write_relations(plan.id, pending)

        logger.info(f"Created plan {plan.id} ({plan.name!r}) in zone {plan.zone_id}")
        return plan

    async def tasks_in_plan(self, plan_id: str) -> list[TaskInPlan]:
        """Tasks of a plan in position order, with their DEPENDS_ON / BLOCKS targets."""
        positions = await self.relationships.plan_task_positions(plan_id)
        records = await self.store.get_nodes([task_id for task_id, _ in positions])
        tasks = []
        for task_id, position in positions:
            record = records.get(task_id)
            if record is None:
                continue
            edges = await self.store.get_edges(task_id, "outgoing", ["DEPENDS_ON", "BLOCKS"])
            tasks.append(
                TaskInPlan(
                    task=Task.from_props(record.props),
                    position=position,
                    depends_on=[e.to_id for e in edges if e.type == "DEPENDS_ON"],
                    blocks=[e.to_id for e in edges if e.type == "BLOCKS"],
                )
            )
        return tasks

    async def get_with_tasks(self, plan_id: str, scope: Scope | None = None) -> tuple[Plan, list[TaskInPlan]] | None:
        plan = await self.get(plan_id, scope)
        if plan is None:
            return None
        return plan, await self.tasks_in_plan(plan_id)

    async def update(
        self,
        plan_id: str,
        name: str | None = None,
        description: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
        scope: Scope | None = None,
    ) -> Plan:
        async with self.store.transaction():
            plan = await self.require(plan_id, scope)
            plan = self._revise(
                plan,
                {"name": name, "description": description, "status": status, "tags": tags, "metadata": metadata},
            )
            pending = await self._validate_relations(plan, relations)
            await self._save(plan)
            await self._write_relations(plan_id, pending)
        logger.info(f"Updated plan {plan_id}")
        return plan

    async def delete(self, plan_id: str, scope: Scope | None = None) -> int:
        """
        Delete a plan; tasks left in no other plan are deleted with it.

        Returns:
            Number of tasks deleted
        """
        async with self.store.transaction():
            await self.require(plan_id, scope)
            return await self.relationships.cascade_plan_delete(plan_id)

    async def list_plans(
        self,
        zone_id: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        text: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Plan]:
        query = self._query(scope_for(zone_id), tags=tags, text=text, limit=limit, offset=offset, status=status)
        return await self.find(query)

    async def search(
        self,
        query: str,
        zone_id: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Plan]:
        return await self.list_plans(zone_id=zone_id, status=status, tags=tags, text=query, limit=limit, offset=offset)
