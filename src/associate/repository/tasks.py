"""Task repository: tasks, their plan memberships and ordering."""

import logging
from typing import Any

from ..errors import InvalidInputError, IsolationViolationError, NotFoundError
from ..graph.positions import place_tasks
from ..models.nodes import Plan, PlanMembership, Task, TaskInPlan
from ..store.base import NodeRecord, Scope
from .base import DEFAULT_LIMIT, Relations, Repository, check_page, scope_for
from .plans import PlanRepository

logger = logging.getLogger(__name__)


class TaskRepository(Repository[Task]):
    MODEL = Task

    def __init__(self, store, relationships, plans: PlanRepository):
        super().__init__(store, relationships)
        self.plans = plans

    async def _require_plans(self, plan_ids: list[str]) -> list[NodeRecord]:
        records = await self.store.get_nodes(plan_ids)
        plans = []
        for plan_id in plan_ids:
            record = records.get(plan_id)
            if record is None or record.label != "Plan":
                raise NotFoundError("Plan", plan_id)
            plans.append(record)
        return plans

    async def _write_positions(self, plan_id: str, positions: dict[str, float]) -> None:
        for task_id, position in positions.items():
            await self.store.merge_edge(task_id, plan_id, "PART_OF", {"position": position})

    async def create(
        self,
        content: str,
        plan_ids: list[str],
        status: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
        after_task_id: str | None = None,
        before_task_id: str | None = None,
    ) -> Task:
        """
        Create a task inside one or more plans of the same zone.

        The task is appended to each plan unless ``after_task_id`` /
        ``before_task_id`` anchor it next to an existing sibling.
        """
        plan_ids = list(dict.fromkeys(plan_ids or []))
        if not plan_ids:
            raise InvalidInputError("A task must belong to at least one plan (plan_ids is empty)")

        fields: dict[str, Any] = {"content": content, "tags": tags, "metadata": metadata or {}}
        if status is not None:
            fields["status"] = status

        async with self.store.transaction():
            plans = await self._require_plans(plan_ids)
            zones = {plan.zone_id for plan in plans}
            if len(zones) > 1:
                raise IsolationViolationError(f"Plans {plan_ids} span several zones; a task lives in exactly one")

            task = self._build(zone_id=zones.pop(), **fields)
            pending = await self._validate_relations(task, relations)

            placements = {}
            for plan_id in plan_ids:
                siblings = await self.relationships.plan_task_positions(plan_id)
                placements[plan_id] = place_tasks(siblings, [task.id], after_task_id, before_task_id)

            await self.store.create_node(self.label, task.to_props())
            for plan_id, positions in placements.items():
                await self._write_positions(plan_id, positions)
            await self._write_relations(task.id, pending)

        logger.info(f"Created task {task.id} in plans {plan_ids}")
        return task

    async def memberships(self, task_id: str) -> list[PlanMembership]:
        edges = await self.store.get_edges(task_id, "outgoing", ["PART_OF"])
        records = await self.store.get_nodes([e.to_id for e in edges])
        return [
            PlanMembership(plan=Plan.from_props(records[e.to_id].props), position=float(e.props.get("position", 0.0)))
            for e in edges
            if e.to_id in records
        ]

    async def get_with_plans(self, task_id: str, scope: Scope | None = None) -> tuple[Task, list[PlanMembership]] | None:
        task = await self.get(task_id, scope)
        if task is None:
            return None
        return task, await self.memberships(task_id)

    async def update(
        self,
        task_id: str,
        content: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
        relations: Relations | None = None,
        add_plan_ids: list[str] | None = None,
        scope: Scope | None = None,
    ) -> Task:
        """Partial update. ``add_plan_ids`` appends the task to further plans of its zone."""
        async with self.store.transaction():
            task = await self.require(task_id, scope)
            task = self._revise(task, {"content": content, "status": status, "tags": tags, "metadata": metadata})
            pending = await self._validate_relations(task, relations)

            new_plans = list(dict.fromkeys(add_plan_ids or []))
            for plan in await self._require_plans(new_plans):
                if plan.zone_id != task.zone_id:
                    raise IsolationViolationError(f"Plan {plan.id} is outside task {task_id}'s zone {task.zone_id}")

            await self._save(task)
            for plan_id in new_plans:
                await self.relationships.link(task_id, plan_id, "PART_OF")
            await self._write_relations(task_id, pending)

        logger.info(f"Updated task {task_id}")
        return task

    async def delete(self, task_id: str, scope: Scope | None = None) -> None:
        await self._delete(task_id, scope)

    async def list_tasks(
        self,
        zone_id: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        text: str | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Task]:
        query = self._query(scope_for(zone_id), tags=tags, text=text, limit=limit, offset=offset, status=status)
        return await self.find(query)

    async def list_in_plan(
        self,
        plan_id: str,
        status: str | None = None,
        tags: list[str] | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
        scope: Scope | None = None,
    ) -> list[TaskInPlan]:
        """Tasks of one plan ordered by position ascending, filtered by status and tags."""
        check_page(limit, offset)
        if await self.plans.get(plan_id, scope) is None:
            raise NotFoundError("Plan", plan_id)
        wanted = set(tags or [])
        tasks = [
            entry
            for entry in await self.plans.tasks_in_plan(plan_id)
            if (status is None or entry.task.status == status) and wanted.issubset(entry.task.tags)
        ]
        return tasks[offset : offset + limit]

    async def search(
        self,
        query: str,
        zone_id: str | None = None,
        status: str | None = None,
        tags: list[str] | None = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> list[Task]:
        return await self.list_tasks(zone_id=zone_id, status=status, tags=tags, text=query, limit=limit, offset=offset)

    async def reorder(
        self,
        plan_id: str,
        task_ids: list[str],
        after_task_id: str | None = None,
        before_task_id: str | None = None,
        scope: Scope | None = None,
    ) -> list[TaskInPlan]:
        """
        Move ``task_ids`` (in the given order) to sit after/before an anchor.

        Without an anchor the block moves to the start of the plan. Tasks not
        being moved keep their positions.

        Returns:
            The plan's tasks in their new order
        """
        if not task_ids:
            raise InvalidInputError("task_ids must not be empty")
        if len(set(task_ids)) != len(task_ids):
            raise InvalidInputError("task_ids contains duplicates")

        async with self.store.transaction():
            await self.plans.require(plan_id, scope)
            current = await self.relationships.plan_task_positions(plan_id)
            members = {task_id for task_id, _ in current}
            for task_id in task_ids:
                if task_id not in members:
                    raise NotFoundError("Task in plan", task_id)

            moving = set(task_ids)
            siblings = [(task_id, pos) for task_id, pos in current if task_id not in moving]
            positions = place_tasks(siblings, task_ids, after_task_id, before_task_id, default="start")
            await self._write_positions(plan_id, positions)
            ordered = await self.plans.tasks_in_plan(plan_id)

        logger.info(f"Reordered {len(task_ids)} tasks in plan {plan_id}")
        return ordered
