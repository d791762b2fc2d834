#!/usr/bin/env python3
"""FastMCP server for the associate graph memory engine.

Native MCP protocol implementation using FastMCP with Pydantic-validated
tool inputs. Each tool handler constructs an input model for validation,
calls the graph engine and maps engine errors to a structured
``{"success": false, "error": {"reason", "message"}}`` response, so a failed
call never ends the session.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

from fastmcp import Context, FastMCP
from pydantic import ValidationError

from .config import settings
from .engine import GraphEngine, get_shared_engine
from .errors import GraphError
from .models.mcp_inputs import (
    AddMemoryParams,
    CreatePlanParams,
    CreateTaskParams,
    CreateZoneParams,
    DeleteZoneParams,
    GetByIdParams,
    GetRelatedParams,
    GetZoneParams,
    ListPlansParams,
    ListRelationshipsParams,
    ListTasksParams,
    ListZonesParams,
    RelationshipParams,
    ReorderTasksParams,
    SearchMemoriesParams,
    UpdateMemoryParams,
    UpdatePlanParams,
    UpdateTaskParams,
    UpdateZoneParams,
)
from .models.nodes import GraphNode, RelatedNode
from .repository.base import validation_message
from .store.base import Scope

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 120


@dataclass
class MCPServerContext:
    """Application context for the MCP server."""

    engine: GraphEngine


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Provide the graph engine for the server's lifetime."""
    shared = get_shared_engine()
    if shared is not None:
        logger.debug("Using pre-initialized shared graph engine")
        engine = shared
    else:
        logger.info("No shared engine found, connecting to the graph store (standalone mode)")
        engine = await GraphEngine.open(settings)

    try:
        yield MCPServerContext(engine=engine)
    finally:
        if shared is None:
            logger.info("Shutting down graph engine...")
            await engine.close()


# Create FastMCP server instance
mcp = FastMCP("associate", lifespan=mcp_server_lifespan)


def _engine(ctx: Context) -> GraphEngine:
    return ctx.request_context.lifespan_context.engine


def _invalid(e: ValidationError) -> dict[str, Any]:
    return {"success": False, "error": {"reason": "validation_error", "message": validation_message(e)}}


def _failed(tool: str, e: GraphError) -> dict[str, Any]:
    logger.warning(f"{tool} failed ({e.reason}): {e}")
    return {"success": False, "error": e.to_dict()}


def _not_found(node_id: str) -> dict[str, Any]:
    return {"success": True, "found": False, "id": node_id}


def _summary(entry: RelatedNode) -> dict[str, Any]:
    node = entry.node
    title = getattr(node, "name", None) or getattr(node, "content", "")
    return {
        "id": node.id,
        "kind": node.LABEL,
        "title": title[:SUMMARY_LENGTH],
        "relationship_type": entry.relationship_type,
        "direction": entry.direction,
    }


def _listing(key: str, nodes: list[GraphNode] | list[Any]) -> dict[str, Any]:
    items = [node.to_output() for node in nodes]
    return {"success": True, key: items, "count": len(items)}


# =============================================================================
# MEMORIES
# =============================================================================


@mcp.tool()
async def add_memory(
    content: str,
    ctx: Context,
    type: str = "Memory",
    zone_id: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
    depends_on: list[str] | None = None,
    blocks: list[str] | None = None,
    follows: list[str] | None = None,
    implements: list[str] | None = None,
) -> dict[str, Any]:
    """Store a new memory node.

    Args:
        content: Text of the memory
        type: "Note", "Repository" or "Memory" (default). For tasks use create_task.
        zone_id: Zone to store it in. Omitted: the default zone.
        tags: Labels, accepts ["a", "b"] or "a,b"
        metadata: Key-value data, passed through unchanged (ui_x/ui_y/ui_width/ui_height included)
        related_to: Node ids to link with RELATES_TO
        references: Node ids to link with REFERENCES
        depends_on: Node ids to link with DEPENDS_ON
        blocks: Node ids to link with BLOCKS
        follows: Node ids to link with FOLLOWS
        implements: Node ids to link with IMPLEMENTS

    Returns:
        {success, memory}
    """
    try:
        params = AddMemoryParams(
            content=content,
            type=type,
            zone_id=zone_id,
            tags=tags,
            metadata=metadata,
            related_to=related_to,
            references=references,
            depends_on=depends_on,
            blocks=blocks,
            follows=follows,
            implements=implements,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        memory = await _engine(ctx).memories.create(
            content=params.content,
            type=params.type,
            zone_id=params.zone_id,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
        )
    except GraphError as e:
        return _failed("add_memory", e)
    return {"success": True, "memory": memory.to_output()}


@mcp.tool()
async def get_memory(id: str, ctx: Context) -> dict[str, Any]:
    """Retrieve a memory with summaries of its directly related nodes.

    Returns:
        {success, found, memory: {..., related: [{id, kind, title, relationship_type, direction}]}}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    engine = _engine(ctx)
    try:
        memory = await engine.memories.get(params.id)
        if memory is None:
            return _not_found(params.id)
        related = await engine.traversal.get_related(params.id, direction="both", depth=1)
    except GraphError as e:
        return _failed("get_memory", e)

    output = memory.to_output()
    output["related"] = [_summary(entry) for entry in related]
    return {"success": True, "found": True, "memory": output}


@mcp.tool()
async def update_memory(
    id: str,
    ctx: Context,
    content: str | None = None,
    type: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
    depends_on: list[str] | None = None,
    blocks: list[str] | None = None,
    follows: list[str] | None = None,
    implements: list[str] | None = None,
) -> dict[str, Any]:
    """Update a memory. Omitted fields are unchanged; tags and metadata replace.

    Relationship lists add edges, they never remove existing ones.

    Returns:
        {success, memory}
    """
    try:
        params = UpdateMemoryParams(
            id=id,
            content=content,
            type=type,
            tags=tags,
            metadata=metadata,
            related_to=related_to,
            references=references,
            depends_on=depends_on,
            blocks=blocks,
            follows=follows,
            implements=implements,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        memory = await _engine(ctx).memories.update(
            params.id,
            content=params.content,
            type=params.type,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
        )
    except GraphError as e:
        return _failed("update_memory", e)
    return {"success": True, "memory": memory.to_output()}


@mcp.tool()
async def delete_memory(id: str, ctx: Context) -> dict[str, Any]:
    """Delete a memory and every relationship touching it.

    Returns:
        {success, id, deleted}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    try:
        await _engine(ctx).memories.delete(params.id)
    except GraphError as e:
        return _failed("delete_memory", e)
    return {"success": True, "id": params.id, "deleted": True}


@mcp.tool()
async def search_memories(
    ctx: Context,
    query: str = "",
    zone_id: str | None = None,
    type: str | None = None,
    tags: str | list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """Find memories by case-insensitive substring match on content.

    Args:
        query: Substring to look for (empty lists everything matching the filters)
        zone_id: Restrict to one zone
        type: Restrict to one memory type
        tags: Memory must carry ALL of these tags
        limit: Page size (1-500, default 50)
        offset: Page start

    Returns:
        {success, memories, count}, newest first
    """
    try:
        params = SearchMemoriesParams(query=query, zone_id=zone_id, type=type, tags=tags, limit=limit, offset=offset)
    except ValidationError as e:
        return _invalid(e)

    try:
        memories = await _engine(ctx).memories.search(
            params.query,
            zone_id=params.zone_id,
            type=params.type,
            tags=params.tags,
            limit=params.limit,
            offset=params.offset,
        )
    except GraphError as e:
        return _failed("search_memories", e)
    return _listing("memories", memories)


# =============================================================================
# PLANS
# =============================================================================


@mcp.tool()
async def create_plan(
    name: str,
    ctx: Context,
    description: str = "",
    status: str = "active",
    zone_id: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
) -> dict[str, Any]:
    """Create a plan.

    Args:
        name: Plan title
        description: Longer description
        status: "draft", "active" (default), "completed" or "archived"
        zone_id: Zone for the plan. Omitted: a new zone named after the plan is created.
        tags: Labels
        metadata: Key-value data
        related_to: Node ids to link with RELATES_TO
        references: Node ids to link with REFERENCES

    Returns:
        {success, plan}
    """
    try:
        params = CreatePlanParams(
            name=name,
            description=description,
            status=status,
            zone_id=zone_id,
            tags=tags,
            metadata=metadata,
            related_to=related_to,
            references=references,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        plan = await _engine(ctx).plans.create(
            name=params.name,
            description=params.description,
            status=params.status,
            zone_id=params.zone_id,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
        )
    except GraphError as e:
        return _failed("create_plan", e)
    return {"success": True, "plan": plan.to_output()}


@mcp.tool()
async def get_plan(id: str, ctx: Context) -> dict[str, Any]:
    """Retrieve a plan with its tasks in position order.

    Returns:
        {success, found, plan: {..., tasks: [{..., position, depends_on, blocks}]}}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    try:
        result = await _engine(ctx).plans.get_with_tasks(params.id)
    except GraphError as e:
        return _failed("get_plan", e)
    if result is None:
        return _not_found(params.id)

    plan, tasks = result
    output = plan.to_output()
    output["tasks"] = [entry.to_output() for entry in tasks]
    return {"success": True, "found": True, "plan": output}


@mcp.tool()
async def update_plan(
    id: str,
    ctx: Context,
    name: str | None = None,
    description: str | None = None,
    status: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
) -> dict[str, Any]:
    """Update a plan. Omitted fields are unchanged; tags and metadata replace.

    Returns:
        {success, plan}
    """
    try:
        params = UpdatePlanParams(
            id=id,
            name=name,
            description=description,
            status=status,
            tags=tags,
            metadata=metadata,
            related_to=related_to,
            references=references,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        plan = await _engine(ctx).plans.update(
            params.id,
            name=params.name,
            description=params.description,
            status=params.status,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
        )
    except GraphError as e:
        return _failed("update_plan", e)
    return {"success": True, "plan": plan.to_output()}


@mcp.tool()
async def delete_plan(id: str, ctx: Context) -> dict[str, Any]:
    """Delete a plan. Tasks that belong to no other plan are deleted with it.

    Returns:
        {success, id, deleted, tasks_deleted}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    try:
        tasks_deleted = await _engine(ctx).plans.delete(params.id)
    except GraphError as e:
        return _failed("delete_plan", e)
    return {"success": True, "id": params.id, "deleted": True, "tasks_deleted": tasks_deleted}


@mcp.tool()
async def list_plans(
    ctx: Context,
    zone_id: str | None = None,
    status: str | None = None,
    tags: str | list[str] | None = None,
    query: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """List plans, newest first.

    Args:
        zone_id: Restrict to one zone
        status: Filter by status
        tags: Plan must carry ALL of these tags
        query: Case-insensitive substring of name or description
        limit: Page size (1-500, default 50)
        offset: Page start

    Returns:
        {success, plans, count}
    """
    try:
        params = ListPlansParams(zone_id=zone_id, status=status, tags=tags, query=query, limit=limit, offset=offset)
    except ValidationError as e:
        return _invalid(e)

    try:
        plans = await _engine(ctx).plans.list_plans(
            zone_id=params.zone_id,
            status=params.status,
            tags=params.tags,
            text=params.query,
            limit=params.limit,
            offset=params.offset,
        )
    except GraphError as e:
        return _failed("list_plans", e)
    return _listing("plans", plans)


# =============================================================================
# TASKS
# =============================================================================


@mcp.tool()
async def create_task(
    content: str,
    plan_ids: list[str],
    ctx: Context,
    status: str = "pending",
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    after_task_id: str | None = None,
    before_task_id: str | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
    depends_on: list[str] | None = None,
    blocks: list[str] | None = None,
    follows: list[str] | None = None,
    implements: list[str] | None = None,
) -> dict[str, Any]:
    """Create a task in one or more plans (all in the same zone).

    Args:
        content: What needs doing
        plan_ids: Plans the task belongs to (at least one)
        status: "pending" (default), "in_progress", "completed", "cancelled" or "blocked"
        tags: Labels
        metadata: Key-value data
        after_task_id: Place directly after this task (default: end of plan)
        before_task_id: Place directly before this task
        related_to, references, depends_on, blocks, follows, implements:
            Node ids to link with the matching relationship type

    Returns:
        {success, task, plans: [{..., position}]}
    """
    try:
        params = CreateTaskParams(
            content=content,
            plan_ids=plan_ids,
            status=status,
            tags=tags,
            metadata=metadata,
            after_task_id=after_task_id,
            before_task_id=before_task_id,
            related_to=related_to,
            references=references,
            depends_on=depends_on,
            blocks=blocks,
            follows=follows,
            implements=implements,
        )
    except ValidationError as e:
        return _invalid(e)

    engine = _engine(ctx)
    try:
        task = await engine.tasks.create(
            content=params.content,
            plan_ids=params.plan_ids,
            status=params.status,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
            after_task_id=params.after_task_id,
            before_task_id=params.before_task_id,
        )
        memberships = await engine.tasks.memberships(task.id)
    except GraphError as e:
        return _failed("create_task", e)
    return {"success": True, "task": task.to_output(), "plans": [m.to_output() for m in memberships]}


@mcp.tool()
async def get_task(id: str, ctx: Context) -> dict[str, Any]:
    """Retrieve a task with the plans it belongs to and its position in each.

    Returns:
        {success, found, task: {..., plans: [{..., position}]}}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    try:
        result = await _engine(ctx).tasks.get_with_plans(params.id)
    except GraphError as e:
        return _failed("get_task", e)
    if result is None:
        return _not_found(params.id)

    task, memberships = result
    output = task.to_output()
    output["plans"] = [m.to_output() for m in memberships]
    return {"success": True, "found": True, "task": output}


@mcp.tool()
async def update_task(
    id: str,
    ctx: Context,
    content: str | None = None,
    status: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
    add_plan_ids: list[str] | None = None,
    related_to: list[str] | None = None,
    references: list[str] | None = None,
    depends_on: list[str] | None = None,
    blocks: list[str] | None = None,
    follows: list[str] | None = None,
    implements: list[str] | None = None,
) -> dict[str, Any]:
    """Update a task. Omitted fields are unchanged; tags and metadata replace.

    Args:
        add_plan_ids: Further plans (same zone) to append the task to

    Returns:
        {success, task}
    """
    try:
        params = UpdateTaskParams(
            id=id,
            content=content,
            status=status,
            tags=tags,
            metadata=metadata,
            add_plan_ids=add_plan_ids,
            related_to=related_to,
            references=references,
            depends_on=depends_on,
            blocks=blocks,
            follows=follows,
            implements=implements,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        task = await _engine(ctx).tasks.update(
            params.id,
            content=params.content,
            status=params.status,
            tags=params.tags,
            metadata=params.metadata,
            relations=params.relations(),
            add_plan_ids=params.add_plan_ids,
        )
    except GraphError as e:
        return _failed("update_task", e)
    return {"success": True, "task": task.to_output()}


@mcp.tool()
async def delete_task(id: str, ctx: Context) -> dict[str, Any]:
    """Delete a task and every relationship touching it.

    Returns:
        {success, id, deleted}
    """
    try:
        params = GetByIdParams(id=id)
    except ValidationError as e:
        return _invalid(e)

    try:
        await _engine(ctx).tasks.delete(params.id)
    except GraphError as e:
        return _failed("delete_task", e)
    return {"success": True, "id": params.id, "deleted": True}


@mcp.tool()
async def list_tasks(
    ctx: Context,
    plan_id: str | None = None,
    zone_id: str | None = None,
    status: str | None = None,
    tags: str | list[str] | None = None,
    query: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """List tasks.

    With ``plan_id`` the plan's tasks come back in position order with their
    positions; otherwise tasks are listed newest first.

    Args:
        plan_id: Tasks of this plan
        zone_id: Restrict to one zone (ignored with plan_id)
        status: Filter by status
        tags: Task must carry ALL of these tags
        query: Case-insensitive substring of content (not with plan_id)
        limit: Page size (1-500, default 50)
        offset: Page start

    Returns:
        {success, tasks, count}
    """
    try:
        params = ListTasksParams(
            plan_id=plan_id,
            zone_id=zone_id,
            status=status,
            tags=tags,
            query=query,
            limit=limit,
            offset=offset,
        )
    except ValidationError as e:
        return _invalid(e)

    engine = _engine(ctx)
    try:
        if params.plan_id:
            tasks = await engine.tasks.list_in_plan(
                params.plan_id,
                status=params.status,
                tags=params.tags,
                limit=params.limit,
                offset=params.offset,
            )
        else:
            tasks = await engine.tasks.list_tasks(
                zone_id=params.zone_id,
                status=params.status,
                tags=params.tags,
                text=params.query,
                limit=params.limit,
                offset=params.offset,
            )
    except GraphError as e:
        return _failed("list_tasks", e)
    return _listing("tasks", tasks)


@mcp.tool()
async def reorder_tasks(
    plan_id: str,
    task_ids: list[str],
    ctx: Context,
    after_task_id: str | None = None,
    before_task_id: str | None = None,
) -> dict[str, Any]:
    """Move tasks within a plan.

    The listed tasks are placed, in the given order, directly after
    ``after_task_id`` / before ``before_task_id``, or at the start of the plan
    when no anchor is given. Other tasks keep their positions.

    Returns:
        {success, plan_id, tasks, count} with the plan's tasks in their new order
    """
    try:
        params = ReorderTasksParams(
            plan_id=plan_id,
            task_ids=task_ids,
            after_task_id=after_task_id,
            before_task_id=before_task_id,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        tasks = await _engine(ctx).tasks.reorder(
            params.plan_id,
            params.task_ids,
            after_task_id=params.after_task_id,
            before_task_id=params.before_task_id,
        )
    except GraphError as e:
        return _failed("reorder_tasks", e)
    return {**_listing("tasks", tasks), "plan_id": params.plan_id}


# =============================================================================
# ZONES
# =============================================================================


@mcp.tool()
async def create_zone(
    name: str,
    ctx: Context,
    description: str = "",
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Create a zone: an isolated area holding plans, tasks and memories.

    Returns:
        {success, zone}
    """
    try:
        params = CreateZoneParams(name=name, description=description, tags=tags, metadata=metadata)
    except ValidationError as e:
        return _invalid(e)

    try:
        zone = await _engine(ctx).zones.create(
            name=params.name,
            description=params.description,
            tags=params.tags,
            metadata=params.metadata,
        )
    except GraphError as e:
        return _failed("create_zone", e)
    return {"success": True, "zone": zone.to_output()}


@mcp.tool()
async def get_zone(id: str, ctx: Context, include_contents: bool = False) -> dict[str, Any]:
    """Retrieve a zone with counts of what it holds.

    Args:
        id: Zone id
        include_contents: Also return the zone's plans and memories

    Returns:
        {success, found, zone: {..., counts: {plans, tasks, memories}, plans?, memories?}}
    """
    try:
        params = GetZoneParams(id=id, include_contents=include_contents)
    except ValidationError as e:
        return _invalid(e)

    engine = _engine(ctx)
    try:
        zone = await engine.zones.get(params.id)
        if zone is None:
            return _not_found(params.id)
        output = zone.to_output()
        output["counts"] = await engine.zones.counts(zone.id)
        if params.include_contents:
            plans = await engine.plans.list_plans(zone_id=zone.id, limit=500)
            memories = await engine.memories.list_memories(zone_id=zone.id, limit=500)
            output["plans"] = [plan.to_output() for plan in plans]
            output["memories"] = [memory.to_output() for memory in memories]
    except GraphError as e:
        return _failed("get_zone", e)
    return {"success": True, "found": True, "zone": output}


@mcp.tool()
async def update_zone(
    id: str,
    ctx: Context,
    name: str | None = None,
    description: str | None = None,
    tags: str | list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Update a zone. Omitted fields are unchanged; tags and metadata replace.

    Returns:
        {success, zone}
    """
    try:
        params = UpdateZoneParams(id=id, name=name, description=description, tags=tags, metadata=metadata)
    except ValidationError as e:
        return _invalid(e)

    try:
        zone = await _engine(ctx).zones.update(
            params.id,
            name=params.name,
            description=params.description,
            tags=params.tags,
            metadata=params.metadata,
        )
    except GraphError as e:
        return _failed("update_zone", e)
    return {"success": True, "zone": zone.to_output()}


@mcp.tool()
async def delete_zone(id: str, ctx: Context, cascade: bool = False) -> dict[str, Any]:
    """Delete a zone.

    A zone that still holds plans, tasks or memories is refused with reason
    ``zone_not_empty`` unless ``cascade`` is true, in which case everything in
    it is deleted too.

    Returns:
        {success, id, deleted, plans_deleted, tasks_deleted, memories_deleted}
    """
    try:
        params = DeleteZoneParams(id=id, cascade=cascade)
    except ValidationError as e:
        return _invalid(e)

    try:
        counts = await _engine(ctx).zones.delete(params.id, cascade=params.cascade)
    except GraphError as e:
        return _failed("delete_zone", e)
    return {"success": True, "id": params.id, "deleted": True, **counts}


@mcp.tool()
async def list_zones(
    ctx: Context,
    query: str | None = None,
    tags: str | list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """List zones, newest first.

    Args:
        query: Case-insensitive substring of name or description
        tags: Zone must carry ALL of these tags
        limit: Page size (1-500, default 50)
        offset: Page start

    Returns:
        {success, zones, count}
    """
    try:
        params = ListZonesParams(query=query, tags=tags, limit=limit, offset=offset)
    except ValidationError as e:
        return _invalid(e)

    try:
        zones = await _engine(ctx).zones.list_zones(
            tags=params.tags,
            text=params.query,
            limit=params.limit,
            offset=params.offset,
        )
    except GraphError as e:
        return _failed("list_zones", e)
    return _listing("zones", zones)


# =============================================================================
# GRAPH
# =============================================================================


@mcp.tool()
async def get_related(
    id: str,
    ctx: Context,
    relationship_type: str | None = None,
    direction: str = "both",
    depth: int = 1,
    zone_id: str | None = None,
) -> dict[str, Any]:
    """Explore the graph breadth-first from a node.

    Each reachable node in the start node's zone is returned once, at the
    shallowest depth it was found.

    Args:
        id: Start node
        relationship_type: Only follow edges of this type
        direction: "incoming", "outgoing" or "both" (default)
        depth: Hops to traverse (default 1, capped at 10)
        zone_id: When given, a start node outside this zone yields nothing

    Returns:
        {success, id, related: [{..., relationship_type, direction, depth}], count}
    """
    try:
        params = GetRelatedParams(
            id=id,
            relationship_type=relationship_type,
            direction=direction,
            depth=depth,
            zone_id=zone_id,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        related = await _engine(ctx).traversal.get_related(
            params.id,
            relation_type=params.relationship_type,
            direction=params.direction,
            depth=params.depth,
            scope=Scope.zone(params.zone_id) if params.zone_id else None,
        )
    except GraphError as e:
        return _failed("get_related", e)
    return {**_listing("related", related), "id": params.id}


@mcp.tool()
async def create_relationship(
    from_id: str,
    to_id: str,
    relationship_type: str,
    ctx: Context,
    properties: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Link two nodes with a typed, directed relationship (idempotent).

    Args:
        from_id: Source node
        to_id: Target node
        relationship_type: BELONGS_TO, PART_OF, DEPENDS_ON, BLOCKS, FOLLOWS,
            RELATES_TO, REFERENCES or IMPLEMENTS
        properties: Edge properties (PART_OF accepts ``position``)

    Returns:
        {success, relationship}
    """
    try:
        params = RelationshipParams(
            from_id=from_id,
            to_id=to_id,
            relationship_type=relationship_type,
            properties=properties,
        )
    except ValidationError as e:
        return _invalid(e)

    try:
        relationship = await _engine(ctx).relationships.link(
            params.from_id,
            params.to_id,
            params.relationship_type,
            params.properties,
        )
    except GraphError as e:
        return _failed("create_relationship", e)
    return {"success": True, "relationship": relationship.model_dump(exclude_none=True)}


@mcp.tool()
async def delete_relationship(
    from_id: str,
    to_id: str,
    relationship_type: str,
    ctx: Context,
) -> dict[str, Any]:
    """Remove one typed relationship. Removing a missing edge is a no-op.

    Returns:
        {success, deleted}
    """
    try:
        params = RelationshipParams(from_id=from_id, to_id=to_id, relationship_type=relationship_type)
    except ValidationError as e:
        return _invalid(e)

    try:
        deleted = await _engine(ctx).relationships.unlink(params.from_id, params.to_id, params.relationship_type)
    except GraphError as e:
        return _failed("delete_relationship", e)
    return {
        "success": True,
        "deleted": deleted,
        "from_id": params.from_id,
        "to_id": params.to_id,
        "relationship_type": params.relationship_type,
    }


@mcp.tool()
async def list_relationships(
    id: str,
    ctx: Context,
    direction: str = "both",
    relationship_type: str | None = None,
) -> dict[str, Any]:
    """List the relationships touching a node.

    Returns:
        {success, id, relationships: [{from_id, to_id, type, properties, direction}], count}
    """
    try:
        params = ListRelationshipsParams(id=id, direction=direction, relationship_type=relationship_type)
    except ValidationError as e:
        return _invalid(e)

    try:
        relationships = await _engine(ctx).relationships.list_relations(
            params.id,
            direction=params.direction,
            rel_type=params.relationship_type,
        )
    except GraphError as e:
        return _failed("list_relationships", e)
    items = [r.model_dump() for r in relationships]
    return {"success": True, "id": params.id, "relationships": items, "count": len(items)}


def main():
    """Main entry point for the associate MCP server."""
    logging.basicConfig(
        level=settings.server.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    logger.info(f"Starting associate MCP server ({settings.server.transport}), store backend: {settings.store.backend}")

    if settings.server.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport="http", host=settings.server.host, port=settings.server.port, stateless_http=True)


if __name__ == "__main__":
    main()
