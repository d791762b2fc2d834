# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Zone, plan, task, memory and edge CRUD endpoints for the desktop client.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ...engine import GraphEngine
from ...errors import GraphError, NotFoundError
from ...models.validators import (
    IdList,
    MemoryType,
    NonBlankStr,
    PlanStatus,
    RelationType,
    Tags,
    TaskStatus,
)
from ..dependencies import get_engine, http_error

router = APIRouter()
logger = logging.getLogger(__name__)

CONTENTS_LIMIT = 500


# Request Models
class ZoneCreateRequest(BaseModel):
    """Request model for creating a zone."""

    name: NonBlankStr = Field(..., description="Zone name")
    description: str = Field(default="", description="Zone description")
    tags: Tags = Field(default=[], description="Tags to categorize the zone")
    metadata: dict[str, Any] | None = Field(None, description="Opaque key-value data (ui_x, ui_y, ...)")


class ZoneUpdateRequest(BaseModel):
    """Request model for updating a zone. Omitted fields are unchanged."""

    name: NonBlankStr | None = None
    description: str | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class PlanCreateRequest(BaseModel):
    """Request model for creating a plan."""

    name: NonBlankStr = Field(..., description="Plan name")
    description: str = ""
    status: PlanStatus = "active"
    zone_id: str | None = Field(None, description="Zone for the plan; a new zone is created when omitted")
    tags: Tags = []
    metadata: dict[str, Any] | None = None


class PlanUpdateRequest(BaseModel):
    """Request model for updating a plan. Omitted fields are unchanged."""

    name: NonBlankStr | None = None
    description: str | None = None
    status: PlanStatus | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class TaskCreateRequest(BaseModel):
    """Request model for creating a task."""

    content: NonBlankStr = Field(..., description="What needs doing")
    plan_ids: IdList = Field(..., min_length=1, description="Plans the task belongs to")
    status: TaskStatus = "pending"
    tags: Tags = []
    metadata: dict[str, Any] | None = None
    after_task_id: str | None = None
    before_task_id: str | None = None


class TaskUpdateRequest(BaseModel):
    """Request model for updating a task. Omitted fields are unchanged."""

    content: NonBlankStr | None = None
    status: TaskStatus | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None
    add_plan_ids: IdList = []


class ReorderRequest(BaseModel):
    """Request model for moving tasks within a plan."""

    task_ids: IdList = Field(..., min_length=1)
    after_task_id: str | None = None
    before_task_id: str | None = None


class MemoryCreateRequest(BaseModel):
    """Request model for creating a memory."""

    content: NonBlankStr = Field(..., description="The memory content to store")
    type: MemoryType = "Memory"
    zone_id: str | None = Field(None, description="Zone for the memory; the default zone when omitted")
    tags: Tags = []
    metadata: dict[str, Any] | None = None


class MemoryUpdateRequest(BaseModel):
    """Request model for updating a memory. Omitted fields are unchanged."""

    content: NonBlankStr | None = None
    type: MemoryType | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class EdgeRequest(BaseModel):
    """Request model for creating an edge."""

    from_id: NonBlankStr
    to_id: NonBlankStr
    type: RelationType
    properties: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Zones
# ---------------------------------------------------------------------------


@router.get("/zones", tags=["zones"])
async def list_zones(
    query: str | None = Query(None, description="Substring of name or description"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    engine: GraphEngine = Depends(get_engine),
):
    try:
        zones = await engine.zones.list_zones(text=query, limit=limit, offset=offset)
    except GraphError as e:
        raise http_error(e) from e
    return {"zones": [zone.to_output() for zone in zones], "count": len(zones)}


@router.post("/zones", status_code=201, tags=["zones"])
async def create_zone(request: ZoneCreateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        zone = await engine.zones.create(
            name=request.name,
            description=request.description,
            tags=request.tags,
            metadata=request.metadata,
        )
    except GraphError as e:
        raise http_error(e) from e
    return {"zone": zone.to_output()}


@router.get("/zones/{zone_id}", tags=["zones"])
async def get_zone(zone_id: str, engine: GraphEngine = Depends(get_engine)):
    """Get a zone with its counts, plans (with tasks) and memories."""
    try:
        zone = await engine.zones.require(zone_id)
        plans = []
        for plan in await engine.plans.list_plans(zone_id=zone_id, limit=CONTENTS_LIMIT):
            output = plan.to_output()
            output["tasks"] = [entry.to_output() for entry in await engine.plans.tasks_in_plan(plan.id)]
            plans.append(output)
        memories = await engine.memories.list_memories(zone_id=zone_id, limit=CONTENTS_LIMIT)
        counts = await engine.zones.counts(zone_id)
    except GraphError as e:
        raise http_error(e) from e
    return {
        "zone": zone.to_output(),
        "counts": counts,
        "plans": plans,
        "memories": [memory.to_output() for memory in memories],
    }


@router.patch("/zones/{zone_id}", tags=["zones"])
async def update_zone(zone_id: str, request: ZoneUpdateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        zone = await engine.zones.update(zone_id, **request.model_dump(exclude_unset=True))
    except GraphError as e:
        raise http_error(e) from e
    return {"zone": zone.to_output()}


@router.delete("/zones/{zone_id}", tags=["zones"])
async def delete_zone(zone_id: str, cascade: bool = Query(False), engine: GraphEngine = Depends(get_engine)):
    try:
        counts = await engine.zones.delete(zone_id, cascade=cascade)
    except GraphError as e:
        raise http_error(e) from e
    return {"id": zone_id, "deleted": True, **counts}


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


@router.get("/plans", tags=["plans"])
async def list_plans(
    zone_id: str | None = Query(None),
    status: PlanStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    engine: GraphEngine = Depends(get_engine),
):
    try:
        plans = await engine.plans.list_plans(zone_id=zone_id, status=status, limit=limit, offset=offset)
    except GraphError as e:
        raise http_error(e) from e
    return {"plans": [plan.to_output() for plan in plans], "count": len(plans)}


@router.post("/plans", status_code=201, tags=["plans"])
async def create_plan(request: PlanCreateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        plan = await engine.plans.create(**request.model_dump())
    except GraphError as e:
        raise http_error(e) from e
    return {"plan": plan.to_output()}


@router.get("/plans/{plan_id}", tags=["plans"])
async def get_plan(plan_id: str, engine: GraphEngine = Depends(get_engine)):
    try:
        result = await engine.plans.get_with_tasks(plan_id)
    except GraphError as e:
        raise http_error(e) from e
    if result is None:
        raise http_error(NotFoundError("Plan", plan_id))
    plan, tasks = result
    return {"plan": plan.to_output(), "tasks": [entry.to_output() for entry in tasks]}


@router.patch("/plans/{plan_id}", tags=["plans"])
async def update_plan(plan_id: str, request: PlanUpdateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        plan = await engine.plans.update(plan_id, **request.model_dump(exclude_unset=True))
    except GraphError as e:
        raise http_error(e) from e
    return {"plan": plan.to_output()}


@router.delete("/plans/{plan_id}", tags=["plans"])
async def delete_plan(plan_id: str, engine: GraphEngine = Depends(get_engine)):
    try:
        tasks_deleted = await engine.plans.delete(plan_id)
    except GraphError as e:
        raise http_error(e) from e
    return {"id": plan_id, "deleted": True, "tasks_deleted": tasks_deleted}


@router.post("/plans/{plan_id}/reorder", tags=["plans"])
async def reorder_tasks(plan_id: str, request: ReorderRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        tasks = await engine.tasks.reorder(
            plan_id,
            request.task_ids,
            after_task_id=request.after_task_id,
            before_task_id=request.before_task_id,
        )
    except GraphError as e:
        raise http_error(e) from e
    return {"plan_id": plan_id, "tasks": [entry.to_output() for entry in tasks]}


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@router.post("/tasks", status_code=201, tags=["tasks"])
async def create_task(request: TaskCreateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        task = await engine.tasks.create(**request.model_dump())
    except GraphError as e:
        raise http_error(e) from e
    return {"task": task.to_output()}


@router.patch("/tasks/{task_id}", tags=["tasks"])
async def update_task(task_id: str, request: TaskUpdateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        task = await engine.tasks.update(task_id, **request.model_dump(exclude_unset=True))
    except GraphError as e:
        raise http_error(e) from e
    return {"task": task.to_output()}


@router.delete("/tasks/{task_id}", tags=["tasks"])
async def delete_task(task_id: str, engine: GraphEngine = Depends(get_engine)):
    try:
        await engine.tasks.delete(task_id)
    except GraphError as e:
        raise http_error(e) from e
    return {"id": task_id, "deleted": True}


# ---------------------------------------------------------------------------
# Memories
# ---------------------------------------------------------------------------


@router.post("/memories", status_code=201, tags=["memories"])
async def create_memory(request: MemoryCreateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        memory = await engine.memories.create(**request.model_dump())
    except GraphError as e:
        raise http_error(e) from e
    return {"memory": memory.to_output()}


@router.get("/memories/{memory_id}", tags=["memories"])
async def get_memory(memory_id: str, engine: GraphEngine = Depends(get_engine)):
    try:
        memory = await engine.memories.require(memory_id)
    except GraphError as e:
        raise http_error(e) from e
    return {"memory": memory.to_output()}


@router.patch("/memories/{memory_id}", tags=["memories"])
async def update_memory(memory_id: str, request: MemoryUpdateRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        memory = await engine.memories.update(memory_id, **request.model_dump(exclude_unset=True))
    except GraphError as e:
        raise http_error(e) from e
    return {"memory": memory.to_output()}


@router.delete("/memories/{memory_id}", tags=["memories"])
async def delete_memory(memory_id: str, engine: GraphEngine = Depends(get_engine)):
    try:
        await engine.memories.delete(memory_id)
    except GraphError as e:
        raise http_error(e) from e
    return {"id": memory_id, "deleted": True}


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


@router.post("/edges", status_code=201, tags=["edges"])
async def create_edge(request: EdgeRequest, engine: GraphEngine = Depends(get_engine)):
    try:
        edge = await engine.relationships.link(request.from_id, request.to_id, request.type, request.properties)
    except GraphError as e:
        raise http_error(e) from e
    return {"edge": edge.model_dump(exclude_none=True)}


@router.delete("/edges", tags=["edges"])
async def delete_edge(
    from_id: str = Query(...),
    to_id: str = Query(...),
    type: RelationType = Query(...),
    engine: GraphEngine = Depends(get_engine),
):
    try:
        deleted = await engine.relationships.unlink(from_id, to_id, type)
    except GraphError as e:
        raise http_error(e) from e
    return {"deleted": deleted}


