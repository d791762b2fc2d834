"""MCP tool input models.

Each MCP tool function validates its inputs by constructing the
corresponding model: enum checks, limit ranges, tag normalisation and
required-field logic all live here as declarative constraints.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, Field, model_validator

from .validators import (
    Direction,
    IdList,
    MemoryType,
    NodeId,
    NonBlankStr,
    PlanStatus,
    RELATION_FIELDS,
    RelationType,
    Tags,
    TaskStatus,
)

MAX_LIMIT = 500


class RelationListsMixin(BaseModel):
    """Optional relationship lists accepted on create/update."""

    related_to: IdList = []
    references: IdList = []
    depends_on: IdList = []
    blocks: IdList = []
    follows: IdList = []
    implements: IdList = []

    def relations(self) -> dict[str, list[str]]:
        """``{RELATION_TYPE: [target ids]}`` for the lists that were given."""
        return {rel_type: getattr(self, field) for field, rel_type in RELATION_FIELDS.items() if getattr(self, field)}


class PageParams(BaseModel):
    limit: int = Field(default=50, ge=1, le=MAX_LIMIT)
    offset: int = Field(default=0, ge=0)


class GetByIdParams(BaseModel):
    """Validated input for the ``get_*`` / ``delete_*`` MCP tools."""

    id: NodeId


# =============================================================================
# Memories
# =============================================================================


class AddMemoryParams(RelationListsMixin):
    """Validated input for the ``add_memory`` MCP tool."""

    content: NonBlankStr
    type: MemoryType = "Memory"
    zone_id: str | None = None
    tags: Tags = []
    metadata: dict[str, Any] | None = None


class UpdateMemoryParams(RelationListsMixin):
    """Validated input for the ``update_memory`` MCP tool."""

    id: NodeId
    content: NonBlankStr | None = None
    type: MemoryType | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class SearchMemoriesParams(PageParams):
    """Validated input for the ``search_memories`` MCP tool."""

    query: str = ""
    zone_id: str | None = None
    type: MemoryType | None = None
    tags: Tags = []


# =============================================================================
# Plans
# =============================================================================


class CreatePlanParams(RelationListsMixin):
    """Validated input for the ``create_plan`` MCP tool."""

    name: NonBlankStr
    description: str = ""
    status: PlanStatus = "active"
    zone_id: str | None = None
    tags: Tags = []
    metadata: dict[str, Any] | None = None


class UpdatePlanParams(RelationListsMixin):
    """Validated input for the ``update_plan`` MCP tool."""

    id: NodeId
    name: NonBlankStr | None = None
    description: str | None = None
    status: PlanStatus | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class ListPlansParams(PageParams):
    """Validated input for the ``list_plans`` MCP tool."""

    zone_id: str | None = None
    status: PlanStatus | None = None
    tags: Tags = []
    query: str | None = None


# =============================================================================
# Tasks
# =============================================================================


class CreateTaskParams(RelationListsMixin):
    """Validated input for the ``create_task`` MCP tool."""

    content: NonBlankStr
    plan_ids: IdList = Field(min_length=1)
    status: TaskStatus = "pending"
    tags: Tags = []
    metadata: dict[str, Any] | None = None
    after_task_id: str | None = None
    before_task_id: str | None = None


class UpdateTaskParams(RelationListsMixin):
    """Validated input for the ``update_task`` MCP tool."""

    id: NodeId
    content: NonBlankStr | None = None
    status: TaskStatus | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None
    add_plan_ids: IdList = []


class ListTasksParams(PageParams):
    """Validated input for the ``list_tasks`` MCP tool."""

    plan_id: str | None = None
    zone_id: str | None = None
    status: TaskStatus | None = None
    tags: Tags = []
    query: str | None = None

    @model_validator(mode="after")
    def query_without_plan(self) -> Self:
        if self.plan_id and self.query:
            raise ValueError("query cannot be combined with plan_id")
        return self


class ReorderTasksParams(BaseModel):
    """Validated input for the ``reorder_tasks`` MCP tool."""

    plan_id: NodeId
    task_ids: IdList = Field(min_length=1)
    after_task_id: str | None = None
    before_task_id: str | None = None


# =============================================================================
# Zones
# =============================================================================


class CreateZoneParams(BaseModel):
    """Validated input for the ``create_zone`` MCP tool."""

    name: NonBlankStr
    description: str = ""
    tags: Tags = []
    metadata: dict[str, Any] | None = None


class GetZoneParams(BaseModel):
    """Validated input for the ``get_zone`` MCP tool."""

    id: NodeId
    include_contents: bool = False


class UpdateZoneParams(BaseModel):
    """Validated input for the ``update_zone`` MCP tool."""

    id: NodeId
    name: NonBlankStr | None = None
    description: str | None = None
    tags: Tags | None = None
    metadata: dict[str, Any] | None = None


class DeleteZoneParams(BaseModel):
    """Validated input for the ``delete_zone`` MCP tool."""

    id: NodeId
    cascade: bool = False


class ListZonesParams(PageParams):
    """Validated input for the ``list_zones`` MCP tool."""

    query: str | None = None
    tags: Tags = []


# =============================================================================
# Graph
# =============================================================================


class GetRelatedParams(BaseModel):
    """Validated input for the ``get_related`` MCP tool.

    ``depth`` above the traversal ceiling is capped rather than rejected.
    """

    id: NodeId
    relationship_type: RelationType | None = None
    direction: Direction = "both"
    depth: int = Field(default=1, ge=1)
    zone_id: str | None = None


class RelationshipParams(BaseModel):
    """Validated input for ``create_relationship`` / ``delete_relationship``."""

    from_id: NodeId
    to_id: NodeId
    relationship_type: RelationType
    properties: dict[str, Any] | None = None


class ListRelationshipsParams(BaseModel):
    """Validated input for the ``list_relationships`` MCP tool."""

    id: NodeId
    direction: Direction = "both"
    relationship_type: RelationType | None = None
