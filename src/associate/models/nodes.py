"""Graph node and relationship models.

Pydantic v2 models for the four node kinds (Zone, Plan, Task, Memory), plus
the read-side views returned by repositories and the traversal engine.

Nodes are persisted as flat property maps: ``metadata`` is stored as a JSON
string (graph stores only hold primitive and list properties) and timestamps
as epoch floats. On the wire timestamps are ISO-8601 strings.
"""

import json
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .validators import Direction, MemoryType, NonBlankStr, PlanStatus, RelationType, Tags, TaskStatus

logger = logging.getLogger(__name__)


def float_to_iso(ts: float) -> str:
    """Convert float timestamp to ISO string (UTC, Z-suffix)."""
    return datetime.fromtimestamp(ts, timezone.utc).isoformat().replace("+00:00", "Z")


def _decode_metadata(raw: Any) -> dict[str, Any]:
    if raw is None or raw == "":
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Discarding undecodable metadata: {raw!r}")
        return {}
    return decoded if isinstance(decoded, dict) else {}


class GraphNode(BaseModel):
    """Fields shared by every node kind."""

    model_config = ConfigDict(extra="ignore")

    LABEL: ClassVar[str] = ""
    # Properties searched by free-text filters
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ()

    id: str
    zone_id: str | None = None
    tags: Tags = []
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: float
    updated_at: float

    @classmethod
    def new(cls, **fields: Any) -> Self:
        """Build a fresh node with a generated id and engine-set timestamps."""
        now = time.time()
        return cls(id=str(uuid.uuid4()), created_at=now, updated_at=now, **fields)

    def touch(self) -> None:
        self.updated_at = max(time.time(), self.created_at)

    def to_props(self) -> dict[str, Any]:
        """Flatten into the property map written to the store."""
        props = self.model_dump()
        props["metadata"] = json.dumps(self.metadata) if self.metadata else ""
        return props

    @classmethod
    def from_props(cls, props: dict[str, Any]) -> Self:
        data = dict(props)
        data["metadata"] = _decode_metadata(data.get("metadata"))
        if data.get("tags") is None:
            data["tags"] = []
        return cls.model_validate(data)

    def to_output(self) -> dict[str, Any]:
        """Wire representation: ISO timestamps and the node kind."""
        data = self.model_dump()
        data["kind"] = self.LABEL
        data["created_at"] = float_to_iso(self.created_at)
        data["updated_at"] = float_to_iso(self.updated_at)
        return data


class Zone(GraphNode):
    """Top-level isolation boundary owning Plans and Memories."""

    LABEL: ClassVar[str] = "Zone"
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("name", "description")

    name: NonBlankStr
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def zone_scopes_itself(cls, data: Any) -> Any:
        # A zone's isolation key is its own id
        if isinstance(data, dict) and "id" in data:
            data = {**data, "zone_id": data["id"]}
        return data


class Plan(GraphNode):
    """Container for ordered Tasks."""

    LABEL: ClassVar[str] = "Plan"
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("name", "description")

    name: NonBlankStr
    description: str = ""
    status: PlanStatus = "active"


class Task(GraphNode):
    """Actionable item ordered within one or more Plans."""

    LABEL: ClassVar[str] = "Task"
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("content",)

    content: NonBlankStr
    status: TaskStatus = "pending"


class Memory(GraphNode):
    """Freeform knowledge unit."""

    LABEL: ClassVar[str] = "Memory"
    TEXT_FIELDS: ClassVar[tuple[str, ...]] = ("content",)

    content: NonBlankStr
    type: MemoryType = "Memory"


NODE_MODELS: dict[str, type[GraphNode]] = {m.LABEL: m for m in (Zone, Plan, Task, Memory)}


def node_from_record(label: str, props: dict[str, Any]) -> GraphNode:
    """Hydrate a store record into the model for its label."""
    try:
        model = NODE_MODELS[label]
    except KeyError:
        raise ValueError(f"Unknown node label: {label!r}") from None
    return model.from_props(props)


# ---------------------------------------------------------------------------
# Read-side views
# ---------------------------------------------------------------------------


class Relationship(BaseModel):
    """A typed, directed edge."""

    from_id: str
    to_id: str
    type: RelationType
    properties: dict[str, Any] = Field(default_factory=dict)
    # Set when listed relative to one endpoint
    direction: Direction | None = None


class RelatedNode(BaseModel):
    """One traversal hit: the hydrated node and how it was reached."""

    node: GraphNode
    relationship_type: str
    direction: Direction
    depth: int

    def to_output(self) -> dict[str, Any]:
        data = self.node.to_output()
        data.update(relationship_type=self.relationship_type, direction=self.direction, depth=self.depth)
        return data


class TaskInPlan(BaseModel):
    """A task with its position and dependencies inside one plan."""

    task: Task
    position: float
    depends_on: list[str] = Field(default_factory=list)
    blocks: list[str] = Field(default_factory=list)

    def to_output(self) -> dict[str, Any]:
        data = self.task.to_output()
        data.update(position=self.position, depends_on=self.depends_on, blocks=self.blocks)
        return data


class PlanMembership(BaseModel):
    """A plan a task belongs to, with the task's position in it."""

    plan: Plan
    position: float

    def to_output(self) -> dict[str, Any]:
        data = self.plan.to_output()
        data["position"] = self.position
        return data
