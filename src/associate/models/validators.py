"""Shared Pydantic types and validators for reuse across models.

Centralises tag normalisation, id constraints, and the Literal enums for
statuses, memory types, relationship types and traversal directions so every
model speaks the same language.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, get_args

from pydantic import AfterValidator, BeforeValidator, Field

# ---------------------------------------------------------------------------
# Tag normalisation
# ---------------------------------------------------------------------------


def normalize_tags(v: Any) -> list[str]:
    """Accept ``str | list | None`` and return a clean, de-duplicated ``list[str]``.

    * ``"a, b, c"`` → ``["a", "b", "c"]``
    * ``["a", None, " b ", "a"]`` → ``["a", "b"]``
    * ``None`` → ``[]``
    """
    if v is None:
        return []
    if isinstance(v, str):
        items = [t.strip() for t in v.split(",")]
    elif isinstance(v, (list, tuple, set, frozenset)):
        items = [str(item).strip() for item in v if item is not None]
    else:
        return []
    # Tags are a set: keep first occurrence, drop blanks
    return list(dict.fromkeys(t for t in items if t))


Tags = Annotated[list[str], BeforeValidator(normalize_tags)]
"""Flexible tag input: accepts str, list or None and always outputs list[str]."""


def normalize_id_list(v: Any) -> list[str]:
    """Accept a single id, a comma string or a list of ids; drop blanks and duplicates."""
    return normalize_tags(v)


IdList = Annotated[list[str], BeforeValidator(normalize_id_list)]


# ---------------------------------------------------------------------------
# String constraints
# ---------------------------------------------------------------------------


def _not_blank(v: str) -> str:
    if not v.strip():
        raise ValueError("must not be blank")
    return v


NonBlankStr = Annotated[str, Field(min_length=1), AfterValidator(_not_blank)]
"""Required text field (content/name) that may not be empty or whitespace."""

NodeId = Annotated[str, Field(min_length=1)]
"""Non-empty node identifier."""


# ---------------------------------------------------------------------------
# Literal enums
# ---------------------------------------------------------------------------

PlanStatus = Literal["draft", "active", "completed", "archived"]
TaskStatus = Literal["pending", "in_progress", "completed", "cancelled", "blocked"]
MemoryType = Literal["Note", "Repository", "Memory"]
NodeLabel = Literal["Zone", "Plan", "Task", "Memory"]
RelationType = Literal[
    "BELONGS_TO",
    "PART_OF",
    "DEPENDS_ON",
    "BLOCKS",
    "FOLLOWS",
    "RELATES_TO",
    "REFERENCES",
    "IMPLEMENTS",
]
Direction = Literal["incoming", "outgoing", "both"]

PLAN_STATUSES: tuple[str, ...] = get_args(PlanStatus)
TASK_STATUSES: tuple[str, ...] = get_args(TaskStatus)
MEMORY_TYPES: tuple[str, ...] = get_args(MemoryType)
DIRECTIONS: tuple[str, ...] = get_args(Direction)

# Keyword accepted on create/update -> relationship type written
RELATION_FIELDS: dict[str, str] = {
    "related_to": "RELATES_TO",
    "references": "REFERENCES",
    "depends_on": "DEPENDS_ON",
    "blocks": "BLOCKS",
    "follows": "FOLLOWS",
    "implements": "IMPLEMENTS",
}
