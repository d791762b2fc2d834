"""Entity repositories: CRUD per node kind with invariant enforcement."""

from .base import DEFAULT_LIMIT, MAX_LIMIT
from .memories import MemoryRepository
from .plans import PlanRepository
from .tasks import TaskRepository
from .zones import ZoneRepository

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "MemoryRepository",
    "PlanRepository",
    "TaskRepository",
    "ZoneRepository",
]
