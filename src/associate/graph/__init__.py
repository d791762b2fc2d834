"""
Graph layer for the associate engine.

Provides the relationship engine (typed edges, endpoint and zone rules, plan
cascade), task positioning within plans, and breadth-first traversal.
"""

from .positions import DEFAULT_POSITION_INCREMENT, place_tasks
from .relationships import RelationshipEngine
from .traversal import MAX_TRAVERSAL_DEPTH, TraversalEngine

__all__ = [
    "DEFAULT_POSITION_INCREMENT",
    "MAX_TRAVERSAL_DEPTH",
    "RelationshipEngine",
    "TraversalEngine",
    "place_tasks",
]
