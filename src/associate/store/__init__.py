"""Backing graph stores and the connector that opens them."""

from .base import EdgeRecord, GraphStore, NodeQuery, NodeRecord, Scope
from .connector import RetryPolicy, backoff_delay, connect, connect_with_retry
from .factory import create_store

__all__ = [
    "EdgeRecord",
    "GraphStore",
    "NodeQuery",
    "NodeRecord",
    "RetryPolicy",
    "Scope",
    "backoff_delay",
    "connect",
    "connect_with_retry",
    "create_store",
]
