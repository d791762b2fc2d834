"""
Error taxonomy for the graph memory engine.

Every error carries a machine-readable ``reason`` alongside its message so the
tool server and the HTTP surface can report failures without string matching.
Only the connector's startup path retries; everything else is reported to the
caller and the server keeps serving.
"""


class GraphError(Exception):
    """Base class for all engine errors."""

    reason = "graph_error"

    def to_dict(self) -> dict[str, str]:
        return {"reason": self.reason, "message": str(self)}


class StoreError(GraphError):
    """The backing store rejected or failed a statement."""

    reason = "store_error"


class StoreUnavailableError(StoreError):
    """A single connection attempt to the backing store failed (retryable)."""

    reason = "store_unavailable"


class StoreConnectionError(GraphError):
    """Backing store unreachable after the retry policy was exhausted."""

    reason = "store_unavailable"

    def __init__(self, message: str, attempts: int = 0, last_error: BaseException | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class SchemaBootstrapError(GraphError):
    """Index/constraint creation failed. Fatal, never retried."""

    reason = "schema_bootstrap_failed"


class ConnectionCancelledError(GraphError):
    """The cancel signal fired while waiting to reconnect."""

    reason = "cancelled"


class InvalidInputError(GraphError):
    """Missing or malformed field, bad enum value, incompatible endpoints."""

    reason = "validation_error"


class NotFoundError(GraphError):
    """An update/delete (or a referenced id) does not exist."""

    reason = "not_found"

    def __init__(self, kind: str, node_id: str):
        super().__init__(f"{kind} not found: {node_id}")
        self.kind = kind
        self.node_id = node_id


class IsolationViolationError(GraphError):
    """An operation tried to act across zone boundaries."""

    reason = "isolation_violation"


class ZoneNotEmptyError(InvalidInputError):
    """Deleting a zone that still holds plans, tasks or memories without cascade."""

    reason = "zone_not_empty"
