"""
Task ordering inside a plan.

Each PART_OF edge carries a float ``position``. New tasks append at
``max + 1000``; insertions take evenly spaced slots in the gap between their
neighbours, so a move only rewrites the moved tasks. When repeated halving
has collapsed a gap below float resolution the whole plan is respaced.
"""

from ..errors import InvalidInputError, NotFoundError

DEFAULT_POSITION_INCREMENT = 1000.0

# Smallest gap between neighbouring positions before the plan is respaced
MIN_POSITION_GAP = 1e-9


def append_position(max_position: float | None) -> float:
    """Position for a task appended after ``max_position`` (None = empty plan)."""
    if max_position is None:
        return DEFAULT_POSITION_INCREMENT
    return max_position + DEFAULT_POSITION_INCREMENT


def insert_positions(after: float | None, before: float | None, count: int) -> list[float]:
    """
    ``count`` increasing positions strictly between ``after`` and ``before``.

    ``after=None`` means the start of the plan (lower bound 0), ``before=None``
    the end of the plan (increments past ``after``).
    """
    if count <= 0:
        return []
    if before is None:
        base = after if after is not None else 0.0
        return [base + DEFAULT_POSITION_INCREMENT * (i + 1) for i in range(count)]
    lower = after if after is not None else min(0.0, before - DEFAULT_POSITION_INCREMENT)
    gap = (before - lower) / (count + 1)
    return [lower + gap * (i + 1) for i in range(count)]


def respace(count: int) -> list[float]:
    return [DEFAULT_POSITION_INCREMENT * (i + 1) for i in range(count)]


def _collapsed(lower: float | None, candidates: list[float], upper: float | None) -> bool:
    bounded = [p for p in (lower, *candidates, upper) if p is not None]
    return any(b - a < MIN_POSITION_GAP for a, b in zip(bounded, bounded[1:]))


def place_tasks(
    siblings: list[tuple[str, float]],
    task_ids: list[str],
    after_task_id: str | None = None,
    before_task_id: str | None = None,
    default: str = "end",
) -> dict[str, float]:
    """
    Positions for ``task_ids`` (in order) placed among ``siblings``.

    Args:
        siblings: ``(task_id, position)`` of tasks already in the plan, not
            including ``task_ids``
        task_ids: Tasks to place, in their desired order
        after_task_id: Anchor the block right after this sibling
        before_task_id: Anchor the block right before this sibling
        default: ``"end"`` or ``"start"`` when no anchor is given

    Returns:
        New positions keyed by task id. Normally only ``task_ids``; every
        task in the plan when a respace was needed.

    Raises:
        NotFoundError: an anchor is not in the plan
        InvalidInputError: anchors are not adjacent, or an anchor is being moved
    """
    ordered = sorted(siblings, key=lambda item: item[1])
    index = {task_id: i for i, (task_id, _) in enumerate(ordered)}

    for anchor in (after_task_id, before_task_id):
        if anchor is None:
            continue
        if anchor in task_ids:
            raise InvalidInputError(f"Task {anchor} cannot be both moved and used as an anchor")
        if anchor not in index:
            raise NotFoundError("Task in plan", anchor)

    if after_task_id is not None:
        slot = index[after_task_id] + 1
        if before_task_id is not None and index[before_task_id] != slot:
            raise InvalidInputError(f"before_task_id {before_task_id} must directly follow after_task_id {after_task_id}")
    elif before_task_id is not None:
        slot = index[before_task_id]
    else:
        slot = len(ordered) if default == "end" else 0

    lower = ordered[slot - 1][1] if slot > 0 else None
    upper = ordered[slot][1] if slot < len(ordered) else None
    candidates = insert_positions(lower, upper, len(task_ids))

    if not _collapsed(lower, candidates, upper):
        return dict(zip(task_ids, candidates))

    full_order = [t for t, _ in ordered[:slot]] + list(task_ids) + [t for t, _ in ordered[slot:]]
    return dict(zip(full_order, respace(len(full_order))))
