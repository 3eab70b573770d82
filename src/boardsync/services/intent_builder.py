"""Validation of drag gestures into move intents."""

from __future__ import annotations

import logging

from ..errors import TargetClosedError, TaskBlockedError, UnknownTargetError, UnknownTaskError
from ..models import MoveIntent, Placement, PlacementRequest, Snapshot, TargetKind

logger = logging.getLogger(__name__)


def build_intent(
    snapshot: Snapshot,
    task_id: str,
    request: PlacementRequest,
    from_placement: Placement | None = None,
) -> MoveIntent:
    """Turn a drop location into a validated MoveIntent.

    Pure function: reads the snapshot, never mutates it.

    A task with incomplete blockers cannot enter a done column; entering an
    in-progress column is allowed but the intent carries a warning.

    Dropping on a sprint places the task in that sprint's first column. The
    index is clamped into ``[0, len(target)]``, where ``len(target)`` means
    append; for a move within the task's own container the upper bound is
    ``len - 1`` since the task itself is already counted.

    Args:
        snapshot: Snapshot the gesture was made against
        task_id: Task being dragged
        request: Drop container and index
        from_placement: Where the view believed the task was. The live
            placement in ``snapshot`` wins if they disagree.

    Raises:
        UnknownTaskError: Task is not in the snapshot
        UnknownTargetError: Container is not part of the board
        TargetClosedError: Target (or its sprint) does not accept placements
        TaskBlockedError: Task has incomplete blockers and the target is a done column
    """
    task = snapshot.get_task(task_id)
    if task is None:
        raise UnknownTaskError(f"Task not found: {task_id}", task_id=task_id)

    target = snapshot.get_target(request.container_id)
    if target is None:
        raise UnknownTargetError(f"Unknown target: {request.container_id}", task_id=task_id)

    if target.kind == TargetKind.SPRINT:
        if not snapshot.accepts(target.id):
            raise TargetClosedError(f"Sprint '{target.id}' is closed", task_id=task_id)
        columns = snapshot.columns_of(target.id)
        if not columns:
            raise TargetClosedError(f"Sprint '{target.id}' has no columns", task_id=task_id)
        target = columns[0]

    if not snapshot.accepts(target.id):
        raise TargetClosedError(f"Target '{target.id}' does not accept tasks", task_id=task_id)

    warning = None
    incomplete = _incomplete_blockers(snapshot, task.blocked_by)
    if incomplete and task.container_id != target.id:
        blockers = _blocker_count(incomplete)
        if target.is_done:
            raise TaskBlockedError(
                f"This item is blocked by {blockers}. Complete the blocking items first.",
                task_id=task_id,
            )
        if target.is_in_progress:
            warning = f"This item is blocked by {blockers}. Consider completing them first."
            logger.info("Blocked task %s moved to in-progress column %s", task_id, target.id)

    if from_placement is not None and from_placement != task.placement:
        logger.debug(
            "build_intent: stale source for %s (view=%s, live=%s)",
            task_id,
            from_placement.container_id,
            task.placement.container_id,
        )

    length = len(snapshot.tasks_in(target.id))
    upper = length - 1 if task.container_id == target.id else length
    index = upper if request.index is None else max(0, min(request.index, upper))

    intent = MoveIntent(
        task_id=task_id,
        from_placement=task.placement,
        to_placement=target.placement(index),
        warning=warning,
    )
    logger.debug(
        "Intent %s: %s %s[%d] -> %s[%d]",
        intent.id,
        task_id,
        task.container_id,
        task.placement.index,
        target.id,
        index,
    )
    return intent


def _incomplete_blockers(snapshot: Snapshot, blocked_by: list[str]) -> int:
    """Count blockers not already sitting in a done column.

    Blockers outside the snapshot (other boards) count as incomplete.
    """
    count = 0
    for blocker_id in blocked_by:
        blocker = snapshot.get_task(blocker_id)
        container = snapshot.get_target(blocker.container_id) if blocker else None
        if container is None or not container.is_done:
            count += 1
    return count


def _blocker_count(count: int) -> str:
    return f"{count} incomplete item{'s' if count > 1 else ''}"
