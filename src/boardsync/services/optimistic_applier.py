"""Optimistic application and conditional rollback of move intents."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from ..errors import UnknownTargetError, UnknownTaskError
from ..models import MoveIntent, Placement, RollbackOutcome, RollbackToken, Task
from .snapshot_store import SnapshotStore

logger = logging.getLogger(__name__)


def _ordered(tasks: Mapping[str, Task], container_id: str, exclude: str) -> list[Task]:
    return sorted(
        (t for t in tasks.values() if t.container_id == container_id and t.id != exclude),
        key=lambda t: (t.placement.index, t.id),
    )


def move_task(
    tasks: Mapping[str, Task],
    task_id: str,
    placement: Placement,
    placed_by: str | None,
) -> dict[str, Task]:
    """Move one task and return the new task map.

    The task is taken out of its container (followers close the gap) and
    inserted into the target container at ``placement.index``, clamped to
    the container length (followers shift up). Both containers end up with
    contiguous zero-based indices; every other container is untouched.
    """
    task = tasks[task_id]
    result = dict(tasks)

    source = _ordered(tasks, task.container_id, exclude=task_id)
    if placement.container_id == task.container_id:
        destination = source
    else:
        for index, member in enumerate(source):
            if member.placement.index != index:
                result[member.id] = member.placed(member.placement.at(index), member.placed_by)
        destination = _ordered(tasks, placement.container_id, exclude=task_id)

    index = max(0, min(placement.index, len(destination)))
    destination.insert(index, task.placed(placement.at(index), placed_by))

    for position, member in enumerate(destination):
        if member.id == task_id:
            result[member.id] = member
        elif member.placement.index != position:
            result[member.id] = member.placed(member.placement.at(position), member.placed_by)
    return result


class OptimisticApplier:
    """Applies move intents to the store immediately and undoes them on demand."""

    def __init__(self, store: SnapshotStore) -> None:
        self.store = store

    def apply(self, intent: MoveIntent) -> RollbackToken:
        """Apply an intent to the store and return its rollback token.

        Raises:
            UnknownTaskError: The task disappeared since the intent was built
            UnknownTargetError: The target container disappeared
        """
        snapshot = self.store.get()
        task = snapshot.get_task(intent.task_id)
        if task is None:
            raise UnknownTaskError(f"Task not found: {intent.task_id}", task_id=intent.task_id)
        if snapshot.get_target(intent.to_placement.container_id) is None:
            raise UnknownTargetError(
                f"Unknown target: {intent.to_placement.container_id}", task_id=intent.task_id
            )

        tasks = move_task(snapshot.tasks, intent.task_id, intent.to_placement, intent.id)
        next_snapshot = snapshot.evolve(tasks=tasks)

        token = RollbackToken(
            intent_id=intent.id,
            task_id=intent.task_id,
            prior_placement=task.placement,
            prior_placed_by=task.placed_by,
            prior_snapshot_version=snapshot.version,
            expected_placement=tasks[intent.task_id].placement,
        )
        self.store.replace(next_snapshot)
        logger.info(
            "Applied move %s: %s -> %s[%d]",
            intent.id,
            intent.task_id,
            token.expected_placement.container_id,
            token.expected_placement.index,
        )
        return token

    def rollback(self, token: RollbackToken) -> RollbackOutcome:
        """Undo an optimistic apply if nothing newer owns the task.

        Compare-and-swap: the task is reverted only while it is still the
        placement this token's intent produced (same intent stamp, same
        container). Its index is not compared, since moves of other tasks
        legitimately shift it.

        Returns:
            REVERTED, STALE_NOOP when a newer move owns the task, or
            TARGET_GONE when the prior container no longer exists

        Raises:
            TokenConsumedError: If the token was already used
        """
        token.consume()

        snapshot = self.store.get()
        task = snapshot.get_task(token.task_id)
        if (
            task is None
            or task.placed_by != token.intent_id
            or task.container_id != token.expected_placement.container_id
        ):
            logger.info("Stale rollback ignored for %s (intent %s)", token.task_id, token.intent_id)
            return RollbackOutcome.STALE_NOOP

        if snapshot.get_target(token.prior_placement.container_id) is None:
            logger.warning(
                "Rollback target %s no longer exists, keeping %s in place",
                token.prior_placement.container_id,
                token.task_id,
            )
            return RollbackOutcome.TARGET_GONE

        tasks = move_task(
            snapshot.tasks, token.task_id, token.prior_placement, token.prior_placed_by
        )
        self.store.replace(snapshot.evolve(tasks=tasks))
        logger.info(
            "Rolled back %s to %s[%d]",
            token.task_id,
            token.prior_placement.container_id,
            token.prior_placement.index,
        )
        return RollbackOutcome.REVERTED

    def discard(self, token: RollbackToken) -> None:
        """Consume a token without rolling back (move confirmed)."""
        token.consume()
