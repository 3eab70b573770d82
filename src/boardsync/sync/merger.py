"""Reconciliation of server data into the snapshot store."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ..models import BoardPayload, PlacementTarget, Snapshot, Task, TaskPayload, normalize_indices
from ..models.snapshot import task_from_payload, validate_targets
from ..services.optimistic_applier import move_task
from ..services.snapshot_store import SnapshotStore
from .ledger import MoveLedger

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Counts from one reconciliation pass."""

    adopted: int = 0  # Server placement taken as-is
    kept: int = 0  # Local optimistic placement kept (move in flight)
    inserted: int = 0  # New on the server
    removed: int = 0  # Gone from the server
    dropped: int = 0  # Container no longer exists

    @property
    def changed(self) -> bool:
        return bool(self.adopted or self.inserted or self.removed or self.dropped)


class ReconciliationMerger:
    """Merges server-confirmed board data without clobbering in-flight moves.

    For every task with an outstanding ledger entry the local optimistic
    placement wins; for every other task the server is authoritative.
    """

    def __init__(self, store: SnapshotStore, ledger: MoveLedger) -> None:
        self.store = store
        self.ledger = ledger

    def merge(self, fragment: Snapshot | BoardPayload | Mapping[str, Any]) -> MergeResult:
        """Merge a full board refresh into the store.

        Args:
            fragment: Server data, either parsed or as the raw payload shape

        Returns:
            MergeResult with per-category counts
        """
        if not isinstance(fragment, Snapshot):
            fragment = Snapshot.from_payload(fragment)

        local = self.store.get()
        pending = self.ledger.pending_task_ids()
        result = MergeResult()

        targets = self._merge_targets(local, fragment, pending)

        tasks: dict[str, Task] = {}
        for task_id, server_task in fragment.tasks.items():
            local_task = local.get_task(task_id)
            if local_task is None:
                tasks[task_id] = server_task
                result.inserted += 1
            elif task_id in pending:
                tasks[task_id] = local_task.with_attributes_of(server_task)
                result.kept += 1
            else:
                tasks[task_id] = server_task
                if local_task.placement != server_task.placement:
                    result.adopted += 1

        for task_id, local_task in local.tasks.items():
            if task_id in fragment.tasks:
                continue
            if task_id in pending:
                tasks[task_id] = local_task
                result.kept += 1
            else:
                logger.debug("Task removed remotely: %s", task_id)
                result.removed += 1

        for task_id, task in list(tasks.items()):
            if task.container_id not in targets:
                logger.warning(
                    "Dropping task %s: container %s no longer exists", task_id, task.container_id
                )
                del tasks[task_id]
                result.dropped += 1

        self.store.replace(
            local.evolve(tasks=normalize_indices(tasks, preferred=pending), targets=targets)
        )
        logger.info(
            "Merged refresh: adopted=%d kept=%d inserted=%d removed=%d dropped=%d",
            result.adopted,
            result.kept,
            result.inserted,
            result.removed,
            result.dropped,
        )
        return result

    def merge_task(self, server_task: Task | TaskPayload) -> bool:
        """Merge one server-confirmed task, leaving every other task's placement alone.

        Followers in the affected containers are reindexed. Skipped while the
        task has an outstanding move.

        Returns:
            True if the store was updated.
        """
        local = self.store.get()
        if isinstance(server_task, TaskPayload):
            converted = task_from_payload(server_task, local.targets)
            if converted is None:
                logger.warning("Server task %s has an unknown container", server_task.id)
                return False
            server_task = converted

        if server_task.id in self.ledger:
            logger.debug("merge_task skipped, move still pending: %s", server_task.id)
            return False
        if server_task.container_id not in local.targets:
            logger.warning(
                "Server task %s has an unknown container: %s",
                server_task.id,
                server_task.container_id,
            )
            return False

        local_task = local.get_task(server_task.id)
        tasks = dict(local.tasks)
        if local_task is None:
            tasks[server_task.id] = server_task
            tasks = normalize_indices(tasks, preferred={server_task.id})
        else:
            tasks[server_task.id] = server_task.placed(local_task.placement, local_task.placed_by)
            tasks = move_task(tasks, server_task.id, server_task.placement, None)

        self.store.replace(local.evolve(tasks=tasks))
        logger.info(
            "Reconciled %s to server placement %s[%d]",
            server_task.id,
            server_task.container_id,
            server_task.placement.index,
        )
        return True

    @staticmethod
    def _merge_targets(
        local: Snapshot, fragment: Snapshot, pending: frozenset[str]
    ) -> dict[str, PlacementTarget]:
        """Server targets, plus local ones still holding tasks with pending moves."""
        targets = dict(fragment.targets)
        for task_id in pending:
            task = local.get_task(task_id)
            if task is None or task.container_id in targets:
                continue
            target = local.get_target(task.container_id)
            if target is None:
                continue
            targets[target.id] = target
            if target.parent_id and target.parent_id not in targets:
                parent = local.get_target(target.parent_id)
                if parent is not None:
                    targets[parent.id] = parent
        validate_targets(targets)
        return targets
