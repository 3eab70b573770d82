"""Immutable board snapshot."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from .payload import BoardPayload, TaskPayload
from .placement import PlacementTarget, TargetKind
from .task import Task

logger = logging.getLogger(__name__)


def _sort_key(task: Task) -> tuple[int, str]:
    return (task.placement.index, task.id)


@dataclass(frozen=True)
class Snapshot:
    """One version of the board: every task and every placement target.

    Per-container task lists are never stored; ``tasks_in`` derives them by
    filtering the task map so there is a single source of truth for order.
    """

    tasks: Mapping[str, Task]
    targets: Mapping[str, PlacementTarget]
    version: int = 1

    def __post_init__(self) -> None:
        # Read-only views so a snapshot cannot be edited in place
        object.__setattr__(self, "tasks", MappingProxyType(dict(self.tasks)))
        object.__setattr__(self, "targets", MappingProxyType(dict(self.targets)))

    @classmethod
    def empty(cls) -> Snapshot:
        return cls(tasks={}, targets={}, version=0)

    @classmethod
    def from_payload(
        cls, payload: BoardPayload | Mapping[str, Any], version: int = 1
    ) -> Snapshot:
        """Create a Snapshot from a board-fetch payload.

        Server positions may be sparse, so indices are renumbered 0..n-1 per
        container keeping the server's relative order.

        Raises:
            ValueError: If the containers do not form a valid board tree.
        """
        if not isinstance(payload, BoardPayload):
            payload = BoardPayload.model_validate(payload)

        targets = {c.id: c.to_target() for c in payload.containers}
        validate_targets(targets)

        tasks: dict[str, Task] = {}
        for item in payload.tasks:
            task = task_from_payload(item, targets)
            if task is None:
                logger.warning("Skipping task with unknown container: %s", item.id)
                continue
            tasks[task.id] = task

        return cls(tasks=normalize_indices(tasks), targets=targets, version=version)

    # --- Lookups ---

    def get_task(self, task_id: str) -> Task | None:
        return self.tasks.get(task_id)

    def get_target(self, target_id: str) -> PlacementTarget | None:
        return self.targets.get(target_id)

    def tasks_in(self, container_id: str) -> list[Task]:
        """Tasks in a container ordered by index, ties broken by task id."""
        return sorted(
            (t for t in self.tasks.values() if t.container_id == container_id),
            key=_sort_key,
        )

    @property
    def backlog_id(self) -> str | None:
        for target in self.targets.values():
            if target.kind == TargetKind.BACKLOG:
                return target.id
        return None

    def columns_of(self, sprint_id: str) -> list[PlacementTarget]:
        """Columns of a sprint in display order."""
        return _columns_of(self.targets, sprint_id)

    def accepts(self, target_id: str) -> bool:
        """Whether a target, and its parent sprint if any, accept placements."""
        target = self.targets.get(target_id)
        if target is None or not target.accepts_placements:
            return False
        if target.parent_id is not None:
            parent = self.targets.get(target.parent_id)
            return parent is not None and parent.accepts_placements
        return True

    def placements(self) -> dict[str, tuple[str, int]]:
        """Map task id to ``(container_id, index)``."""
        return {t.id: (t.container_id, t.placement.index) for t in self.tasks.values()}

    # --- Successors ---

    def evolve(
        self,
        tasks: Mapping[str, Task] | None = None,
        targets: Mapping[str, PlacementTarget] | None = None,
    ) -> Snapshot:
        """Return the next version with the given tasks and/or targets."""
        return Snapshot(
            tasks=self.tasks if tasks is None else tasks,
            targets=self.targets if targets is None else targets,
            version=self.version + 1,
        )


def _columns_of(targets: Mapping[str, PlacementTarget], sprint_id: str) -> list[PlacementTarget]:
    return sorted(
        (t for t in targets.values() if t.kind == TargetKind.COLUMN and t.parent_id == sprint_id),
        key=lambda t: (t.position, t.id),
    )


def validate_targets(targets: Mapping[str, PlacementTarget]) -> None:
    """Validate that targets form a tree: backlog/sprints on top, columns below sprints."""
    backlogs = [t.id for t in targets.values() if t.kind == TargetKind.BACKLOG]
    if len(backlogs) > 1:
        raise ValueError(f"A board has a single backlog, found: {', '.join(sorted(backlogs))}")

    for target in targets.values():
        if target.kind == TargetKind.COLUMN:
            parent = targets.get(target.parent_id) if target.parent_id else None
            if parent is None or parent.kind != TargetKind.SPRINT:
                raise ValueError(f"Column '{target.id}' must belong to an existing sprint")
        elif target.parent_id is not None:
            raise ValueError(f"{target.kind.value.title()} '{target.id}' cannot have a parent")


def task_from_payload(
    item: TaskPayload, targets: Mapping[str, PlacementTarget]
) -> Task | None:
    """Convert a wire task to a Task, resolving its container.

    A task assigned to a sprint without a column lands in the sprint's first
    column. Returns None when no container can be resolved.
    """
    target: PlacementTarget | None = None
    if item.sprint_column_id is not None:
        target = targets.get(item.sprint_column_id)
    elif item.sprint_id is not None:
        columns = _columns_of(targets, item.sprint_id)
        target = columns[0] if columns else None
    else:
        target = next((t for t in targets.values() if t.kind == TargetKind.BACKLOG), None)

    if target is None or not target.is_container:
        return None

    return Task(
        id=item.id,
        placement=target.placement(max(item.position, 0)),
        title=item.title,
        type=item.type,
        assignees=item.assignees,
        blocked_by=item.blocked_by,
        extra=item.extra_fields,
    )


def normalize_indices(
    tasks: Mapping[str, Task], preferred: Collection[str] = ()
) -> dict[str, Task]:
    """Renumber every container's tasks to a contiguous 0..n-1 sequence.

    Order is kept by current index; on equal indices tasks listed in
    ``preferred`` come first, then task id decides.
    """
    by_container: dict[str, list[Task]] = defaultdict(list)
    for task in tasks.values():
        by_container[task.container_id].append(task)

    result: dict[str, Task] = {}
    for members in by_container.values():
        members.sort(key=lambda t: (t.placement.index, t.id not in preferred, t.id))
        for index, task in enumerate(members):
            if task.placement.index != index:
                task = task.placed(task.placement.at(index), task.placed_by)
            result[task.id] = task
    return result

