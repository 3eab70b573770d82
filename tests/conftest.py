"""Shared fixtures for placement engine tests."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from boardsync.models import BoardPayload, Snapshot, TaskPayload
from boardsync.services import CollectingNotifier, OptimisticApplier, SnapshotStore
from boardsync.sync import MoveLedger, ReconciliationMerger, SyncCoordinator


def make_payload() -> dict[str, Any]:
    """Board with a backlog, an active sprint (c1, c2) and a completed sprint (c3).

    Backlog: b0, b1, t1, b3 (t1 at index 2)
    c1: a1, a2
    c2: (empty)
    c3: d1
    """
    return {
        "containers": [
            {"id": "backlog", "kind": "backlog", "title": "Backlog"},
            {"id": "s1", "kind": "sprint", "title": "Sprint 1", "status": "active"},
            {"id": "c1", "kind": "column", "parentId": "s1", "position": 0, "title": "To Do"},
            {"id": "c2", "kind": "column", "parentId": "s1", "position": 1, "title": "Done"},
            {"id": "s2", "kind": "sprint", "title": "Sprint 0", "status": "completed"},
            {"id": "c3", "kind": "column", "parentId": "s2", "position": 0, "title": "To Do"},
        ],
        "tasks": [
            {"id": "b0", "title": "Backlog zero", "position": 0},
            {"id": "b1", "title": "Backlog one", "position": 1},
            {"id": "t1", "title": "Fix login", "position": 2},
            {"id": "b3", "title": "Backlog three", "position": 3},
            {"id": "a1", "title": "Sprint a1", "sprintId": "s1", "sprintColumnId": "c1", "position": 0},
            {"id": "a2", "title": "Sprint a2", "sprintId": "s1", "sprintColumnId": "c1", "position": 1},
            {"id": "d1", "title": "Old work", "sprintId": "s2", "sprintColumnId": "c3", "position": 0},
        ],
    }


def assert_board_invariants(snapshot: Snapshot) -> None:
    """Contiguous 0..n-1 indices per container and exactly one container per task."""
    seen: dict[str, str] = {}
    for container_id in snapshot.targets:
        tasks = snapshot.tasks_in(container_id)
        assert [t.placement.index for t in tasks] == list(range(len(tasks))), container_id
        for task in tasks:
            assert task.id not in seen, f"{task.id} in {seen.get(task.id)} and {container_id}"
            seen[task.id] = container_id
    assert set(seen) == set(snapshot.tasks)


async def settle() -> None:
    """Let background tasks run until they block."""
    for _ in range(5):
        await asyncio.sleep(0)


class FakeBoardApi:
    """In-memory board API whose move calls stay pending until resolved by the test."""

    def __init__(self, payload: dict[str, Any] | None = None) -> None:
        self.payload = payload if payload is not None else make_payload()
        self.fetch_count = 0
        self.calls: list[tuple[str, tuple[Any, ...], asyncio.Future]] = []

    async def fetch_board(self, board_id: str) -> BoardPayload:
        self.fetch_count += 1
        return BoardPayload.model_validate(self.payload)

    async def move_to_backlog(self, task_id, source_sprint_id, position=None):
        return await self._call("move_to_backlog", task_id, source_sprint_id, position)

    async def move_to_sprint(self, task_id, sprint_id):
        return await self._call("move_to_sprint", task_id, sprint_id)

    async def move_to_column(self, task_id, sprint_id, column_id, position=None):
        return await self._call("move_to_column", task_id, sprint_id, column_id, position)

    async def reorder_task(self, task_id, position):
        return await self._call("reorder_task", task_id, position)

    async def _call(self, name: str, *args: Any) -> TaskPayload | None:
        future = asyncio.get_running_loop().create_future()
        self.calls.append((name, args, future))
        return await future


@pytest.fixture
def payload() -> dict[str, Any]:
    return make_payload()


@pytest.fixture
def snapshot(payload: dict[str, Any]) -> Snapshot:
    return Snapshot.from_payload(payload)


@pytest.fixture
def store(snapshot: Snapshot) -> SnapshotStore:
    return SnapshotStore(snapshot)


@pytest.fixture
def applier(store: SnapshotStore) -> OptimisticApplier:
    return OptimisticApplier(store)


@pytest.fixture
def ledger() -> MoveLedger:
    return MoveLedger()


@pytest.fixture
def merger(store: SnapshotStore, ledger: MoveLedger) -> ReconciliationMerger:
    return ReconciliationMerger(store, ledger)


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def coordinator(
    store: SnapshotStore,
    applier: OptimisticApplier,
    merger: ReconciliationMerger,
    ledger: MoveLedger,
    notifier: CollectingNotifier,
) -> SyncCoordinator:
    return SyncCoordinator(store, applier, merger, ledger, notifier)


@pytest.fixture
def check_invariants() -> Callable[[Snapshot], None]:
    return assert_board_invariants
