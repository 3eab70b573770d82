"""Unit tests for placement, task, snapshot and payload models."""

import pytest
from pydantic import ValidationError

from boardsync.errors import TokenConsumedError
from boardsync.models import (
    BoardPayload,
    ContainerKind,
    ContainerPayload,
    Placement,
    PlacementTarget,
    RollbackToken,
    Snapshot,
    TargetKind,
    Task,
    TaskPayload,
    normalize_indices,
)


def backlog_task(task_id: str, index: int) -> Task:
    return Task(
        id=task_id,
        placement=Placement(kind=ContainerKind.BACKLOG, container_id="backlog", index=index),
    )


class TestPlacement:
    """Tests for Placement."""

    def test_placement_is_frozen(self):
        """Placements cannot be edited in place."""
        placement = Placement(kind=ContainerKind.BACKLOG, container_id="backlog", index=1)
        with pytest.raises(ValidationError):
            placement.index = 3

    def test_negative_index_rejected(self):
        """Index must be zero or more."""
        with pytest.raises(ValidationError):
            Placement(kind=ContainerKind.BACKLOG, container_id="backlog", index=-1)

    def test_at_returns_new_index(self):
        """at() keeps the container and changes the index."""
        placement = Placement(
            kind=ContainerKind.SPRINT_COLUMN, container_id="c1", index=0, sprint_id="s1"
        )
        moved = placement.at(4)
        assert moved.index == 4
        assert moved.container_id == "c1"
        assert moved.sprint_id == "s1"
        assert placement.index == 0


class TestPlacementTarget:
    """Tests for PlacementTarget."""

    def test_column_placement_carries_sprint(self):
        """A column placement records the parent sprint."""
        column = PlacementTarget(id="c1", kind=TargetKind.COLUMN, parent_id="s1")
        placement = column.placement(2)
        assert placement.kind == ContainerKind.SPRINT_COLUMN
        assert placement.sprint_id == "s1"
        assert placement.index == 2

    def test_sprint_cannot_hold_tasks(self):
        """Sprints are parents of columns, not containers."""
        sprint = PlacementTarget(id="s1", kind=TargetKind.SPRINT)
        assert not sprint.is_container
        with pytest.raises(ValueError, match="sprint"):
            sprint.placement(0)


class TestContainerPayload:
    """Tests for ContainerPayload.to_target acceptance rules."""

    def test_completed_sprint_rejects_placements(self):
        """A completed sprint does not accept placements by default."""
        target = ContainerPayload(id="s2", kind="sprint", status="completed").to_target()
        assert target.accepts_placements is False

    def test_active_sprint_accepts_placements(self):
        target = ContainerPayload(id="s1", kind="sprint", status="active").to_target()
        assert target.accepts_placements is True

    def test_explicit_flag_wins(self):
        """acceptsPlacements overrides the status-derived default."""
        target = ContainerPayload.model_validate(
            {"id": "s2", "kind": "sprint", "status": "completed", "acceptsPlacements": True}
        ).to_target()
        assert target.accepts_placements is True

    def test_done_column_from_title(self):
        target = ContainerPayload(id="c2", kind="column", parent_id="s1", title="Done").to_target()
        assert target.is_done is True
        assert target.is_in_progress is False

    def test_explicit_done_flag_wins(self):
        """isDone overrides the title-derived default."""
        target = ContainerPayload.model_validate(
            {"id": "c9", "kind": "column", "parentId": "s1", "title": "Shipped", "isDone": True}
        ).to_target()
        assert target.is_done is True

    def test_in_progress_column_from_title(self):
        target = ContainerPayload.model_validate(
            {"id": "cp", "kind": "column", "parentId": "s1", "title": "In Progress"}
        ).to_target()
        assert target.is_in_progress is True
        assert target.is_done is False


class TestTaskPayload:
    """Tests for TaskPayload parsing."""

    def test_camel_case_aliases(self):
        """camelCase API fields map onto snake_case attributes."""
        item = TaskPayload.model_validate(
            {"id": "t1", "sprintId": "s1", "sprintColumnId": "c1", "position": 3}
        )
        assert item.sprint_id == "s1"
        assert item.sprint_column_id == "c1"
        assert item.position == 3

    def test_unknown_fields_kept_as_extra(self):
        """Attributes the engine does not model are carried through."""
        item = TaskPayload.model_validate({"id": "t1", "priority": "high"})
        assert item.extra_fields == {"priority": "high"}

    def test_blocked_by_accepts_ids_or_relations(self):
        item = TaskPayload.model_validate(
            {"id": "t1", "blockedBy": ["b0", {"id": "b1", "title": "Backlog one"}]}
        )
        assert item.blocked_by == ["b0", "b1"]
        assert "blockedBy" not in item.extra_fields


class TestSnapshotFromPayload:
    """Tests for Snapshot.from_payload."""

    def test_tasks_placed_in_containers(self, snapshot: Snapshot):
        """Backlog tasks and sprint tasks land in the right containers."""
        assert [t.id for t in snapshot.tasks_in("backlog")] == ["b0", "b1", "t1", "b3"]
        assert [t.id for t in snapshot.tasks_in("c1")] == ["a1", "a2"]
        assert snapshot.tasks_in("c2") == []

    def test_sparse_positions_renumbered(self):
        """Server positions with gaps become contiguous indices."""
        snapshot = Snapshot.from_payload(
            {
                "containers": [{"id": "backlog", "kind": "backlog"}],
                "tasks": [
                    {"id": "x", "position": 1000},
                    {"id": "y", "position": 10},
                    {"id": "z", "position": 500},
                ],
            }
        )
        tasks = snapshot.tasks_in("backlog")
        assert [t.id for t in tasks] == ["y", "z", "x"]
        assert [t.placement.index for t in tasks] == [0, 1, 2]

    def test_sprint_without_column_uses_first_column(self):
        """A task assigned to a sprint but no column goes to the first column."""
        snapshot = Snapshot.from_payload(
            {
                "containers": [
                    {"id": "s1", "kind": "sprint"},
                    {"id": "late", "kind": "column", "parentId": "s1", "position": 1},
                    {"id": "early", "kind": "column", "parentId": "s1", "position": 0},
                ],
                "tasks": [{"id": "t", "sprintId": "s1"}],
            }
        )
        assert snapshot.tasks["t"].container_id == "early"

    def test_task_with_unknown_container_skipped(self):
        """Tasks pointing at a missing column are left out."""
        snapshot = Snapshot.from_payload(
            {
                "containers": [{"id": "backlog", "kind": "backlog"}],
                "tasks": [{"id": "t", "sprintId": "s9", "sprintColumnId": "c9"}],
            }
        )
        assert "t" not in snapshot.tasks

    def test_orphan_column_rejected(self):
        """A column must belong to an existing sprint."""
        with pytest.raises(ValueError, match="must belong to an existing sprint"):
            Snapshot.from_payload(
                {"containers": [{"id": "c1", "kind": "column", "parentId": "nope"}]}
            )

    def test_second_backlog_rejected(self):
        with pytest.raises(ValueError, match="single backlog"):
            Snapshot.from_payload(
                BoardPayload(
                    containers=[
                        ContainerPayload(id="b1", kind="backlog"),
                        ContainerPayload(id="b2", kind="backlog"),
                    ]
                )
            )

    def test_snapshot_is_read_only(self, snapshot: Snapshot):
        """The task map of a snapshot cannot be modified."""
        with pytest.raises(TypeError):
            snapshot.tasks["new"] = backlog_task("new", 0)  # type: ignore[index]


class TestSnapshotQueries:
    """Tests for derived snapshot views."""

    def test_tasks_in_breaks_ties_by_id(self):
        """Equal indices are ordered by task id, not insertion order."""
        snapshot = Snapshot(
            tasks={"b": backlog_task("b", 0), "a": backlog_task("a", 0)},
            targets={"backlog": PlacementTarget(id="backlog", kind=TargetKind.BACKLOG)},
        )
        assert [t.id for t in snapshot.tasks_in("backlog")] == ["a", "b"]

    def test_accepts_checks_parent_sprint(self, snapshot: Snapshot):
        """A column of a completed sprint does not accept placements."""
        assert snapshot.accepts("c1")
        assert not snapshot.accepts("c3")
        assert not snapshot.accepts("missing")

    def test_evolve_bumps_version(self, snapshot: Snapshot):
        successor = snapshot.evolve()
        assert successor.version == snapshot.version + 1
        assert successor.tasks == snapshot.tasks

    def test_backlog_id(self, snapshot: Snapshot):
        assert snapshot.backlog_id == "backlog"


class TestNormalizeIndices:
    """Tests for normalize_indices."""

    def test_preferred_task_wins_tie(self):
        """On an index collision the preferred task keeps the earlier slot."""
        tasks = {"a": backlog_task("a", 1), "z": backlog_task("z", 1), "m": backlog_task("m", 0)}
        result = normalize_indices(tasks, preferred={"z"})
        order = sorted(result.values(), key=lambda t: t.placement.index)
        assert [t.id for t in order] == ["m", "z", "a"]

    def test_unchanged_tasks_not_copied(self):
        """Tasks already at the right index are reused as-is."""
        task = backlog_task("a", 0)
        assert normalize_indices({"a": task})["a"] is task


class TestRollbackToken:
    """Tests for RollbackToken single use."""

    def test_consume_twice_raises(self):
        placement = Placement(kind=ContainerKind.BACKLOG, container_id="backlog", index=0)
        token = RollbackToken(
            intent_id="i1",
            task_id="t1",
            prior_placement=placement,
            prior_placed_by=None,
            prior_snapshot_version=1,
            expected_placement=placement,
        )
        token.consume()
        assert token.consumed
        with pytest.raises(TokenConsumedError):
            token.consume()
