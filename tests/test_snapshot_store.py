"""Tests for SnapshotStore."""

import logging

import pytest

from boardsync.models import Snapshot
from boardsync.services import SnapshotStore


class TestSnapshotStoreReplace:
    """Tests for get/replace."""

    def test_get_returns_same_handle(self, store: SnapshotStore, snapshot: Snapshot):
        """get() returns the snapshot itself, not a copy."""
        assert store.get() is snapshot

    def test_replace_swaps_and_notifies(self, store: SnapshotStore, snapshot: Snapshot):
        """replace() installs the new snapshot and calls subscribers with it."""
        received: list[Snapshot] = []
        store.subscribe(received.append)

        successor = snapshot.evolve()
        store.replace(successor)

        assert store.get() is successor
        assert received == [successor]

    def test_replace_requires_newer_version(self, store: SnapshotStore, snapshot: Snapshot):
        """Replacing with an older or equal version is refused."""
        with pytest.raises(ValueError, match="must advance"):
            store.replace(snapshot)
        assert store.get() is snapshot

    def test_empty_store(self):
        store = SnapshotStore()
        assert store.get().version == 0
        assert store.tasks_in("backlog") == []

    def test_tasks_in_delegates_to_snapshot(self, store: SnapshotStore):
        assert [t.id for t in store.tasks_in("c1")] == ["a1", "a2"]


class TestSnapshotStoreSubscriptions:
    """Tests for subscribe/unsubscribe/close."""

    def test_unsubscribe_stops_notifications(self, store: SnapshotStore, snapshot: Snapshot):
        received: list[Snapshot] = []
        unsubscribe = store.subscribe(received.append)

        unsubscribe()
        store.replace(snapshot.evolve())

        assert received == []
        # Calling it again is harmless
        unsubscribe()

    def test_failing_subscriber_does_not_block_others(
        self, store: SnapshotStore, snapshot: Snapshot, caplog: pytest.LogCaptureFixture
    ):
        """A raising subscriber is logged and the rest still run."""
        received: list[Snapshot] = []

        def broken(_: Snapshot) -> None:
            raise RuntimeError("render failed")

        store.subscribe(broken)
        store.subscribe(received.append)

        with caplog.at_level(logging.ERROR, logger="boardsync"):
            store.replace(snapshot.evolve())

        assert len(received) == 1
        assert "Snapshot subscriber failed" in caplog.text

    def test_close_drops_subscribers(self, store: SnapshotStore):
        store.subscribe(lambda s: None)
        store.set_dragging("t1")

        store.close()

        assert store.subscriber_count == 0
        assert store.dragging_task_id is None


class TestSnapshotStoreDragState:
    """Tests for the transient dragging view state."""

    def test_set_dragging_notifies(self, store: SnapshotStore, snapshot: Snapshot):
        """Changing the dragged task notifies subscribers with the current snapshot."""
        received: list[Snapshot] = []
        store.subscribe(received.append)

        store.set_dragging("t1")

        assert store.dragging_task_id == "t1"
        assert received == [snapshot]

    def test_set_dragging_same_value_is_silent(self, store: SnapshotStore):
        received: list[Snapshot] = []
        store.set_dragging("t1")
        store.subscribe(received.append)

        store.set_dragging("t1")

        assert received == []
