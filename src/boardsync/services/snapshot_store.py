"""Service holding the current board snapshot."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..models import Snapshot, Task

logger = logging.getLogger(__name__)

Subscriber = Callable[[Snapshot], None]


class SnapshotStore:
    """The single mutable holder of board state.

    Every state transition (optimistic apply, rollback, merge) produces a
    whole new Snapshot and goes through ``replace``. There is no other way to
    change what the views see, which gives a single-writer discipline on the
    event loop without explicit locks.

    The store also carries transient view state (which task is being dragged)
    so any subscriber can read it instead of keeping its own copy.
    """

    def __init__(self, snapshot: Snapshot | None = None) -> None:
        self._snapshot = snapshot or Snapshot.empty()
        self._subscribers: list[Subscriber] = []
        self._dragging_task_id: str | None = None

    def get(self) -> Snapshot:
        """Current snapshot (a handle, not a copy)."""
        return self._snapshot

    def replace(self, snapshot: Snapshot) -> None:
        """Swap in a new snapshot and notify subscribers.

        Raises:
            ValueError: If the snapshot version does not advance.
        """
        if snapshot.version <= self._snapshot.version:
            raise ValueError(
                f"Snapshot version must advance (current={self._snapshot.version}, "
                f"new={snapshot.version})"
            )
        logger.debug("Snapshot replaced: v%d -> v%d", self._snapshot.version, snapshot.version)
        self._snapshot = snapshot
        self._notify()

    def tasks_in(self, container_id: str) -> list[Task]:
        """Tasks in a container, ordered by index then id."""
        return self._snapshot.tasks_in(container_id)

    # --- View state ---

    @property
    def dragging_task_id(self) -> str | None:
        return self._dragging_task_id

    def set_dragging(self, task_id: str | None) -> None:
        """Record which task is being dragged (None when no drag is active)."""
        if task_id == self._dragging_task_id:
            return
        self._dragging_task_id = task_id
        self._notify()

    # --- Subscriptions ---

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a view callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def close(self) -> None:
        """Drop all subscribers (owning view unmounted)."""
        self._subscribers.clear()
        self._dragging_task_id = None

    def _notify(self) -> None:
        snapshot = self._snapshot
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Snapshot subscriber failed: %r", callback)
