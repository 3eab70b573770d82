"""In-flight move ledger."""

from __future__ import annotations

import logging

from ..models import MoveIntent

logger = logging.getLogger(__name__)


class MoveLedger:
    """Tracks the one authoritative outstanding move per task.

    A newer move for a task supersedes the older one instead of queueing
    behind it. The older request still runs to completion, but once the
    ledger no longer points at it its result is ignored.
    """

    def __init__(self) -> None:
        self._entries: dict[str, MoveIntent] = {}

    def register(self, intent: MoveIntent) -> MoveIntent | None:
        """Make ``intent`` authoritative for its task.

        Returns:
            The superseded intent, if one was outstanding.
        """
        previous = self._entries.get(intent.task_id)
        self._entries[intent.task_id] = intent
        if previous is not None:
            logger.info(
                "Move %s for %s supersedes pending move %s",
                intent.id,
                intent.task_id,
                previous.id,
            )
        return previous

    def current(self, task_id: str) -> MoveIntent | None:
        return self._entries.get(task_id)

    def is_current(self, intent: MoveIntent) -> bool:
        """Whether ``intent`` is still the authoritative move for its task."""
        entry = self._entries.get(intent.task_id)
        return entry is not None and entry.id == intent.id

    def release(self, intent: MoveIntent) -> bool:
        """Remove the entry for the intent's task if it still points at ``intent``.

        Returns:
            True if the entry was removed.
        """
        if not self.is_current(intent):
            return False
        del self._entries[intent.task_id]
        return True

    def pending_task_ids(self) -> frozenset[str]:
        return frozenset(self._entries)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
