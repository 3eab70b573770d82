"""Move-related value objects: requests, intents, rollback tokens and outcomes."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..errors import TokenConsumedError
from ..utils import now_utc
from .placement import Placement


def new_intent_id() -> str:
    return uuid.uuid4().hex


class RollbackOutcome(str, Enum):
    """Result of a conditional rollback."""

    REVERTED = "reverted"  # Task restored to its prior placement
    STALE_NOOP = "stale_noop"  # A newer move owns the task, nothing changed
    TARGET_GONE = "target_gone"  # Prior container was removed, task left in place


class SyncOutcome(str, Enum):
    """How a synced move ended, from the engine's point of view."""

    CONFIRMED = "confirmed"  # Server agreed with the optimistic placement
    RECONCILED = "reconciled"  # Server placement differed and was merged in
    SUPERSEDED = "superseded"  # Succeeded, but a newer move for the task is authoritative
    ROLLED_BACK = "rolled_back"  # Failed and the optimistic placement was reverted
    FAILED_IN_PLACE = "failed_in_place"  # Failed, prior container gone, task left in place
    STALE_NOOP = "stale_noop"  # Failed, but a newer move owns the task


@dataclass(frozen=True)
class PlacementRequest:
    """Drop location from a drag gesture. ``index=None`` appends."""

    container_id: str
    index: int | None = None


@dataclass(frozen=True)
class MoveIntent:
    """A validated move of one task, created and consumed within one interaction."""

    task_id: str
    from_placement: Placement
    to_placement: Placement
    id: str = field(default_factory=new_intent_id)
    generated_at: datetime = field(default_factory=now_utc)
    warning: str | None = None  # Allowed, but worth telling the user (blocked task in progress)

    @property
    def is_reorder(self) -> bool:
        """Whether the move stays inside the same container."""
        return self.to_placement.same_container(self.from_placement)


@dataclass
class RollbackToken:
    """Everything needed to undo one optimistic apply, usable exactly once."""

    intent_id: str
    task_id: str
    prior_placement: Placement
    prior_placed_by: str | None
    prior_snapshot_version: int
    expected_placement: Placement  # Placement the intent produced
    _consumed: bool = field(default=False, repr=False)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def consume(self) -> None:
        """Mark the token used.

        Raises:
            TokenConsumedError: If the token was already used.
        """
        if self._consumed:
            raise TokenConsumedError(f"Rollback token for intent {self.intent_id} already used")
        self._consumed = True
