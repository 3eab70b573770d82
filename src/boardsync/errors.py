"""Exception hierarchy for the placement engine."""

from __future__ import annotations

REASON_CAPACITY_EXCEEDED = "capacity_exceeded"
REASON_TARGET_CLOSED = "target_closed"
REASON_NOT_FOUND = "not_found"
REASON_CONFLICT = "conflict"
REASON_UNKNOWN = "unknown"
REASON_NETWORK = "network"
REASON_BLOCKED = "blocked"

REMOTE_REASONS = frozenset(
    {
        REASON_CAPACITY_EXCEEDED,
        REASON_TARGET_CLOSED,
        REASON_NOT_FOUND,
        REASON_CONFLICT,
        REASON_UNKNOWN,
    }
)


class PlacementError(Exception):
    """Base exception for placement engine errors."""

    pass


class MoveRejectedError(PlacementError):
    """A move was rejected before touching the snapshot."""

    reason = REASON_UNKNOWN

    def __init__(self, message: str, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class TargetClosedError(MoveRejectedError):
    """The target container does not accept placements."""

    reason = REASON_TARGET_CLOSED


class UnknownTaskError(MoveRejectedError):
    """The task is not in the current snapshot."""

    reason = REASON_NOT_FOUND


class UnknownTargetError(MoveRejectedError):
    """The target container is not part of the board."""

    reason = REASON_NOT_FOUND


class TaskBlockedError(MoveRejectedError):
    """The task has incomplete blockers and the target is a done column."""

    reason = REASON_BLOCKED


class TokenConsumedError(PlacementError):
    """A rollback token was used twice."""

    pass


class RemoteError(PlacementError):
    """The remote board API failed or refused a request."""

    def __init__(self, message: str, reason: str = REASON_UNKNOWN, task_id: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.task_id = task_id


class RemoteRejectedError(RemoteError):
    """The server refused the move (capacity, validation, closed target...)."""

    pass


class NetworkFailureError(RemoteError):
    """The server could not be reached."""

    def __init__(self, message: str, task_id: str | None = None) -> None:
        super().__init__(message, reason=REASON_NETWORK, task_id=task_id)
