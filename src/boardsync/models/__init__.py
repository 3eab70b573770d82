"""Data models."""

from .move import (
    MoveIntent,
    PlacementRequest,
    RollbackOutcome,
    RollbackToken,
    SyncOutcome,
)
from .payload import BoardPayload, ContainerPayload, TaskPayload
from .placement import ContainerKind, Placement, PlacementTarget, TargetKind
from .snapshot import Snapshot, normalize_indices
from .task import Task

__all__ = [
    "BoardPayload",
    "ContainerKind",
    "ContainerPayload",
    "MoveIntent",
    "Placement",
    "PlacementRequest",
    "PlacementTarget",
    "RollbackOutcome",
    "RollbackToken",
    "Snapshot",
    "SyncOutcome",
    "Task",
    "TargetKind",
    "TaskPayload",
    "normalize_indices",
]
