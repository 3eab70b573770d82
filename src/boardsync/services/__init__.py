"""Service layer: snapshot store, intent building and optimistic application."""

from .intent_builder import build_intent
from .notifier import CollectingNotifier, LoggingNotifier, MoveFailure, NotifierProtocol
from .optimistic_applier import OptimisticApplier, move_task
from .snapshot_store import SnapshotStore

__all__ = [
    "CollectingNotifier",
    "LoggingNotifier",
    "MoveFailure",
    "NotifierProtocol",
    "OptimisticApplier",
    "SnapshotStore",
    "build_intent",
    "move_task",
]
