"""Remote synchronization: in-flight ledger, coordinator, merger and engine."""

from .coordinator import RemoteCall, SyncCoordinator
from .engine import PlacementEngine
from .ledger import MoveLedger
from .merger import MergeResult, ReconciliationMerger
from .refresher import BoardRefresher

__all__ = [
    "BoardRefresher",
    "MergeResult",
    "MoveLedger",
    "PlacementEngine",
    "ReconciliationMerger",
    "RemoteCall",
    "SyncCoordinator",
]
