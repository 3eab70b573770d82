"""boardsync - optimistic task placement for sprint boards."""

from .sync import PlacementEngine

__version__ = "0.1.0"

__all__ = ["PlacementEngine", "__version__"]
