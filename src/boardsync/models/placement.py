"""Placement and placement target models."""

from enum import Enum

from pydantic import BaseModel, Field

DONE_KEYWORDS = ("done", "complete", "finished", "resolved", "closed")
PROGRESS_KEYWORDS = ("progress", "doing", "active", "working", "development", "review")


def is_done_column_name(name: str | None) -> bool:
    """Whether a column title reads as a done state."""
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in DONE_KEYWORDS)


def is_progress_column_name(name: str | None) -> bool:
    """Whether a column title reads as an in-progress state."""
    lowered = (name or "").lower()
    return any(keyword in lowered for keyword in PROGRESS_KEYWORDS)


class ContainerKind(str, Enum):
    """Kind of container a task can be placed in."""

    BACKLOG = "backlog"
    SPRINT_COLUMN = "sprint_column"


class TargetKind(str, Enum):
    """Kind of placement target in the board tree."""

    BACKLOG = "backlog"
    SPRINT = "sprint"
    COLUMN = "column"


class Placement(BaseModel):
    """Where a task sits: a container and its index within that container."""

    kind: ContainerKind
    container_id: str
    index: int = Field(default=0, ge=0)
    sprint_id: str | None = None  # Parent sprint for sprint columns

    model_config = {"frozen": True}

    def at(self, index: int) -> "Placement":
        """Return the same container placement at another index."""
        return self.model_copy(update={"index": index})

    def same_container(self, other: "Placement | None") -> bool:
        return other is not None and other.container_id == self.container_id


class PlacementTarget(BaseModel):
    """A node of the board tree: the backlog, a sprint, or a sprint column.

    Backlog and sprints are top-level; every column belongs to exactly one
    sprint through ``parent_id``.
    """

    id: str
    kind: TargetKind
    parent_id: str | None = None
    position: int = 0  # Column display order within its sprint
    title: str | None = None
    status: str | None = None  # Sprint status as reported by the server
    accepts_placements: bool = True
    is_done: bool = False  # Column holds finished work

    model_config = {"frozen": True}

    @property
    def is_in_progress(self) -> bool:
        return self.kind == TargetKind.COLUMN and is_progress_column_name(self.title)

    @property
    def is_container(self) -> bool:
        """Whether tasks can sit directly in this target."""
        return self.kind in (TargetKind.BACKLOG, TargetKind.COLUMN)

    def placement(self, index: int) -> Placement:
        """Build a placement in this target at ``index``."""
        if self.kind == TargetKind.BACKLOG:
            return Placement(kind=ContainerKind.BACKLOG, container_id=self.id, index=index)
        if self.kind == TargetKind.COLUMN:
            return Placement(
                kind=ContainerKind.SPRINT_COLUMN,
                container_id=self.id,
                index=index,
                sprint_id=self.parent_id,
            )
        raise ValueError(f"Target '{self.id}' is a sprint and cannot hold tasks directly")
