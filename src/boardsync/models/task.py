"""Task domain model."""

from typing import Any

from pydantic import BaseModel, Field

from .placement import Placement


class Task(BaseModel):
    """A movable board task.

    Only ``id`` and ``placement`` matter to the placement engine; the other
    attributes are carried along for the views.
    """

    id: str
    placement: Placement

    # Domain attributes, opaque to the engine
    title: str | None = None
    type: str | None = None
    assignees: list[str] = Field(default_factory=list)
    blocked_by: list[str] = Field(default_factory=list)  # Ids of incomplete blockers
    extra: dict[str, Any] = Field(default_factory=dict)

    # Intent id of the optimistic move that placed this task, None once the
    # server placement has been adopted
    placed_by: str | None = None

    model_config = {"frozen": True}

    @property
    def container_id(self) -> str:
        return self.placement.container_id

    @property
    def display_title(self) -> str:
        """Title for display - uses ID if title not set."""
        return self.title or self.id

    def placed(self, placement: Placement, placed_by: str | None) -> "Task":
        """Return a copy of this task at a new placement."""
        return self.model_copy(update={"placement": placement, "placed_by": placed_by})

    def with_attributes_of(self, other: "Task") -> "Task":
        """Take the domain attributes of ``other`` while keeping this placement."""
        return other.model_copy(
            update={"placement": self.placement, "placed_by": self.placed_by}
        )
