"""Wire models for the board API.

The board endpoints speak camelCase JSON. These models accept either the
camelCase aliases or the snake_case field names so tests and callers can
build them directly.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .placement import PlacementTarget, TargetKind, is_done_column_name

SPRINT_STATUS_COMPLETED = "completed"


class TaskPayload(BaseModel):
    """A task as returned by the board API."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: str | None = None
    type: str | None = None
    assignees: list[str] = Field(default_factory=list)
    sprint_id: str | None = Field(default=None, alias="sprintId")
    sprint_column_id: str | None = Field(default=None, alias="sprintColumnId")
    position: int = 0
    blocked_by: list[str] = Field(default_factory=list, alias="blockedBy")  # Blocking task ids

    @field_validator("blocked_by", mode="before")
    @classmethod
    def _blocker_ids(cls, value: Any) -> Any:
        """Accept blocker ids or ``{"id": ...}`` relation objects."""
        if isinstance(value, list):
            return [item["id"] if isinstance(item, dict) else item for item in value]
        return value

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Fields the API sent that the engine does not model."""
        return dict(self.model_extra or {})


class ContainerPayload(BaseModel):
    """A placement target as returned by the board API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    kind: TargetKind
    parent_id: str | None = Field(default=None, alias="parentId")
    position: int = 0
    title: str | None = None
    status: str | None = None
    accepts_placements: bool | None = Field(default=None, alias="acceptsPlacements")
    is_done: bool | None = Field(default=None, alias="isDone")

    def to_target(self) -> PlacementTarget:
        """Convert to a PlacementTarget.

        Without an explicit ``acceptsPlacements`` flag, completed sprints
        reject placements and everything else accepts them.

        Without an explicit ``isDone`` flag, a column is done when its title
        reads as a done state.
        """
        accepts = self.accepts_placements
        if accepts is None:
            accepts = not (
                self.kind == TargetKind.SPRINT and self.status == SPRINT_STATUS_COMPLETED
            )
        is_done = self.is_done
        if is_done is None:
            is_done = self.kind == TargetKind.COLUMN and is_done_column_name(self.title)
        return PlacementTarget(
            id=self.id,
            kind=self.kind,
            parent_id=self.parent_id,
            position=self.position,
            title=self.title,
            status=self.status,
            accepts_placements=accepts,
            is_done=is_done,
        )


class BoardPayload(BaseModel):
    """The ``{tasks, containers}`` shape served by the board-fetch endpoint."""

    tasks: list[TaskPayload] = Field(default_factory=list)
    containers: list[ContainerPayload] = Field(default_factory=list)
