"""Protocol for the remote board API the engine talks to."""

from typing import Protocol

from ..models import BoardPayload, TaskPayload


class BoardApiProtocol(Protocol):
    """Interface for the board backend.

    The engine only needs to fetch a board and to move a task. Every move
    returns the server's canonical task or raises a ``RemoteError``
    subclass:
    - ``RemoteRejectedError`` with a machine-readable reason
      (``capacity_exceeded``, ``target_closed``, ``not_found``, ``conflict``)
    - ``NetworkFailureError`` when the server could not be reached
    """

    async def fetch_board(self, board_id: str) -> BoardPayload:
        """Load every task and container of a board."""
        ...

    async def move_to_backlog(
        self, task_id: str, source_sprint_id: str, position: int | None = None
    ) -> TaskPayload:
        """Move a task out of a sprint into the backlog."""
        ...

    async def move_to_sprint(self, task_id: str, sprint_id: str) -> None:
        """Add a task to a sprint; the server puts it in the first column."""
        ...

    async def move_to_column(
        self, task_id: str, sprint_id: str, column_id: str, position: int | None = None
    ) -> TaskPayload:
        """Move a task between columns of the sprint it is already in."""
        ...

    async def reorder_task(self, task_id: str, position: int) -> TaskPayload:
        """Change a task's position within its current container."""
        ...
