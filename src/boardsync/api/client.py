"""Async HTTP client for the board API."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from ..errors import (
    REASON_CAPACITY_EXCEEDED,
    REASON_CONFLICT,
    REASON_NOT_FOUND,
    REASON_TARGET_CLOSED,
    REASON_UNKNOWN,
    REMOTE_REASONS,
    NetworkFailureError,
    RemoteError,
    RemoteRejectedError,
)
from ..models import BoardPayload, ContainerKind, MoveIntent, Snapshot, TaskPayload

if TYPE_CHECKING:
    from ..config import Settings
    from ..repositories.protocol import BoardApiProtocol
    from ..sync.coordinator import RemoteCall

logger = logging.getLogger(__name__)


def _reason_from_response(status_code: int, body: dict[str, Any]) -> str:
    """Pick a machine-readable reason for a rejected request.

    An explicit ``reason`` in the body wins. Otherwise it is derived from
    the status code and the error message (the WIP limit message from the
    sprint move endpoint maps to ``capacity_exceeded``).
    """
    reason = body.get("reason")
    if isinstance(reason, str) and reason in REMOTE_REASONS:
        return reason

    message = str(body.get("error", "")).lower()
    if status_code == 404:
        return REASON_NOT_FOUND
    if status_code == 409:
        return REASON_CONFLICT
    if "wip limit" in message or "capacity" in message:
        return REASON_CAPACITY_EXCEEDED
    if "closed" in message or "completed" in message:
        return REASON_TARGET_CLOSED
    return REASON_UNKNOWN


class BoardApiClient:
    """Board API client.

    Provides a thin wrapper around the board REST endpoints with:
    - Bearer token authentication
    - Status code to exception mapping with machine-readable reasons
    - Request timing in the logs
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the board application (e.g. https://pm.example.com)
            token: Optional bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> BoardApiClient:
        """Create a client from application settings."""
        return cls(
            settings.api_base_url,
            token=settings.api_token,
            timeout=settings.request_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> BoardApiClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # --- Endpoints ---

    async def fetch_board(self, board_id: str) -> BoardPayload:
        data = await self._request("GET", f"/api/boards/{board_id}/tasks")
        try:
            return BoardPayload.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Invalid board payload: {e}") from e

    async def move_to_backlog(
        self, task_id: str, source_sprint_id: str, position: int | None = None
    ) -> TaskPayload:
        body = self._body(taskId=task_id, position=position)
        data = await self._request(
            "POST", f"/api/sprints/{source_sprint_id}/tasks/move-to-backlog", body, task_id
        )
        return self._task(data, task_id)

    async def move_to_sprint(self, task_id: str, sprint_id: str) -> None:
        """Add a task to a sprint.

        The server always lands the task in the sprint's first column and
        answers with the sprint, not the task, so nothing is returned.
        """
        body = {"taskId": task_id}
        await self._request("POST", f"/api/sprints/{sprint_id}/tasks", body, task_id)

    async def move_to_column(
        self, task_id: str, sprint_id: str, column_id: str, position: int | None = None
    ) -> TaskPayload:
        body = self._body(taskId=task_id, targetColumnId=column_id, position=position)
        data = await self._request("POST", f"/api/sprints/{sprint_id}/tasks/move", body, task_id)
        return self._task(data, task_id)

    async def reorder_task(self, task_id: str, position: int) -> TaskPayload:
        body = {"position": position}
        data = await self._request("PATCH", f"/api/tasks/{task_id}", body, task_id)
        return self._task(data, task_id)

    # --- Internals ---

    @staticmethod
    def _body(**fields: Any) -> dict[str, Any]:
        """Request body without unset optional fields."""
        return {key: value for key, value in fields.items() if value is not None}

    @staticmethod
    def _task(data: Any, task_id: str) -> TaskPayload:
        try:
            task = TaskPayload.model_validate(data)
        except ValidationError as e:
            raise RemoteError(f"Invalid task in response: {e}", task_id=task_id) from e
        if task.id != task_id:
            raise RemoteError(
                f"Response describes {task.id}, expected task {task_id}", task_id=task_id
            )
        return task

    async def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        task_id: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            NetworkFailureError: Transport error or timeout
            RemoteRejectedError: Server answered with an error status
            RemoteError: Response was not valid JSON
        """
        logger.debug("%s %s: body=%s", method, path, body)

        start_time = time.monotonic()
        try:
            response = await self._client.request(method, path, json=body)
        except httpx.RequestError as e:
            elapsed_ms = (time.monotonic() - start_time) * 1000
            logger.error("%s %s failed after %.0fms: %s", method, path, elapsed_ms, e)
            raise NetworkFailureError(f"Request failed: {e}", task_id=task_id) from e

        elapsed_ms = (time.monotonic() - start_time) * 1000

        if response.status_code >= 400:
            try:
                error_body = response.json()
            except ValueError:
                error_body = {}
            if not isinstance(error_body, dict):
                error_body = {}
            reason = _reason_from_response(response.status_code, error_body)
            message = error_body.get("error") or f"HTTP {response.status_code}"
            logger.error(
                "%s %s: HTTP %d %s (%.0fms)",
                method,
                path,
                response.status_code,
                reason,
                elapsed_ms,
            )
            raise RemoteRejectedError(str(message), reason=reason, task_id=task_id)

        try:
            data = response.json()
        except ValueError as e:
            logger.error("%s %s: Invalid JSON response (%.0fms)", method, path, elapsed_ms)
            raise RemoteError(f"Invalid JSON response: {e}", task_id=task_id) from e

        logger.info("%s %s: %d OK (%.0fms)", method, path, response.status_code, elapsed_ms)
        return data


def remote_call_for(api: BoardApiProtocol, intent: MoveIntent, snapshot: Snapshot) -> RemoteCall:
    """Pick the endpoint(s) that perform ``intent`` on the server.

    - backlog -> backlog: reorder
    - sprint column -> backlog: move to backlog
    - same sprint: move between columns
    - into the sprint's first column from outside: add to the sprint
    - into any other column from outside: add to the sprint, then move to
      the column (the server ignores the column when adding)

    Args:
        api: Board API
        intent: Move to perform
        snapshot: Snapshot the intent was built against, for column order
    """
    source = intent.from_placement
    target = intent.to_placement
    index = target.index

    if target.kind == ContainerKind.BACKLOG:
        if source.kind == ContainerKind.BACKLOG or source.sprint_id is None:
            return lambda: api.reorder_task(intent.task_id, index)
        sprint_id = source.sprint_id
        return lambda: api.move_to_backlog(intent.task_id, sprint_id, index)

    if target.sprint_id is None:
        raise ValueError(f"Column placement without a sprint: {target.container_id}")
    sprint_id = target.sprint_id
    if source.sprint_id == sprint_id:
        return lambda: api.move_to_column(intent.task_id, sprint_id, target.container_id, index)

    columns = snapshot.columns_of(sprint_id)
    if columns and columns[0].id == target.container_id:
        return lambda: api.move_to_sprint(intent.task_id, sprint_id)

    async def add_then_move() -> TaskPayload:
        await api.move_to_sprint(intent.task_id, sprint_id)
        return await api.move_to_column(intent.task_id, sprint_id, target.container_id, index)

    return add_then_move
