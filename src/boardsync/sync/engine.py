"""Placement engine: one instance per board view."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

import httpx

from ..api.client import BoardApiClient, remote_call_for
from ..config.settings import Settings
from ..errors import MoveRejectedError
from ..logging import setup_logging
from ..models import Placement, PlacementRequest, Snapshot, SyncOutcome, Task
from ..services.intent_builder import build_intent
from ..services.notifier import LoggingNotifier, MoveFailure, NotifierProtocol
from ..services.optimistic_applier import OptimisticApplier
from ..services.snapshot_store import SnapshotStore
from .coordinator import SyncCoordinator
from .ledger import MoveLedger
from .merger import MergeResult, ReconciliationMerger
from .refresher import BoardRefresher

if TYPE_CHECKING:
    from ..repositories.protocol import BoardApiProtocol

logger = logging.getLogger(__name__)


class PlacementEngine:
    """Wires the store, builder, applier, coordinator and merger for one board.

    Views subscribe to the engine's store and call ``move`` on drop; they
    never keep their own copy of task placement. A drop is reflected in the
    store before ``move`` returns, and the server round-trip continues in the
    background.
    """

    def __init__(
        self,
        api: BoardApiProtocol,
        board_id: str,
        snapshot: Snapshot | None = None,
        notifier: NotifierProtocol | None = None,
        refresh_interval: float = 0.0,
    ) -> None:
        self.api = api
        self.board_id = board_id
        self.notifier: NotifierProtocol = notifier or LoggingNotifier()

        self.store = SnapshotStore(snapshot)
        self.ledger = MoveLedger()
        self.applier = OptimisticApplier(self.store)
        self.merger = ReconciliationMerger(self.store, self.ledger)
        self.coordinator = SyncCoordinator(
            self.store, self.applier, self.merger, self.ledger, self.notifier
        )
        self.refresher = BoardRefresher(api, self.merger, board_id, refresh_interval)

        self._in_flight: set[asyncio.Task[SyncOutcome]] = set()
        self._owned_client: BoardApiClient | None = None

    @classmethod
    async def load(
        cls,
        api: BoardApiProtocol,
        board_id: str,
        notifier: NotifierProtocol | None = None,
        refresh_interval: float = 0.0,
    ) -> PlacementEngine:
        """Fetch a board and build an engine around it.

        Raises:
            RemoteError: If the initial fetch fails
        """
        payload = await api.fetch_board(board_id)
        snapshot = Snapshot.from_payload(payload)
        logger.info(
            "Loaded board %s: %d tasks, %d containers",
            board_id,
            len(snapshot.tasks),
            len(snapshot.targets),
        )
        return cls(api, board_id, snapshot, notifier, refresh_interval)

    @classmethod
    async def from_settings(
        cls,
        settings: Settings,
        board_id: str,
        notifier: NotifierProtocol | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> PlacementEngine:
        """Configure logging, connect to the board API and start polling.

        The engine owns the HTTP client it creates; release it with ``aclose``.

        Raises:
            RemoteError: If the initial fetch fails
        """
        setup_logging(settings.verbose, settings.log_file)
        client = BoardApiClient.from_settings(settings, transport=transport)
        try:
            engine = await cls.load(client, board_id, notifier, settings.refresh_interval)
        except BaseException:
            await client.aclose()
            raise
        engine._owned_client = client
        engine.start_polling()
        return engine

    # --- Reading ---

    @property
    def snapshot(self) -> Snapshot:
        return self.store.get()

    def tasks_in(self, container_id: str) -> list[Task]:
        return self.store.tasks_in(container_id)

    def subscribe(self, callback: Callable[[Snapshot], None]) -> Callable[[], None]:
        """Subscribe a view to snapshot changes."""
        return self.store.subscribe(callback)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # --- Drag and drop ---

    def begin_drag(self, task_id: str) -> None:
        self.store.set_dragging(task_id)

    def cancel_drag(self) -> None:
        self.store.set_dragging(None)

    def move(
        self,
        task_id: str,
        container_id: str,
        index: int | None = None,
        from_placement: Placement | None = None,
    ) -> asyncio.Task[SyncOutcome] | None:
        """Drop a task on a container.

        The move is applied to the store immediately and confirmed with the
        server in a background task. A rejected move (unknown task, closed
        target, blocked task) never touches the store; the user is notified instead.

        Must be called from within a running event loop.

        Returns:
            The background confirmation task, or None if the move was rejected.
        """
        self.store.set_dragging(None)
        try:
            intent = build_intent(
                self.store.get(),
                task_id,
                PlacementRequest(container_id=container_id, index=index),
                from_placement,
            )
            remote_call = remote_call_for(self.api, intent, self.store.get())
            token = self.applier.apply(intent)
        except MoveRejectedError as e:
            logger.info("Move of %s to %s rejected: %s", task_id, container_id, e)
            task = self.store.get().get_task(task_id)
            self.notifier.notify(
                MoveFailure(
                    task_id=task_id,
                    task_title=task.display_title if task else task_id,
                    reason=e.reason,
                )
            )
            return None

        if intent.warning:
            logger.warning("Move of %s to %s: %s", task_id, container_id, intent.warning)

        sync_task = self.coordinator.submit(intent, token, remote_call)
        self._in_flight.add(sync_task)
        sync_task.add_done_callback(self._in_flight.discard)
        return sync_task

    async def drain(self) -> list[SyncOutcome]:
        """Wait for every in-flight move to resolve."""
        if not self._in_flight:
            return []
        return list(await asyncio.gather(*self._in_flight))

    # --- Refresh / lifecycle ---

    async def refresh(self) -> MergeResult | None:
        """Re-fetch the board now and merge it."""
        return await self.refresher.refresh()

    def start_polling(self) -> None:
        self.refresher.start()

    def close(self) -> None:
        """Tear down the view: stop polling and drop subscribers.

        In-flight moves are left to finish on their own; cancelling them
        could leave partial state on the server.
        """
        self.refresher.stop()
        self.store.close()
        logger.debug(
            "Engine for board %s closed with %d moves in flight",
            self.board_id,
            len(self._in_flight),
        )

    async def aclose(self) -> None:
        """Close the view, wait for in-flight moves, then release the client."""
        self.close()
        await self.drain()
        if self._owned_client is not None:
            await self._owned_client.aclose()
            self._owned_client = None
