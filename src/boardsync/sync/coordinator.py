"""Remote confirmation of optimistic moves."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from ..errors import NetworkFailureError, RemoteError
from ..models import MoveIntent, RollbackOutcome, RollbackToken, SyncOutcome, Task, TaskPayload
from ..models.snapshot import task_from_payload
from ..services.notifier import LoggingNotifier, MoveFailure, NotifierProtocol
from ..services.optimistic_applier import OptimisticApplier
from ..services.snapshot_store import SnapshotStore
from .ledger import MoveLedger
from .merger import ReconciliationMerger

logger = logging.getLogger(__name__)

RemoteCall = Callable[[], Awaitable[Task | TaskPayload | None]]


class SyncCoordinator:
    """Confirms optimistic moves with the server, one authoritative move per task.

    Handles the workflow of:
    1. Registering the move in the ledger (superseding any older one)
    2. Awaiting the remote call
    3. On success, accepting the optimistic placement or reconciling with
       the server's placement
    4. On failure, rolling back conditionally and notifying the user once

    Failed moves are never retried; the user drags again.
    """

    def __init__(
        self,
        store: SnapshotStore,
        applier: OptimisticApplier,
        merger: ReconciliationMerger,
        ledger: MoveLedger,
        notifier: NotifierProtocol | None = None,
    ) -> None:
        self.store = store
        self.applier = applier
        self.merger = merger
        self.ledger = ledger
        self.notifier: NotifierProtocol = notifier or LoggingNotifier()

    def submit(
        self, intent: MoveIntent, token: RollbackToken, remote_call: RemoteCall
    ) -> asyncio.Task[SyncOutcome]:
        """Register the move now and confirm it in a background task.

        Registration happens before returning so a refresh merged before the
        task first runs still sees the move as in flight.
        """
        self.ledger.register(intent)
        return asyncio.create_task(
            self._confirm(intent, token, remote_call), name=f"sync-{intent.task_id}-{intent.id}"
        )

    async def sync(
        self, intent: MoveIntent, token: RollbackToken, remote_call: RemoteCall
    ) -> SyncOutcome:
        """Register the move and await its confirmation."""
        self.ledger.register(intent)
        return await self._confirm(intent, token, remote_call)

    async def _confirm(
        self, intent: MoveIntent, token: RollbackToken, remote_call: RemoteCall
    ) -> SyncOutcome:
        try:
            server_task = await remote_call()
        except RemoteError as e:
            logger.info("Move %s for %s failed: %s (%s)", intent.id, intent.task_id, e, e.reason)
            return self._handle_failure(intent, token, e)
        except Exception as e:
            logger.exception("Unexpected error confirming move %s", intent.id)
            return self._handle_failure(
                intent, token, NetworkFailureError(str(e), task_id=intent.task_id)
            )
        finally:
            self.ledger.release(intent)
        return self._handle_success(intent, token, server_task)

    def _handle_success(
        self, intent: MoveIntent, token: RollbackToken, server_task: Task | TaskPayload | None
    ) -> SyncOutcome:
        self.applier.discard(token)

        live = self.store.get().get_task(intent.task_id)
        if live is None or live.placed_by != intent.id:
            logger.info("Move %s confirmed but superseded for %s", intent.id, intent.task_id)
            return SyncOutcome.SUPERSEDED

        if server_task is None:
            logger.debug("Move %s confirmed without a server task", intent.id)
            return SyncOutcome.CONFIRMED

        if isinstance(server_task, TaskPayload):
            converted = task_from_payload(server_task, self.store.get().targets)
            if converted is None:
                logger.warning(
                    "Move %s confirmed with an unknown server container, keeping local placement",
                    intent.id,
                )
                return SyncOutcome.CONFIRMED
            server_task = converted

        if server_task.placement == live.placement:
            logger.info("Move %s confirmed for %s", intent.id, intent.task_id)
            return SyncOutcome.CONFIRMED

        logger.info(
            "Move %s for %s differs from server (local=%s[%d], server=%s[%d])",
            intent.id,
            intent.task_id,
            live.container_id,
            live.placement.index,
            server_task.container_id,
            server_task.placement.index,
        )
        self.merger.merge_task(server_task)
        return SyncOutcome.RECONCILED

    def _handle_failure(
        self, intent: MoveIntent, token: RollbackToken, error: RemoteError
    ) -> SyncOutcome:
        outcome = self.applier.rollback(token)
        if outcome == RollbackOutcome.STALE_NOOP:
            logger.info(
                "Failed move %s for %s superseded, nothing to roll back",
                intent.id,
                intent.task_id,
            )
            return SyncOutcome.STALE_NOOP

        # No newer move owns the task, so the failure is surfaced even when
        # the prior container is gone and the task stays where it was dropped
        task = self.store.get().get_task(intent.task_id)
        failure = MoveFailure(
            task_id=intent.task_id,
            task_title=task.display_title if task else intent.task_id,
            reason=error.reason,
        )
        self.notifier.notify(failure)
        if outcome == RollbackOutcome.TARGET_GONE:
            return SyncOutcome.FAILED_IN_PLACE
        return SyncOutcome.ROLLED_BACK
