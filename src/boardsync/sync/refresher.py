"""Background board refresh feeding the reconciliation merger."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..errors import RemoteError
from .merger import MergeResult, ReconciliationMerger

if TYPE_CHECKING:
    from ..repositories.protocol import BoardApiProtocol

logger = logging.getLogger(__name__)


class BoardRefresher:
    """Re-fetches a board and merges it, on demand or on an interval.

    A failed refresh is logged and skipped; the next one tries again.
    """

    def __init__(
        self,
        api: BoardApiProtocol,
        merger: ReconciliationMerger,
        board_id: str,
        interval: float = 0.0,
    ) -> None:
        self._api = api
        self._merger = merger
        self._board_id = board_id
        self.interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> MergeResult | None:
        """Fetch the board and merge it into the store.

        Returns:
            The merge result, or None if the fetch or merge failed.
        """
        try:
            payload = await self._api.fetch_board(self._board_id)
        except RemoteError as e:
            logger.warning("Board refresh failed for %s: %s", self._board_id, e)
            return None

        try:
            result = self._merger.merge(payload)
        except ValueError as e:
            logger.error("Board refresh for %s returned an invalid board: %s", self._board_id, e)
            return None

        if result.changed:
            logger.debug("Board refresh for %s changed the snapshot", self._board_id)
        return result

    def start(self) -> None:
        """Start polling every ``interval`` seconds. No-op if disabled or running."""
        if self.interval <= 0 or self.running:
            return
        logger.info("Polling board %s every %.1fs", self._board_id, self.interval)
        self._task = asyncio.create_task(self._poll(), name=f"refresh-{self._board_id}")

    def stop(self) -> None:
        """Stop polling. Moves already in flight are not affected."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.refresh()
            except Exception:
                logger.exception("Unexpected error refreshing board %s", self._board_id)
