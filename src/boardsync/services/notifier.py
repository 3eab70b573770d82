"""User-facing surface for failed moves."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from ..errors import REASON_NETWORK

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MoveFailure:
    """A failed move as shown to the user."""

    task_id: str
    task_title: str
    reason: str

    @property
    def is_network(self) -> bool:
        return self.reason == REASON_NETWORK

    @property
    def message(self) -> str:
        """Toast text for this failure."""
        if self.is_network:
            return f"Couldn't reach server, '{self.task_title}' was not moved"
        return f"Move not allowed for '{self.task_title}' ({self.reason.replace('_', ' ')})"


class NotifierProtocol(Protocol):
    """Receives one call per failed move the user should hear about."""

    def notify(self, failure: MoveFailure) -> None: ...


class LoggingNotifier:
    """Notifier that writes failures to the log; the default without a UI."""

    def notify(self, failure: MoveFailure) -> None:
        logger.warning("%s", failure.message)


class CollectingNotifier:
    """Notifier that keeps failures in memory, for views polling for toasts."""

    def __init__(self) -> None:
        self.failures: list[MoveFailure] = []

    def notify(self, failure: MoveFailure) -> None:
        self.failures.append(failure)

    def drain(self) -> list[MoveFailure]:
        """Return and clear pending failures."""
        failures, self.failures = self.failures, []
        return failures
