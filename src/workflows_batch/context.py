"""Run context shared by every component of a batch run.

Replaces process-wide mutable state: configuration, the cancellation signal,
the progress board and the registry of abandoned (timed out) engine waits all
live here and are passed explicitly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from .config import BatchConfig
from .engine.progress import ProgressBoard

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """State of one batch invocation.

    Attributes:
        config: Validated run configuration
        progress: Per-worker progress display (inactive unless config.debug)
        cancel_event: Set once cancellation is requested
    """

    config: BatchConfig
    progress: ProgressBoard | None = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    _abandoned: set[asyncio.Task[Any]] = field(default_factory=set, repr=False)

    def __post_init__(self) -> None:
        if self.progress is None:
            self.progress = ProgressBoard(self.config.concurrency, enabled=self.config.debug)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def request_cancel(self) -> bool:
        """Request graceful cancellation.

        Returns:
            True if cancellation had already been requested
        """
        if self.cancel_event.is_set():
            return True

        logger.warning("Cancellation requested - workers stop after their current workflow")
        self.cancel_event.set()
        if self.progress is not None:
            self.progress.freeze()
        return False

    def abandon(self, task: asyncio.Task[Any]) -> None:
        """Keep a timed out engine wait referenced; its result is discarded."""
        self._abandoned.add(task)
        task.add_done_callback(self._discard_abandoned)

    def _discard_abandoned(self, task: asyncio.Task[Any]) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Abandoned execution finished with error: {task.exception()}")

    @property
    def abandoned_count(self) -> int:
        return len(self._abandoned)

    async def shutdown(self) -> None:
        """Stop waiting on abandoned executions (the engine is not notified)."""
        pending = [task for task in self._abandoned if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Stopped waiting on {len(pending)} abandoned execution(s)")


__all__ = ["RunContext"]
