"""Result collector: serialized aggregation of execution outcomes.

Workers never touch the BatchResult directly. They submit outcomes to a single
collector coroutine that folds them one at a time, so summary counters and the
outcome list are always updated together.

Architecture:
- Single worker coroutine folds outcomes sequentially
- Callers await a Future, so folding errors (InternalConsistencyError)
  propagate back to the submitting worker
"""

from __future__ import annotations

import asyncio
import logging

from .results import BatchResult, ExecutionOutcome

logger = logging.getLogger(__name__)


class ResultCollector:
    """Sequential outcome aggregator for one pass.

    Usage:
        collector = ResultCollector(BatchResult(total_workflows=10))
        await collector.start()
        await collector.submit(outcome)
        await collector.stop()
        result = collector.result
    """

    def __init__(self, result: BatchResult) -> None:
        self._result = result
        self._queue: asyncio.Queue[tuple[ExecutionOutcome, asyncio.Future[None]]] = (
            asyncio.Queue()
        )
        self._worker_task: asyncio.Task[None] | None = None
        self._running = False

    @property
    def result(self) -> BatchResult:
        return self._result

    async def start(self) -> None:
        """Start the collector coroutine."""
        if self._running:
            logger.warning("ResultCollector already running")
            return

        self._running = True
        self._worker_task = asyncio.create_task(self._worker())

    async def stop(self) -> None:
        """Drain pending outcomes and stop the collector coroutine."""
        if not self._running:
            return

        self._running = False
        await self._queue.join()

        if self._worker_task:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass

    async def submit(self, outcome: ExecutionOutcome) -> None:
        """Fold an outcome into the result and wait until it is applied.

        Raises:
            RuntimeError: If the collector is not running
            InternalConsistencyError: If the outcome status is not terminal
        """
        if not self._running:
            raise RuntimeError("ResultCollector not started. Call start() first.")

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        await self._queue.put((outcome, future))
        await future

    async def _worker(self) -> None:
        while True:
            outcome, future = await self._queue.get()
            try:
                self._result.record(outcome)
                if not future.done():
                    future.set_result(None)
            except Exception as e:
                logger.error(f"Failed to record outcome for workflow {outcome.workflow_id}: {e}")
                if not future.done():
                    future.set_exception(e)
            finally:
                self._queue.task_done()


__all__ = ["ResultCollector"]
