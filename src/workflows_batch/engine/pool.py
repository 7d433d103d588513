"""Worker pool: one pass over a workflow list.

Architecture:
- The work queue is filled up-front in workflow order (FIFO)
- `concurrency` worker coroutines pop until the queue is empty
- Each worker checks the cancellation signal before every pop; unclaimed
  workflows are left out of the result entirely
- Outcomes are folded by a single ResultCollector
- An InternalConsistencyError cancels the remaining workers and aborts the pass
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from .collector import ResultCollector
from .executor import WorkflowExecutor
from .models import WorkflowDescriptor
from .results import BatchResult

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)


class WorkerPool:
    """Fixed-size pool draining a shared workflow queue.

    Usage:
        pool = WorkerPool(context, executor)
        result = await pool.run(workflows)
    """

    def __init__(self, context: RunContext, executor: WorkflowExecutor) -> None:
        self._context = context
        self._executor = executor
        self._num_workers = context.config.concurrency

    async def run(self, workflows: Sequence[WorkflowDescriptor]) -> BatchResult:
        """Execute every workflow once (unless cancelled) and aggregate the outcomes.

        Raises:
            InternalConsistencyError: If an outcome with a non-terminal status is produced
        """
        queue: asyncio.Queue[WorkflowDescriptor] = asyncio.Queue()
        for workflow in workflows:
            queue.put_nowait(workflow)

        collector = ResultCollector(BatchResult(total_workflows=len(workflows)))
        await collector.start()

        progress = self._context.progress
        if progress is not None:
            progress.reset(self._num_workers)

        logger.info(f"Running {len(workflows)} workflows with {self._num_workers} workers")
        workers = [
            asyncio.create_task(self._worker(i, queue, collector), name=f"batch-worker-{i}")
            for i in range(self._num_workers)
        ]

        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            await collector.stop()

        result = collector.result
        summary = result.summary
        logger.info(
            f"Pass finished: {summary.successful_executions} successful, "
            f"{summary.warning_executions} warnings, {summary.failed_executions} failed, "
            f"{queue.qsize()} not started"
        )
        return result

    async def _worker(
        self,
        worker_id: int,
        queue: asyncio.Queue[WorkflowDescriptor],
        collector: ResultCollector,
    ) -> None:
        """Worker coroutine - processes workflows until the queue is empty or cancelled."""
        logger.debug(f"Batch worker {worker_id} started")
        progress = self._context.progress

        while True:
            if self._context.cancelled:
                logger.info(f"Batch worker {worker_id} stopping (cancelled)")
                break

            try:
                workflow = queue.get_nowait()
            except asyncio.QueueEmpty:
                break

            if progress is not None:
                progress.start(worker_id, workflow.id)

            logger.debug(f"Worker {worker_id} executing workflow {workflow.id} ({workflow.name})")
            try:
                outcome = await self._executor.execute(workflow)
                await collector.submit(outcome)
            finally:
                queue.task_done()

            if progress is not None:
                progress.finish(worker_id, workflow.id, outcome.status)
            logger.info(
                f"Worker {worker_id} finished workflow {workflow.id}: {outcome.status.value}"
                + (f" ({outcome.error})" if outcome.error else "")
            )

        logger.debug(f"Batch worker {worker_id} stopped")


__all__ = ["WorkerPool"]
