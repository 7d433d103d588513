"""Programmatic entry point for a batch run.

One invocation = one run-compare-retry cycle:
1. Query the workflow store (allow-list / skip-list applied)
2. Full pass over all workflows
3. While retries remain, issues remain and the run is not cancelled:
   re-run failed/warned workflows and merge the new successes
4. Build the CI message (if enabled) from the final aggregate
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .config import BatchConfig
from .context import RunContext
from .engine.execution_engine import ExecutionEngine
from .engine.executor import WorkflowExecutor
from .engine.models import WorkflowDescriptor
from .engine.pool import WorkerPool
from .engine.results import BatchResult, build_ci_message
from .engine.retry import merge_batch, retry_candidates
from .engine.store import WorkflowStore

logger = logging.getLogger(__name__)


class BatchRunner:
    """Runs the initial pass and the retry passes for a workflow list.

    Usage:
        runner = BatchRunner(context, engine)
        result = await runner.run(workflows)
    """

    def __init__(self, context: RunContext, engine: ExecutionEngine) -> None:
        self._context = context
        self._executor = WorkflowExecutor(context, engine)

    async def run_pass(self, workflows: Sequence[WorkflowDescriptor]) -> BatchResult:
        """Run every workflow once in a fresh worker pool."""
        return await WorkerPool(self._context, self._executor).run(workflows)

    async def run(self, workflows: Sequence[WorkflowDescriptor]) -> BatchResult:
        """Initial pass plus retry passes.

        Raises:
            InternalConsistencyError: If an outcome with an unknown status is produced
        """
        config = self._context.config
        result = await self.run_pass(workflows)

        retries = config.retries
        while retries > 0 and result.summary.issue_count > 0 and not self._context.cancelled:
            candidate_ids = set(retry_candidates(result))
            retry_list = [workflow for workflow in workflows if workflow.id in candidate_ids]
            logger.info(
                f"Retrying {len(retry_list)} failed/warned workflows ({retries} retries left)"
            )

            retried = await self.run_pass(retry_list)
            result = merge_batch(result, retried)
            logger.info(
                f"Retry merged {retried.summary.successful_executions} new successes; "
                f"{result.summary.warning_executions} warnings, "
                f"{result.summary.failed_executions} failures remain"
            )
            retries -= 1

        if config.ci_summary:
            result.ci_message = build_ci_message(result.summary)

        return result


async def run_batch(
    config: BatchConfig,
    engine: ExecutionEngine,
    store: WorkflowStore,
    context: RunContext | None = None,
) -> BatchResult:
    """Query workflows, execute them, retry failures and return the aggregate.

    Args:
        config: Validated run configuration
        engine: Execution engine collaborator
        store: Workflow store collaborator
        context: Run context (created from config when omitted)

    Returns:
        Final BatchResult (JSON-serializable via to_report())

    Raises:
        InternalConsistencyError: If the batch had to be aborted
    """
    context = context or RunContext(config=config)
    workflows = await store.query(ids=config.ids or None, skip_ids=config.skip_ids or None)
    logger.info(f"Found {len(workflows)} workflows to execute")

    try:
        return await BatchRunner(context, engine).run(workflows)
    finally:
        await context.shutdown()


__all__ = ["BatchRunner", "run_batch"]
