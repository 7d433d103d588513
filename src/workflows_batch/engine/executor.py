"""Single-workflow executor.

Runs one workflow through the execution engine and turns whatever happens into
exactly one ExecutionOutcome. Nothing raised by the engine, the normalizer or
the snapshot store escapes execute().

Flow:
1. Count node types (coverage) and extract edge-case rules
2. Resolve start node, start the execution and wait for it - raced against the timeout
3. Classify engine errors (transient messages are downgraded to warnings)
4. Normalize the record, compare against the stored snapshot (if enabled)
5. Write the new snapshot (if enabled), strictly after comparing
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from .comparator import compare_with_snapshot
from .edge_cases import NodeEdgeCaseRule, count_node_types, extract_edge_cases
from .execution_engine import ExecutionEngine
from .models import ExecutionRecord, WorkflowDescriptor
from .normalizer import normalize_record
from .results import ExecutionOutcome, ExecutionStatus
from .snapshots import SnapshotStore, serialize_snapshot

if TYPE_CHECKING:
    from ..context import RunContext

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Workflow execution timed out."
NO_DATA_MESSAGE = "Workflow did not return any data."

# Error substrings pointing at the environment (rate limits, connectivity, 5xx,
# credentials, balance) rather than at the workflow itself
TRANSIENT_ERROR_MARKERS = (
    "refresh token is invalid",
    "unable to connect to",
    "econnreset",
    "429",
    "econnrefused",
    "missing a required parameter",
    "insufficient credit balance",
    "internal server error",
    "503",
    "502",
    "504",
    "insufficient balance",
    "request timed out",
    "status code 401",
)


def is_transient_error(message: str) -> bool:
    """Check if an error message describes an environmental (flaky) failure."""
    lowered = message.lower()
    return any(marker in lowered for marker in TRANSIENT_ERROR_MARKERS)


class WorkflowExecutor:
    """Executes single workflows with timeout, normalization and comparison.

    Usage:
        executor = WorkflowExecutor(context, engine)
        outcome = await executor.execute(workflow)
    """

    def __init__(self, context: RunContext, engine: ExecutionEngine) -> None:
        self._context = context
        self._engine = engine
        config = context.config
        self._compare_store = SnapshotStore(config.compare_dir) if config.compare_dir else None
        self._snapshot_store = SnapshotStore(config.snapshot_dir) if config.snapshot_dir else None

    async def execute(self, workflow: WorkflowDescriptor) -> ExecutionOutcome:
        """Run one workflow and classify the result.

        Returns:
            Terminal outcome (success, warning or error)
        """
        outcome = ExecutionOutcome(
            workflow_id=workflow.id,
            workflow_name=workflow.name,
            covered_nodes=count_node_types(workflow),
        )
        rules = extract_edge_cases(workflow)

        engine_call = asyncio.create_task(
            self._invoke_engine(workflow), name=f"engine-{workflow.id}"
        )
        try:
            done, _ = await asyncio.wait(
                {engine_call}, timeout=self._context.config.execution_timeout
            )
        except asyncio.CancelledError:
            engine_call.cancel()
            raise

        if engine_call not in done:
            self._context.abandon(engine_call)
            logger.warning(
                f"Workflow {workflow.id} timed out after "
                f"{self._context.config.execution_timeout}s - abandoning execution"
            )
            return outcome.model_copy(
                update={"status": ExecutionStatus.WARNING, "error": TIMEOUT_MESSAGE}
            )

        try:
            record = engine_call.result()
            return await self._classify(workflow, outcome, record, rules)
        except Exception as e:
            logger.warning(f"Workflow {workflow.id} failed to execute: {e}")
            logger.debug(f"Execution failure details for {workflow.id}", exc_info=True)
            return outcome.model_copy(
                update={
                    "status": ExecutionStatus.ERROR,
                    "error": f"Workflow failed to execute: {e}",
                }
            )

    async def _invoke_engine(self, workflow: WorkflowDescriptor) -> ExecutionRecord | None:
        start_node = self._engine.find_start_node(workflow)
        execution_id = await self._engine.run(workflow, start_node)
        return await self._engine.await_completion(execution_id)

    async def _classify(
        self,
        workflow: WorkflowDescriptor,
        outcome: ExecutionOutcome,
        record: ExecutionRecord | None,
        rules: dict[str, NodeEdgeCaseRule],
    ) -> ExecutionOutcome:
        if record is None:
            return outcome.model_copy(
                update={"status": ExecutionStatus.ERROR, "error": NO_DATA_MESSAGE}
            )

        update: dict[str, object] = {
            "execution_time": record.duration_seconds,
            "finished": record.finished,
        }

        result_error = record.result_data.error
        if result_error is not None:
            message = result_error.description or result_error.message
            if record.result_data.last_node_executed is not None:
                message += f" on node {record.result_data.last_node_executed}"
            update["error"] = message
            update["status"] = (
                ExecutionStatus.WARNING if is_transient_error(message) else ExecutionStatus.ERROR
            )
            return outcome.model_copy(update=update)

        config = self._context.config
        document = normalize_record(record, rules, shallow=config.shallow)

        if self._compare_store is None:
            update["status"] = ExecutionStatus.SUCCESS
        else:
            expected = await self._compare_store.load(workflow.id)
            comparison = compare_with_snapshot(expected, document, ci_summary=config.ci_summary)
            update["status"] = comparison.status
            update["error"] = comparison.error
            update["changes"] = comparison.changes

        if self._snapshot_store is not None:
            await self._snapshot_store.save(workflow.id, serialize_snapshot(document))

        return outcome.model_copy(update=update)


__all__ = ["TRANSIENT_ERROR_MARKERS", "WorkflowExecutor", "is_transient_error"]
