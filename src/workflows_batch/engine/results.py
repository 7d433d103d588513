"""Execution outcomes and batch aggregation.

Invariant maintained by BatchResult.record() and merge_batch():
    successful + warning + failed == number of outcomes with a terminal status

Report keys are camelCase (totalWorkflows, summary.failedExecutions, ...).
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import InternalConsistencyError
from .models import CAMEL_CONFIG

logger = logging.getLogger(__name__)

# Below this many failures the CI message lists every failing workflow
CI_MESSAGE_DETAIL_LIMIT = 6


class ExecutionStatus(str, Enum):
    """
    Outcome of a single workflow execution.

    Status Lifecycle:
    - RUNNING: Claimed by a worker, not finished yet
    - SUCCESS: Executed without error and matched its snapshot (if compared)
    - WARNING: Transient failure, timeout, additive drift or missing snapshot
    - ERROR: Execution error or breaking structural change
    """

    RUNNING = "running"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    def is_terminal(self) -> bool:
        """Check if the status is final (anything but running)."""
        return self != ExecutionStatus.RUNNING


class ExecutionOutcome(BaseModel):
    """Result of running one workflow through the executor."""

    model_config = CAMEL_CONFIG

    workflow_id: str = Field(description="Workflow identifier")
    workflow_name: str = Field(default="", description="Workflow display name")
    execution_time: float = Field(default=0.0, description="Engine reported duration (seconds)")
    finished: bool = Field(default=False, description="Engine marked the execution finished")
    status: ExecutionStatus = Field(
        default=ExecutionStatus.RUNNING,
        alias="executionStatus",
        description="Current status",
    )
    error: str | None = Field(default=None, description="Error or warning message")
    changes: Any | None = Field(default=None, description="Structural diff against the snapshot")
    covered_nodes: dict[str, int] = Field(
        default_factory=dict, description="Node type -> occurrences in this workflow"
    )


class ExecutionIssue(BaseModel):
    """Summary entry for a warned or failed workflow."""

    model_config = CAMEL_CONFIG

    workflow_id: str
    error: str


class ResultSummary(BaseModel):
    """Running counters of terminal outcomes."""

    model_config = CAMEL_CONFIG

    successful_executions: int = 0
    warning_executions: int = 0
    failed_executions: int = 0
    warnings: list[ExecutionIssue] = Field(default_factory=list)
    errors: list[ExecutionIssue] = Field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return self.warning_executions + self.failed_executions


class BatchResult(BaseModel):
    """Aggregate result of one or more passes over a workflow list."""

    model_config = CAMEL_CONFIG

    total_workflows: int = 0
    ci_message: str = ""
    summary: ResultSummary = Field(default_factory=ResultSummary)
    covered_nodes: dict[str, int] = Field(default_factory=dict)
    executions: list[ExecutionOutcome] = Field(default_factory=list)

    def add_coverage(self, covered_nodes: dict[str, int]) -> None:
        for node_type, count in covered_nodes.items():
            self.covered_nodes[node_type] = self.covered_nodes.get(node_type, 0) + count

    def record(self, outcome: ExecutionOutcome) -> None:
        """Fold a terminal outcome into the result.

        Raises:
            InternalConsistencyError: If the outcome status is not terminal
        """
        status = outcome.status
        if status == ExecutionStatus.SUCCESS:
            self.summary.successful_executions += 1
            self.add_coverage(outcome.covered_nodes)
        elif status == ExecutionStatus.WARNING:
            self.summary.warning_executions += 1
            self.summary.warnings.append(
                ExecutionIssue(workflow_id=outcome.workflow_id, error=outcome.error or "")
            )
        elif status == ExecutionStatus.ERROR:
            self.summary.failed_executions += 1
            self.summary.errors.append(
                ExecutionIssue(workflow_id=outcome.workflow_id, error=outcome.error or "")
            )
        else:
            raise InternalConsistencyError(outcome.workflow_id, status)

        self.executions.append(outcome)

    def terminal_count(self) -> int:
        """Number of recorded outcomes with a terminal status."""
        return sum(1 for outcome in self.executions if outcome.status.is_terminal())

    def is_consistent(self) -> bool:
        """Check the summary counters against the outcome list."""
        summary = self.summary
        counted = (
            summary.successful_executions + summary.warning_executions + summary.failed_executions
        )
        return counted == self.terminal_count()

    def to_report(self, short: bool = False) -> dict[str, Any]:
        """JSON-compatible report.

        Args:
            short: Keep only non-successful execution records

        Returns:
            Report dict with camelCase keys
        """
        report = self.model_dump(mode="json", by_alias=True)
        if short:
            report["executions"] = [
                execution
                for execution in report["executions"]
                if execution["executionStatus"] != ExecutionStatus.SUCCESS.value
            ]
        return report


def build_ci_message(summary: ResultSummary) -> str:
    """Short message for CI/chat integration.

    Lists every failing workflow with its error when fewer than six failed,
    otherwise only the count.
    """
    header = f"*{len(summary.errors)} Executions errors*"
    if len(summary.errors) < CI_MESSAGE_DETAIL_LIMIT:
        failing = " ".join(f"*{issue.workflow_id}*: {issue.error}" for issue in summary.errors)
        return f"{header}. Workflows failing: {failing} "
    return header


__all__ = [
    "BatchResult",
    "ExecutionIssue",
    "ExecutionOutcome",
    "ExecutionStatus",
    "ResultSummary",
    "build_ci_message",
]
