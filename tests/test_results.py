"""Tests for outcome aggregation, CI message and report shape."""

import pytest

from workflows_batch.engine.exceptions import InternalConsistencyError
from workflows_batch.engine.results import (
    BatchResult,
    ExecutionIssue,
    ExecutionOutcome,
    ExecutionStatus,
    ResultSummary,
    build_ci_message,
)


def _outcome(workflow_id, status, error=None, covered_nodes=None):
    return ExecutionOutcome(
        workflow_id=workflow_id,
        workflow_name=f"Workflow {workflow_id}",
        status=status,
        error=error,
        covered_nodes=covered_nodes or {},
    )


class TestRecord:
    def test_counters_and_issue_lists(self):
        result = BatchResult(total_workflows=3)

        result.record(_outcome("1", ExecutionStatus.SUCCESS, covered_nodes={"set": 2}))
        result.record(_outcome("2", ExecutionStatus.WARNING, error="Snapshot not found."))
        result.record(_outcome("3", ExecutionStatus.ERROR, error="boom"))

        summary = result.summary
        assert summary.successful_executions == 1
        assert summary.warning_executions == 1
        assert summary.failed_executions == 1
        assert summary.warnings == [ExecutionIssue(workflow_id="2", error="Snapshot not found.")]
        assert summary.errors == [ExecutionIssue(workflow_id="3", error="boom")]
        assert summary.issue_count == 2
        assert result.is_consistent()

    def test_coverage_only_from_successes(self):
        result = BatchResult()

        result.record(_outcome("1", ExecutionStatus.SUCCESS, covered_nodes={"set": 2, "if": 1}))
        result.record(_outcome("2", ExecutionStatus.SUCCESS, covered_nodes={"set": 1}))
        result.record(_outcome("3", ExecutionStatus.ERROR, error="x", covered_nodes={"code": 1}))

        assert result.covered_nodes == {"set": 3, "if": 1}

    def test_non_terminal_status_raises(self):
        result = BatchResult()

        with pytest.raises(InternalConsistencyError, match="Wrong execution status"):
            result.record(_outcome("7", ExecutionStatus.RUNNING))

        assert result.executions == []
        assert result.is_consistent()


class TestCiMessage:
    def test_lists_failures_below_limit(self):
        summary = ResultSummary(
            failed_executions=2,
            errors=[
                ExecutionIssue(workflow_id="1", error="boom"),
                ExecutionIssue(workflow_id="2", error="bang"),
            ],
        )

        assert build_ci_message(summary) == (
            "*2 Executions errors*. Workflows failing: *1*: boom *2*: bang "
        )

    def test_count_only_from_six_failures(self):
        errors = [ExecutionIssue(workflow_id=str(i), error="boom") for i in range(6)]
        summary = ResultSummary(failed_executions=6, errors=errors)

        assert build_ci_message(summary) == "*6 Executions errors*"


class TestReport:
    def test_camel_case_keys(self):
        result = BatchResult(total_workflows=1)
        result.record(_outcome("1", ExecutionStatus.SUCCESS))

        report = result.to_report()

        assert report["totalWorkflows"] == 1
        assert report["summary"]["successfulExecutions"] == 1
        assert report["executions"][0]["workflowId"] == "1"
        assert report["executions"][0]["executionStatus"] == "success"

    def test_short_report_omits_successes(self):
        result = BatchResult(total_workflows=2)
        result.record(_outcome("1", ExecutionStatus.SUCCESS))
        result.record(_outcome("2", ExecutionStatus.ERROR, error="boom"))

        report = result.to_report(short=True)

        assert [execution["workflowId"] for execution in report["executions"]] == ["2"]
        assert report["summary"]["successfulExecutions"] == 1

    def test_outcome_accepts_wire_aliases(self):
        outcome = ExecutionOutcome.model_validate(
            {"workflowId": "9", "executionStatus": "warning", "error": "slow"}
        )

        assert outcome.workflow_id == "9"
        assert outcome.status == ExecutionStatus.WARNING
