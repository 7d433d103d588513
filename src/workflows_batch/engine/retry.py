"""Retry and merge of failed/warned workflows.

After a pass, workflows with a warning or error outcome are re-run in a fresh
pass. Only retried successes are merged back:

- the previous record of that workflow is dropped
- it is removed from the summary's errors/warnings (counter decremented)
- the success counter is incremented and its coverage folded in
- the new success record is appended

Retried failures are ignored, the first record stays authoritative. Retrying
is indiscriminate: structural regressions are retried like transient errors.
"""

from __future__ import annotations

import logging

from .results import BatchResult, ExecutionStatus

logger = logging.getLogger(__name__)


def retry_candidates(result: BatchResult) -> list[str]:
    """Distinct workflow ids currently failed or warned (errors first)."""
    candidates: list[str] = []
    for issue in (*result.summary.errors, *result.summary.warnings):
        if issue.workflow_id not in candidates:
            candidates.append(issue.workflow_id)
    return candidates


def merge_batch(previous: BatchResult, retried: BatchResult) -> BatchResult:
    """Fold the successes of a retry pass into a previous result.

    Pure: neither argument is modified.

    Args:
        previous: Aggregate result so far
        retried: Result of the retry pass

    Returns:
        New BatchResult with retried successes replacing earlier records
    """
    merged = previous.model_copy(deep=True)
    if retried.summary.successful_executions == 0:
        return merged

    summary = merged.summary
    for outcome in retried.executions:
        if outcome.status != ExecutionStatus.SUCCESS:
            continue

        workflow_id = outcome.workflow_id
        already_successful = any(
            prior.workflow_id == workflow_id and prior.status == ExecutionStatus.SUCCESS
            for prior in merged.executions
        )
        merged.executions = [
            prior for prior in merged.executions if prior.workflow_id != workflow_id
        ]

        errors_before = len(summary.errors)
        summary.errors = [issue for issue in summary.errors if issue.workflow_id != workflow_id]
        summary.failed_executions -= errors_before - len(summary.errors)

        warnings_before = len(summary.warnings)
        summary.warnings = [
            issue for issue in summary.warnings if issue.workflow_id != workflow_id
        ]
        summary.warning_executions -= warnings_before - len(summary.warnings)

        if not already_successful:
            summary.successful_executions += 1
            merged.add_coverage(outcome.covered_nodes)

        merged.executions.append(outcome.model_copy(deep=True))
        logger.debug(f"Merged retried success for workflow {workflow_id}")

    return merged


__all__ = ["merge_batch", "retry_candidates"]
