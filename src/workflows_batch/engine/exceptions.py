"""Batch runner exceptions.

Only configuration problems and internal consistency violations are fatal to a
run. Per-workflow failures are converted into outcomes by the executor and
never propagate as exceptions.
"""

from __future__ import annotations


class BatchError(Exception):
    """Base class for all batch runner errors."""


class ConfigurationError(BatchError):
    """Invalid run configuration (directories, id lists, numeric settings).

    Raised before any workflow is executed.
    """


class InternalConsistencyError(BatchError):
    """
    An outcome reached aggregation with a status that is not terminal.

    Aborts the whole batch.

    Attributes:
        workflow_id: Workflow whose outcome triggered the violation
        status: Offending status value
    """

    def __init__(self, workflow_id: str, status: object):
        self.workflow_id = workflow_id
        self.status = status
        super().__init__(
            f"Wrong execution status for workflow '{workflow_id}': {status!r} - cannot proceed"
        )

    def __repr__(self) -> str:
        return f"InternalConsistencyError(workflow={self.workflow_id!r}, status={self.status!r})"


class EngineError(BatchError):
    """The execution engine rejected a request or could not be reached."""


class StartNodeNotFoundError(EngineError):
    """Workflow has no node the engine can start from."""

    def __init__(self, workflow_id: str, accepted_types: tuple[str, ...]):
        self.workflow_id = workflow_id
        self.accepted_types = accepted_types
        super().__init__(
            f"Workflow '{workflow_id}' cannot be started because it does not have a "
            f"node of type {', '.join(accepted_types)}"
        )


__all__ = [
    "BatchError",
    "ConfigurationError",
    "EngineError",
    "InternalConsistencyError",
    "StartNodeNotFoundError",
]
