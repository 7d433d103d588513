"""Batch execution engine core components.

Key Components:

- WorkflowDescriptor / ExecutionRecord: Pydantic v2 wire models
- NodeEdgeCaseRule: Per-node normalization rules parsed from node notes
- normalize_record: Targeted or shallow output normalization
- compare_with_snapshot: Keys-only structural diff and classification
- SnapshotStore: File-per-workflow snapshot storage
- WorkflowExecutor: Single workflow run with timeout and classification
- WorkerPool / ResultCollector: Concurrent pass with serialized aggregation
- merge_batch: Folds retried successes into a previous result
- ExecutionEngine / WorkflowStore: External collaborators (HTTP and directory implementations)
"""

from .collector import ResultCollector
from .comparator import (
    Comparison,
    DiffStats,
    compare_with_snapshot,
    diff_with_stats,
    structural_diff,
)
from .edge_cases import NodeEdgeCaseRule, count_node_types, extract_edge_cases, parse_notes
from .exceptions import (
    BatchError,
    ConfigurationError,
    EngineError,
    InternalConsistencyError,
    StartNodeNotFoundError,
)
from .execution_engine import ExecutionEngine, HttpExecutionEngine
from .executor import WorkflowExecutor, is_transient_error
from .models import (
    ExecutionErrorInfo,
    ExecutionRecord,
    NodeDescriptor,
    ResultData,
    WorkflowDescriptor,
    is_valid_workflow_id,
)
from .normalizer import normalize_record, normalize_run_data
from .pool import WorkerPool
from .progress import ProgressBoard
from .results import (
    BatchResult,
    ExecutionIssue,
    ExecutionOutcome,
    ExecutionStatus,
    ResultSummary,
    build_ci_message,
)
from .retry import merge_batch, retry_candidates
from .snapshots import SnapshotStore, serialize_snapshot
from .store import DirectoryWorkflowStore, InMemoryWorkflowStore, WorkflowStore

__all__ = [
    # Models
    "ExecutionErrorInfo",
    "ExecutionRecord",
    "NodeDescriptor",
    "ResultData",
    "WorkflowDescriptor",
    "is_valid_workflow_id",
    # Normalization and comparison
    "Comparison",
    "DiffStats",
    "NodeEdgeCaseRule",
    "compare_with_snapshot",
    "count_node_types",
    "diff_with_stats",
    "extract_edge_cases",
    "normalize_record",
    "normalize_run_data",
    "parse_notes",
    "structural_diff",
    # Execution
    "ProgressBoard",
    "ResultCollector",
    "SnapshotStore",
    "WorkerPool",
    "WorkflowExecutor",
    "is_transient_error",
    "serialize_snapshot",
    # Results
    "BatchResult",
    "ExecutionIssue",
    "ExecutionOutcome",
    "ExecutionStatus",
    "ResultSummary",
    "build_ci_message",
    "merge_batch",
    "retry_candidates",
    # Collaborators
    "DirectoryWorkflowStore",
    "ExecutionEngine",
    "HttpExecutionEngine",
    "InMemoryWorkflowStore",
    "WorkflowStore",
    # Exceptions
    "BatchError",
    "ConfigurationError",
    "EngineError",
    "InternalConsistencyError",
    "StartNodeNotFoundError",
]
