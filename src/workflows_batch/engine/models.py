"""
Pydantic v2 models for workflow definitions and engine execution records.

Wire format follows the execution engine's JSON (camelCase keys). Models accept
both camelCase aliases and snake_case field names.

Shapes:
- WorkflowDescriptor: id, name, ordered nodes (+ any extra definition fields)
- ExecutionRecord: start/stop timestamps, finished flag, result tree
- Run data: node name -> [task output] where a task output is
  {"data": {connection: [[{"json": {...}}, ...] | None, ...]}}
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Shared configuration: camelCase on the wire, snake_case in Python
CAMEL_CONFIG = ConfigDict(
    alias_generator=AliasGenerator(validation_alias=to_camel, serialization_alias=to_camel),
    populate_by_name=True,
)

# Workflow ids double as snapshot file names
WORKFLOW_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


def is_valid_workflow_id(value: str) -> bool:
    """Check if a workflow id is made of letters, digits, underscores and dashes only."""
    return WORKFLOW_ID_PATTERN.fullmatch(value) is not None


class NodeDescriptor(BaseModel):
    """A single node of a workflow definition.

    Only name, type and notes matter to the batch runner. Any other field
    (parameters, position, credentials, ...) is preserved untouched so the
    engine receives the complete definition.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str = Field(description="Node name, unique within the workflow")
    type: str = Field(description="Node type identifier (e.g. 'n8n-nodes-base.httpRequest')")
    notes: str | None = Field(default=None, description="Free-text annotations")


class WorkflowDescriptor(BaseModel):
    """Immutable workflow definition supplied by the workflow store."""

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str = Field(description="Workflow identifier (snapshot identity)")
    name: str = Field(default="", description="Display name")
    nodes: list[NodeDescriptor] = Field(default_factory=list, description="Ordered nodes")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        """Accept numeric ids as stored by some workflow stores."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("id")
    @classmethod
    def validate_id(cls, value: str) -> str:
        if not is_valid_workflow_id(value):
            raise ValueError(
                f"Invalid workflow id {value!r}: only letters, digits, '_' and '-' are allowed"
            )
        return value

    def to_definition(self) -> dict[str, Any]:
        """Full definition (including extra fields) as sent to the engine."""
        return self.model_dump(mode="json", exclude_none=True)


class ExecutionErrorInfo(BaseModel):
    """Error reported by the engine for a finished execution."""

    model_config = ConfigDict(extra="allow")

    message: str = ""
    description: str | None = None


class ResultData(BaseModel):
    """Result tree of an execution."""

    model_config = CAMEL_CONFIG | ConfigDict(extra="allow")

    error: ExecutionErrorInfo | None = None
    last_node_executed: str | None = None
    run_data: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


class ExecutionRecord(BaseModel):
    """Execution data returned by the engine once an execution settles."""

    model_config = CAMEL_CONFIG | ConfigDict(extra="allow")

    started_at: datetime | None = None
    stopped_at: datetime | None = None
    finished: bool = False
    result_data: ResultData = Field(default_factory=ResultData)

    @property
    def duration_seconds(self) -> float:
        """Wall time reported by the engine (0 when timestamps are missing)."""
        if self.started_at is None or self.stopped_at is None:
            return 0.0
        return (self.stopped_at - self.started_at).total_seconds()

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-compatible dict in wire format (camelCase keys)."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "CAMEL_CONFIG",
    "WORKFLOW_ID_PATTERN",
    "ExecutionErrorInfo",
    "ExecutionRecord",
    "NodeDescriptor",
    "ResultData",
    "WorkflowDescriptor",
    "is_valid_workflow_id",
]
