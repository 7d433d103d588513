"""Batch run configuration.

BatchConfig carries every parameter of the programmatic entry point. It can be
built directly or from WORKFLOWS_BATCH_* environment variables:

    WORKFLOWS_BATCH_CONCURRENCY    Parallel workers (default: 1)
    WORKFLOWS_BATCH_RETRIES        Retry passes for failed/warned workflows (default: 1)
    WORKFLOWS_BATCH_IDS            Comma separated workflow ids, or a file containing them
    WORKFLOWS_BATCH_SKIP_LIST      JSON file: [{"workflowId": "..", "skipReason": ..}, ...]
    WORKFLOWS_BATCH_SNAPSHOT_DIR   Existing directory receiving new snapshots
    WORKFLOWS_BATCH_COMPARE_DIR    Existing directory holding snapshots to compare against
    WORKFLOWS_BATCH_SHALLOW        Shallow comparison (true/false)
    WORKFLOWS_BATCH_CI_SUMMARY     Build the short CI message (true/false)
    WORKFLOWS_BATCH_OUTPUT         File receiving the JSON report
    WORKFLOWS_BATCH_SHORT_OUTPUT   Omit successful executions from the report (true/false)
    WORKFLOWS_BATCH_DEBUG          Live per-worker progress display (true/false)
    WORKFLOWS_BATCH_TIMEOUT        Per-workflow timeout in seconds (default: 300)
    WORKFLOWS_BATCH_WORKFLOWS_DIR  Directory of workflow definition files
    WORKFLOWS_BATCH_ENGINE_URL     Base URL of the HTTP execution engine
    GITHUB_OUTPUT                  File receiving the CI message (when CI summary is enabled)
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .engine.exceptions import ConfigurationError
from .engine.models import is_valid_workflow_id

ENV_PREFIX = "WORKFLOWS_BATCH_"
DEFAULT_EXECUTION_TIMEOUT = 300.0

_TRUE_VALUES = {"1", "true", "yes", "on"}


class BatchConfig(BaseModel):
    """Validated configuration of one batch run."""

    model_config = ConfigDict(frozen=True)

    concurrency: int = Field(default=1, description="Number of parallel workers")
    retries: int = Field(default=1, description="Retry passes over failed/warned workflows")
    ids: tuple[str, ...] = Field(default=(), description="Workflow allow-list (empty = all)")
    skip_ids: tuple[str, ...] = Field(default=(), description="Workflow skip-list")
    snapshot_dir: Path | None = Field(default=None, description="Directory to write snapshots")
    compare_dir: Path | None = Field(default=None, description="Directory to compare against")
    shallow: bool = Field(default=False, description="Collapse outputs to top-level shapes")
    ci_summary: bool = Field(default=False, description="Build the short CI message")
    output_file: Path | None = Field(default=None, description="JSON report destination")
    short_output: bool = Field(default=False, description="Omit successful executions")
    debug: bool = Field(default=False, description="Live progress display")
    execution_timeout: float = Field(
        default=DEFAULT_EXECUTION_TIMEOUT, description="Per-workflow timeout in seconds"
    )
    workflows_dir: Path | None = Field(default=None, description="Workflow definitions directory")
    engine_url: str | None = Field(default=None, description="HTTP execution engine base URL")
    github_output: Path | None = Field(default=None, description="CI output file")

    @model_validator(mode="after")
    def validate_settings(self) -> BatchConfig:
        """Reject settings that would make the run meaningless."""
        if self.concurrency < 1:
            raise ConfigurationError(f"Concurrency must be at least 1, got {self.concurrency}")
        if self.retries < 0:
            raise ConfigurationError(f"Retries must not be negative, got {self.retries}")
        if self.execution_timeout <= 0:
            raise ConfigurationError(
                f"Execution timeout must be positive, got {self.execution_timeout}"
            )

        for name, directory in (("snapshot", self.snapshot_dir), ("compare", self.compare_dir)):
            if directory is not None and not directory.is_dir():
                raise ConfigurationError(
                    f"The {name} directory must be an existing directory: {directory}"
                )

        if self.output_file is not None and self.output_file.is_dir():
            raise ConfigurationError(f"The output must be a writable file: {self.output_file}")

        for workflow_id in (*self.ids, *self.skip_ids):
            if not is_valid_workflow_id(workflow_id):
                raise ConfigurationError(f"Invalid workflow id: {workflow_id!r}")

        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BatchConfig:
        """Build configuration from environment variables.

        Raises:
            ConfigurationError: If any variable is malformed
        """
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(f"{ENV_PREFIX}{name}", "").strip()
            return value or None

        def flag(name: str) -> bool:
            return (get(name) or "").lower() in _TRUE_VALUES

        def number(name: str, default: float, kind: type[int] | type[float]) -> float:
            raw = get(name)
            if raw is None:
                return default
            try:
                return kind(raw)
            except ValueError as e:
                raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from e

        ids_param = get("IDS")
        skip_list = get("SKIP_LIST")
        github_output = env.get("GITHUB_OUTPUT", "").strip()

        try:
            return cls(
                concurrency=int(number("CONCURRENCY", 1, int)),
                retries=int(number("RETRIES", 1, int)),
                ids=parse_id_list(ids_param) if ids_param else (),
                skip_ids=load_skip_list(Path(skip_list)) if skip_list else (),
                snapshot_dir=_optional_path(get("SNAPSHOT_DIR")),
                compare_dir=_optional_path(get("COMPARE_DIR")),
                shallow=flag("SHALLOW"),
                ci_summary=flag("CI_SUMMARY"),
                output_file=_optional_path(get("OUTPUT")),
                short_output=flag("SHORT_OUTPUT"),
                debug=flag("DEBUG"),
                execution_timeout=number("TIMEOUT", DEFAULT_EXECUTION_TIMEOUT, float),
                workflows_dir=_optional_path(get("WORKFLOWS_DIR")),
                engine_url=get("ENGINE_URL"),
                github_output=Path(github_output) if github_output else None,
            )
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration:\n{e}") from e


def _optional_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def parse_id_list(value: str) -> tuple[str, ...]:
    """Parse the workflow allow-list parameter.

    The value is either a path to a file holding a comma separated list, or
    the comma separated list itself. Entries from a file that are not valid
    ids are dropped; an inline list must contain at least one valid id.

    Raises:
        ConfigurationError: If an inline list has no valid id
    """
    path = Path(value).expanduser()
    if path.is_file():
        entries = path.read_text(encoding="utf-8").rstrip().split(",")
        return tuple(entry.strip() for entry in entries if is_valid_workflow_id(entry.strip()))

    matched = tuple(
        entry.strip() for entry in value.split(",") if is_valid_workflow_id(entry.strip())
    )
    if not matched:
        raise ConfigurationError(
            "The workflow id list must be a list of ids separated by a comma "
            "or a file with this content."
        )
    return matched


def load_skip_list(path: Path) -> tuple[str, ...]:
    """Read workflow ids to skip from a JSON skip-list file.

    Raises:
        ConfigurationError: If the file is missing or not a valid skip list
    """
    if not path.is_file():
        raise ConfigurationError(f"Skip list file not found: {path}")

    try:
        entries = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Skip list file is not a valid JSON: {e}") from e

    if not isinstance(entries, list):
        raise ConfigurationError("Skip list file must contain a JSON list")

    skip_ids: list[str] = []
    for entry in entries:
        if not isinstance(entry, dict) or "workflowId" not in entry:
            raise ConfigurationError(f"Skip list entry without workflowId: {entry!r}")
        skip_ids.append(str(entry["workflowId"]))
    return tuple(skip_ids)


__all__ = ["BatchConfig", "load_skip_list", "parse_id_list"]
