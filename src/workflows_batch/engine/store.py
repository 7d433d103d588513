"""
Workflow stores: where the batch gets its workflow definitions.

DirectoryWorkflowStore loads one workflow per file:
- *.json files are parsed as JSON
- *.yaml / *.yml files are parsed with yaml.safe_load
Invalid files are skipped with warnings and never fail the whole query.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import WorkflowDescriptor

logger = logging.getLogger(__name__)

WORKFLOW_FILE_PATTERNS = ("*.json", "*.yaml", "*.yml")


class WorkflowStore(ABC):
    """Source of workflow definitions."""

    @abstractmethod
    async def query(
        self,
        ids: Iterable[str] | None = None,
        skip_ids: Iterable[str] | None = None,
    ) -> list[WorkflowDescriptor]:
        """Return workflows, optionally restricted to ids and excluding skip_ids."""
        ...


def filter_workflows(
    workflows: Iterable[WorkflowDescriptor],
    ids: Iterable[str] | None = None,
    skip_ids: Iterable[str] | None = None,
) -> list[WorkflowDescriptor]:
    """Apply allow-list and skip-list filters, preserving order."""
    allowed = set(ids) if ids else None
    skipped = set(skip_ids or ())
    return [
        workflow
        for workflow in workflows
        if (allowed is None or workflow.id in allowed) and workflow.id not in skipped
    ]


class InMemoryWorkflowStore(WorkflowStore):
    """Workflow store backed by a list (embedding and testing)."""

    def __init__(self, workflows: Iterable[WorkflowDescriptor]) -> None:
        self._workflows = list(workflows)

    async def query(
        self,
        ids: Iterable[str] | None = None,
        skip_ids: Iterable[str] | None = None,
    ) -> list[WorkflowDescriptor]:
        return filter_workflows(self._workflows, ids, skip_ids)


def load_workflow_file(path: Path) -> WorkflowDescriptor:
    """Load and validate a single workflow definition file.

    Raises:
        ValueError: If the file cannot be parsed or does not describe a workflow
    """
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix == ".json":
                data: Any = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Invalid syntax in {path.name}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Workflow {path.name} must be a mapping, got {type(data).__name__}")

    try:
        return WorkflowDescriptor.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Workflow validation failed in {path.name}:\n{e}") from e


class DirectoryWorkflowStore(WorkflowStore):
    """Loads workflow definitions from a directory (non-recursive).

    Example:
        store = DirectoryWorkflowStore("/data/workflows")
        workflows = await store.query(ids=["12", "15"])
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        if not self._directory.is_dir():
            raise ConfigurationError(f"Workflow directory not found: {self._directory}")

    def load_all(self) -> list[WorkflowDescriptor]:
        """Load every valid workflow file, sorted by file name."""
        files = sorted(
            {path for pattern in WORKFLOW_FILE_PATTERNS for path in self._directory.glob(pattern)}
        )

        workflows: list[WorkflowDescriptor] = []
        errors: list[str] = []
        for path in files:
            try:
                workflows.append(load_workflow_file(path))
            except (OSError, ValueError) as e:
                errors.append(f"{path.name}: {e}")

        if errors:
            logger.warning(f"{len(errors)} workflow file(s) failed to load:")
            for error in errors:
                logger.warning(f"  - {error}")

        logger.info(f"Loaded {len(workflows)} workflows from {self._directory}")
        return workflows

    async def query(
        self,
        ids: Iterable[str] | None = None,
        skip_ids: Iterable[str] | None = None,
    ) -> list[WorkflowDescriptor]:
        return filter_workflows(self.load_all(), ids, skip_ids)


__all__ = [
    "DirectoryWorkflowStore",
    "InMemoryWorkflowStore",
    "WorkflowStore",
    "filter_workflows",
    "load_workflow_file",
]
