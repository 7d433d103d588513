"""On-disk snapshot storage.

Storage Layout:
    <directory>/
      <workflow_id>-snapshot.json     # normalized execution record (JSON, 2-space indent)

Snapshot identity is the workflow id. Writes replace the whole file (temp file
+ rename), snapshots are never merged.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar, cast

from .models import is_valid_workflow_id

logger = logging.getLogger(__name__)

T = TypeVar("T")

SNAPSHOT_SUFFIX = "-snapshot.json"


def serialize_snapshot(document: dict[str, Any]) -> str:
    """Serialize a normalized record the way snapshot files store it."""
    return json.dumps(document, indent=2, ensure_ascii=False)


class SnapshotStore:
    """File-per-workflow snapshot directory.

    Example:
        store = SnapshotStore(Path("/data/snapshots"))
        expected = await store.load("42")   # None when no snapshot exists
        await store.save("42", serialize_snapshot(document))
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def path_for(self, workflow_id: str) -> Path:
        """Snapshot file path for a workflow id.

        Raises:
            ValueError: If the id could resolve outside the snapshot directory
        """
        if not is_valid_workflow_id(workflow_id):
            raise ValueError(f"Unsafe workflow id for a snapshot file name: {workflow_id!r}")
        return self._directory / f"{workflow_id}{SNAPSHOT_SUFFIX}"

    async def load(self, workflow_id: str) -> dict[str, Any] | None:
        """Load a snapshot.

        Returns:
            Parsed snapshot document, None if the file does not exist

        Raises:
            json.JSONDecodeError: If the snapshot file is corrupted
        """
        path = self.path_for(workflow_id)

        def _read() -> dict[str, Any] | None:
            if not path.is_file():
                return None
            with open(path, encoding="utf-8") as f:
                return cast(dict[str, Any], json.load(f))

        return await self._run_in_executor(_read)

    async def save(self, workflow_id: str, content: str) -> Path:
        """Write a snapshot, replacing any previous one.

        Args:
            workflow_id: Workflow the snapshot belongs to
            content: Serialized snapshot (see serialize_snapshot)

        Returns:
            Path of the written snapshot
        """
        path = self.path_for(workflow_id)

        def _write() -> None:
            temp_file = path.with_suffix(".json.tmp")
            with open(temp_file, "w", encoding="utf-8") as f:
                f.write(content)
            temp_file.replace(path)

        await self._run_in_executor(_write)
        logger.debug(f"Snapshot written: {path}")
        return path

    async def _run_in_executor(self, func: Callable[[], T]) -> T:
        """Run blocking file I/O in the default thread pool."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)


__all__ = ["SNAPSHOT_SUFFIX", "SnapshotStore", "serialize_snapshot"]
