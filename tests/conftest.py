"""Shared test configuration for workflows-batch tests.

Common fixtures:
- engine: scripted FakeEngine (see test_utils)
- snapshot_dir: empty snapshot directory
- make_context: RunContext factory from BatchConfig settings
"""

from collections.abc import Callable
from typing import Any

import pytest
from test_utils import FakeEngine

from workflows_batch.config import BatchConfig
from workflows_batch.context import RunContext


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def snapshot_dir(tmp_path):
    directory = tmp_path / "snapshots"
    directory.mkdir()
    return directory


@pytest.fixture
def make_context() -> Callable[..., RunContext]:
    """Factory building a RunContext from BatchConfig keyword arguments."""

    def _make(**settings: Any) -> RunContext:
        return RunContext(config=BatchConfig(**settings))

    return _make
