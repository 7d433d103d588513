"""Tests for single-workflow execution and classification."""

import json

import pytest
from test_utils import HANG, FakeEngine, make_record, make_workflow, task

from workflows_batch.engine.comparator import BREAKING_CHANGES, NEW_DATA, SNAPSHOT_NOT_FOUND
from workflows_batch.engine.exceptions import EngineError
from workflows_batch.engine.executor import (
    NO_DATA_MESSAGE,
    TIMEOUT_MESSAGE,
    WorkflowExecutor,
    is_transient_error,
)
from workflows_batch.engine.models import WorkflowDescriptor
from workflows_batch.engine.results import ExecutionStatus
from workflows_batch.engine.snapshots import SnapshotStore


@pytest.mark.parametrize(
    "message",
    [
        "ECONNRESET",
        "Request failed with status code 429",
        "Unable to connect to https://api.example.com",
        "The refresh token is invalid",
        "503 Service Unavailable",
        "Internal Server Error",
    ],
)
def test_transient_errors(message):
    assert is_transient_error(message)


def test_non_transient_error():
    assert not is_transient_error("Cannot read properties of undefined")


@pytest.mark.asyncio
async def test_success_without_comparison(make_context, engine):
    executor = WorkflowExecutor(make_context(), engine)

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.SUCCESS
    assert outcome.error is None
    assert outcome.finished is True
    assert outcome.execution_time == 1.5
    assert outcome.covered_nodes == {"n8n-nodes-base.manualTrigger": 1, "n8n-nodes-base.set": 1}
    assert engine.calls["1"] == 1


@pytest.mark.asyncio
async def test_timeout_is_warning_and_execution_is_abandoned(make_context):
    context = make_context(execution_timeout=0.05)
    executor = WorkflowExecutor(context, FakeEngine({"1": [HANG]}))

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.WARNING
    assert outcome.error == TIMEOUT_MESSAGE
    assert context.abandoned_count == 1

    await context.shutdown()
    assert context.abandoned_count == 0


@pytest.mark.asyncio
async def test_transient_result_error_is_warning(make_context):
    engine = FakeEngine({"1": [make_record(error="ECONNRESET", last_node="HTTP Request")]})
    executor = WorkflowExecutor(make_context(), engine)

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.WARNING
    assert outcome.error == "ECONNRESET on node HTTP Request"


@pytest.mark.asyncio
async def test_result_error_prefers_description(make_context):
    record = make_record(error="NodeOperationError", description="Field 'x' is required")
    executor = WorkflowExecutor(make_context(), FakeEngine({"1": [record]}))

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.ERROR
    assert outcome.error == "Field 'x' is required"


@pytest.mark.asyncio
async def test_engine_exception_is_error(make_context):
    executor = WorkflowExecutor(make_context(), FakeEngine({"1": [EngineError("rejected")]}))

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.ERROR
    assert outcome.error == "Workflow failed to execute: rejected"


@pytest.mark.asyncio
async def test_missing_start_node_is_error(make_context, engine):
    workflow = make_workflow("1", nodes=[{"name": "Set", "type": "n8n-nodes-base.set"}])
    executor = WorkflowExecutor(make_context(), engine)

    outcome = await executor.execute(workflow)

    assert outcome.status == ExecutionStatus.ERROR
    assert outcome.error.startswith("Workflow failed to execute:")
    assert "manualTrigger" in outcome.error
    assert engine.calls["1"] == 0


@pytest.mark.asyncio
async def test_no_data_is_error(make_context):
    executor = WorkflowExecutor(make_context(), FakeEngine({"1": [None]}))

    outcome = await executor.execute(make_workflow("1"))

    assert outcome.status == ExecutionStatus.ERROR
    assert outcome.error == NO_DATA_MESSAGE


class TestSnapshots:
    @pytest.mark.asyncio
    async def test_missing_snapshot_is_warning_and_snapshot_is_written(
        self, make_context, engine, snapshot_dir
    ):
        context = make_context(snapshot_dir=snapshot_dir, compare_dir=snapshot_dir)
        executor = WorkflowExecutor(context, engine)

        outcome = await executor.execute(make_workflow("42"))

        assert outcome.status == ExecutionStatus.WARNING
        assert outcome.error == SNAPSHOT_NOT_FOUND
        snapshot_file = snapshot_dir / "42-snapshot.json"
        assert snapshot_file.is_file()
        document = json.loads(snapshot_file.read_text())
        assert document["resultData"]["runData"]["Set"][0]["data"]["main"][0] == [
            {"json": {"name": "Alice", "age": 30}}
        ]

    @pytest.mark.asyncio
    async def test_second_run_matches_its_snapshot(self, make_context, engine, snapshot_dir):
        context = make_context(snapshot_dir=snapshot_dir, compare_dir=snapshot_dir)
        executor = WorkflowExecutor(context, engine)

        await executor.execute(make_workflow("42"))
        outcome = await executor.execute(make_workflow("42"))

        assert outcome.status == ExecutionStatus.SUCCESS
        assert outcome.changes is None

    @pytest.mark.asyncio
    async def test_comparison_happens_before_snapshot_is_replaced(
        self, make_context, snapshot_dir
    ):
        reduced = make_record(run_data={"Set": [task([{"json": {"name": "Alice"}}])]})
        engine = FakeEngine({"42": [make_record(), reduced]})
        context = make_context(snapshot_dir=snapshot_dir, compare_dir=snapshot_dir)
        executor = WorkflowExecutor(context, engine)

        await executor.execute(make_workflow("42"))
        outcome = await executor.execute(make_workflow("42"))

        assert outcome.status == ExecutionStatus.ERROR
        assert outcome.error == BREAKING_CHANGES
        assert outcome.changes is not None
        stored = await SnapshotStore(snapshot_dir).load("42")
        assert stored["resultData"]["runData"]["Set"][0]["data"]["main"][0] == [
            {"json": {"name": "Alice"}}
        ]

    @pytest.mark.asyncio
    async def test_additional_data_is_warning(self, make_context, snapshot_dir, tmp_path):
        compare_dir = tmp_path / "baseline"
        compare_dir.mkdir()
        baseline = WorkflowExecutor(
            make_context(snapshot_dir=compare_dir), FakeEngine({"42": [make_record()]})
        )
        await baseline.execute(make_workflow("42"))

        extended = make_record(
            run_data={"Set": [task([{"json": {"name": "Alice", "age": 30, "email": "a@b.c"}}])]}
        )
        context = make_context(compare_dir=compare_dir, snapshot_dir=snapshot_dir)
        outcome = await WorkflowExecutor(context, FakeEngine({"42": [extended]})).execute(
            make_workflow("42")
        )

        assert outcome.status == ExecutionStatus.WARNING
        assert outcome.error == NEW_DATA
        assert (snapshot_dir / "42-snapshot.json").is_file()

    @pytest.mark.asyncio
    async def test_edge_case_rules_stabilize_comparison(self, make_context, snapshot_dir):
        nodes = [
            {"name": "Start", "type": "n8n-nodes-base.manualTrigger"},
            {"name": "Set", "type": "n8n-nodes-base.set", "notes": "CAP_RESULTS_LENGTH=1"},
        ]
        first = make_record(run_data={"Set": [task([{"json": {"n": 1}}])]})
        second = make_record(run_data={"Set": [task([{"json": {"n": 1}}, {"json": {"n": 2}}])]})
        context = make_context(snapshot_dir=snapshot_dir, compare_dir=snapshot_dir)
        executor = WorkflowExecutor(context, FakeEngine({"7": [first, second]}))

        await executor.execute(make_workflow("7", nodes=nodes))
        outcome = await executor.execute(make_workflow("7", nodes=nodes))

        assert outcome.status == ExecutionStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_unchecked_unsafe_id_never_writes_outside_snapshot_dir(
        self, make_context, engine, snapshot_dir
    ):
        workflow = WorkflowDescriptor.model_construct(
            id="../escape", name="Escape", nodes=make_workflow("1").nodes
        )
        executor = WorkflowExecutor(make_context(snapshot_dir=snapshot_dir), engine)

        outcome = await executor.execute(workflow)

        assert outcome.status == ExecutionStatus.ERROR
        assert "Unsafe workflow id" in outcome.error
        assert list(snapshot_dir.parent.glob("escape*")) == []
        assert list(snapshot_dir.iterdir()) == []
