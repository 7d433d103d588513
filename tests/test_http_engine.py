"""Tests for the HTTP execution engine adapter (local mock server)."""

import json

import pytest
from pytest_httpserver import HTTPServer
from test_utils import FakeEngine, make_workflow
from werkzeug.wrappers import Request, Response

from workflows_batch.engine.exceptions import EngineError, StartNodeNotFoundError
from workflows_batch.engine.execution_engine import HttpExecutionEngine

RECORD = {
    "startedAt": "2024-01-01T12:00:00.000Z",
    "stoppedAt": "2024-01-01T12:00:02.500Z",
    "finished": True,
    "mode": "cli",
    "resultData": {
        "lastNodeExecuted": "Set",
        "runData": {"Set": [{"data": {"main": [[{"json": {"name": "Alice"}}]]}}]},
    },
}


@pytest.fixture
async def http_engine(httpserver: HTTPServer):
    engine = HttpExecutionEngine(httpserver.url_for("/api").rstrip("/"), poll_interval=0.01)
    yield engine
    await engine.close()


@pytest.mark.asyncio
async def test_run_posts_definition_and_start_node(httpserver: HTTPServer, http_engine):
    received = {}

    def handler(request: Request) -> Response:
        received.update(request.get_json())
        return Response(json.dumps({"executionId": 17}), content_type="application/json")

    httpserver.expect_request("/api/executions", method="POST").respond_with_handler(handler)
    workflow = make_workflow("3")

    execution_id = await http_engine.run(workflow, http_engine.find_start_node(workflow))

    assert execution_id == "17"
    assert received["executionMode"] == "cli"
    assert received["startNodes"] == [{"name": "Start", "sourceData": None}]
    assert received["workflowData"]["id"] == "3"


@pytest.mark.asyncio
async def test_await_completion_polls_until_finished(httpserver: HTTPServer, http_engine):
    httpserver.expect_ordered_request("/api/executions/17").respond_with_data("", status=202)
    httpserver.expect_ordered_request("/api/executions/17").respond_with_data("", status=202)
    httpserver.expect_ordered_request("/api/executions/17").respond_with_json(RECORD)

    record = await http_engine.await_completion("17")

    assert record is not None
    assert record.finished is True
    assert record.duration_seconds == 2.5
    assert record.result_data.last_node_executed == "Set"
    assert record.to_json_dict()["mode"] == "cli"
    httpserver.check_assertions()


@pytest.mark.asyncio
async def test_no_content_means_no_data(httpserver: HTTPServer, http_engine):
    httpserver.expect_request("/api/executions/17").respond_with_data("", status=204)

    assert await http_engine.await_completion("17") is None


@pytest.mark.asyncio
async def test_server_error_raises_engine_error(httpserver: HTTPServer, http_engine):
    httpserver.expect_request("/api/executions", method="POST").respond_with_data(
        "boom", status=500
    )
    workflow = make_workflow("3")

    with pytest.raises(EngineError, match="status code 500"):
        await http_engine.run(workflow, http_engine.find_start_node(workflow))


@pytest.mark.asyncio
async def test_invalid_run_response(httpserver: HTTPServer, http_engine):
    httpserver.expect_request("/api/executions", method="POST").respond_with_json({"id": 1})
    workflow = make_workflow("3")

    with pytest.raises(EngineError, match="invalid run response"):
        await http_engine.run(workflow, http_engine.find_start_node(workflow))


@pytest.mark.asyncio
async def test_unreachable_engine():
    engine = HttpExecutionEngine("http://127.0.0.1:9", request_timeout=1.0)
    try:
        with pytest.raises(EngineError, match="Unable to connect"):
            await engine.await_completion("1")
    finally:
        await engine.close()


class TestFindStartNode:
    def test_priority_order(self):
        engine = FakeEngine()
        workflow = make_workflow(
            "1",
            nodes=[
                {"name": "Manual", "type": "n8n-nodes-base.manualTrigger"},
                {"name": "Sub", "type": "n8n-nodes-base.executeWorkflowTrigger"},
            ],
        )

        assert engine.find_start_node(workflow).name == "Sub"

    def test_no_start_node(self):
        engine = FakeEngine()
        workflow = make_workflow("1", nodes=[{"name": "Set", "type": "n8n-nodes-base.set"}])

        with pytest.raises(StartNodeNotFoundError):
            engine.find_start_node(workflow)
