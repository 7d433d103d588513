"""Execution engine collaborators.

The batch runner never executes nodes itself. It hands a workflow definition
and a start node to an engine and waits for the execution record.

HTTP engine contract (HttpExecutionEngine):
    POST {base_url}/executions
        body: {"workflowData": {...}, "startNodes": [{"name": ...}], "executionMode": "cli"}
        200/201 -> {"executionId": "..."}
    GET {base_url}/executions/{execution_id}
        202 -> still running (polled again after poll_interval)
        204 -> finished without data
        200 -> ExecutionRecord JSON
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx
from pydantic import ValidationError

from .exceptions import EngineError, StartNodeNotFoundError
from .models import ExecutionRecord, NodeDescriptor, WorkflowDescriptor

logger = logging.getLogger(__name__)


class ExecutionEngine(ABC):
    """Abstract execution engine.

    Subclasses implement run() and await_completion(). Start node resolution
    has a default implementation based on node types.
    """

    # Node types (last dotted segment) accepted as start nodes, in priority order
    START_NODE_TYPES: tuple[str, ...] = ("start", "executeWorkflowTrigger", "manualTrigger")

    def find_start_node(self, workflow: WorkflowDescriptor) -> NodeDescriptor:
        """Resolve the node an execution starts from.

        Raises:
            StartNodeNotFoundError: If no node has an accepted start type
        """
        for start_type in self.START_NODE_TYPES:
            for node in workflow.nodes:
                if node.type.rsplit(".", 1)[-1] == start_type:
                    return node
        raise StartNodeNotFoundError(workflow.id, self.START_NODE_TYPES)

    @abstractmethod
    async def run(self, workflow: WorkflowDescriptor, start_node: NodeDescriptor) -> str:
        """Start an execution and return its id."""
        ...

    @abstractmethod
    async def await_completion(self, execution_id: str) -> ExecutionRecord | None:
        """Wait until the execution settles; None when the engine returned no data."""
        ...

    async def close(self) -> None:
        """Release engine resources."""
        return None


class HttpExecutionEngine(ExecutionEngine):
    """Execution engine reached over HTTP.

    Usage:
        engine = HttpExecutionEngine("http://localhost:5678/api/batch")
        execution_id = await engine.run(workflow, engine.find_start_node(workflow))
        record = await engine.await_completion(execution_id)
        await engine.close()
    """

    def __init__(
        self,
        base_url: str,
        *,
        poll_interval: float = 1.0,
        request_timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the HTTP engine adapter.

        Args:
            base_url: Engine API root (no trailing slash needed)
            poll_interval: Seconds between completion polls
            request_timeout: Per-request timeout in seconds
            headers: Extra headers (e.g. API key)
            client: Pre-configured client (the adapter will not close it)
        """
        self._base_url = base_url.rstrip("/")
        self._poll_interval = poll_interval
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=request_timeout,
            headers=headers or {},
        )

    async def run(self, workflow: WorkflowDescriptor, start_node: NodeDescriptor) -> str:
        payload: dict[str, Any] = {
            "workflowData": workflow.to_definition(),
            "startNodes": [{"name": start_node.name, "sourceData": None}],
            "executionMode": "cli",
        }
        response = await self._request("POST", "/executions", json=payload)

        try:
            execution_id = response.json()["executionId"]
        except (ValueError, KeyError, TypeError) as e:
            raise EngineError(f"Engine returned an invalid run response: {e}") from e

        logger.debug(f"Engine started execution {execution_id} for workflow {workflow.id}")
        return str(execution_id)

    async def await_completion(self, execution_id: str) -> ExecutionRecord | None:
        while True:
            response = await self._request("GET", f"/executions/{execution_id}")
            if response.status_code == 202:
                await asyncio.sleep(self._poll_interval)
                continue
            if response.status_code == 204 or not response.content:
                return None

            try:
                return ExecutionRecord.model_validate(response.json())
            except (ValueError, ValidationError) as e:
                raise EngineError(
                    f"Engine returned an invalid execution record for {execution_id}: {e}"
                ) from e

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise EngineError(
                f"Engine request {method} {path} failed with status code "
                f"{e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise EngineError(f"Unable to connect to engine ({method} {path}): {e}") from e
        return response


__all__ = ["ExecutionEngine", "HttpExecutionEngine"]
