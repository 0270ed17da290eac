"""In-memory collaborators for engine tests."""

import asyncio
import itertools
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from hiveflow.models.enums import ExecutionStatus, TaskExecutionStatus
from hiveflow.schemas.graph import WorkflowGraph
from hiveflow.services.workflow.exceptions import GraphDefinitionError
from hiveflow.services.workflow.interfaces import (
    ExecutionRecord,
    NotificationRequest,
    TaskExecutionRequest,
    TaskExecutionState,
)
from hiveflow.services.workflow.results import ExecutionResult


class FakeStore:
    """WorkflowStore keeping graphs and execution records in dicts.

    Workflow ids in ``broken`` raise GraphDefinitionError on load.
    """

    def __init__(self, *graphs: WorkflowGraph) -> None:
        self.graphs: dict[int, WorkflowGraph] = {}
        self.broken: set[int] = set()
        self.records: dict[int, dict[str, Any]] = {}
        self.follow_ups: list[dict[str, Any]] = []
        self._ids = itertools.count(1)
        for graph in graphs:
            self.add(graph)

    def add(self, graph: WorkflowGraph) -> None:
        assert graph.id is not None
        self.graphs[graph.id] = graph

    async def load_graph(self, workflow_id: int) -> WorkflowGraph | None:
        if workflow_id in self.broken:
            raise GraphDefinitionError(workflow_id, "nodes.0.id: Field required")
        return self.graphs.get(workflow_id)

    async def create_execution_record(self, workflow_id: int) -> ExecutionRecord:
        record = ExecutionRecord(
            id=next(self._ids), workflow_id=workflow_id, started_at=datetime.now(UTC)
        )
        self.records[record.id] = {
            "workflow_id": workflow_id,
            "status": ExecutionStatus.RUNNING,
            "error": None,
            "data": None,
            "updates": 0,
        }
        return record

    async def update_execution_record(
        self,
        execution_id: int,
        *,
        status: ExecutionStatus,
        error: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        record = self.records[execution_id]
        if record["status"] != ExecutionStatus.RUNNING:
            raise ValueError(f"Execution {execution_id} is already {record['status']}")
        record.update(status=status, error=error, data=data)
        record["updates"] += 1

    async def create_follow_up_task(
        self,
        workflow: WorkflowGraph,
        execution_id: int,
        title: str,
        description: str,
    ) -> None:
        self.follow_ups.append(
            {
                "workflow_id": workflow.id,
                "execution_id": execution_id,
                "title": title,
                "description": description,
            }
        )


class PollingTaskRunner:
    """TaskRunner whose executions report RUNNING for ``polls`` lookups."""

    def __init__(
        self,
        *,
        status: TaskExecutionStatus = TaskExecutionStatus.COMPLETED,
        output: str | None = "ok",
        error: str | None = None,
        polls: int = 1,
        missing: bool = False,
    ) -> None:
        self.status = status
        self.output = output
        self.error = error
        self.polls = polls
        self.missing = missing
        self.requests: list[TaskExecutionRequest] = []
        self.lookups = 0
        self._remaining: dict[str, int] = {}

    async def start_execution(self, request: TaskExecutionRequest) -> str:
        self.requests.append(request)
        execution_id = f"task-{len(self.requests)}"
        self._remaining[execution_id] = self.polls
        return execution_id

    async def get_execution(self, execution_id: str) -> TaskExecutionState | None:
        self.lookups += 1
        if self.missing:
            return None
        if self._remaining[execution_id] > 0:
            self._remaining[execution_id] -= 1
            return TaskExecutionState(
                execution_id=execution_id, status=TaskExecutionStatus.RUNNING
            )
        return self.final_state(execution_id)

    def final_state(self, execution_id: str) -> TaskExecutionState:
        completed = self.status == TaskExecutionStatus.COMPLETED
        return TaskExecutionState(
            execution_id=execution_id,
            status=self.status,
            error=self.error,
            exit_code=0 if completed else 1,
            output=self.output,
        )


class PushTaskRunner(PollingTaskRunner):
    """TaskRunner that signals completion instead of being polled."""

    def __init__(self, *, hang: bool = False, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.hang = hang
        self.waited: list[tuple[str, float]] = []

    async def wait_for_completion(
        self, execution_id: str, timeout: float
    ) -> TaskExecutionState:
        self.waited.append((execution_id, timeout))
        if self.hang:
            raise TimeoutError(execution_id)
        return self.final_state(execution_id)


class FakeNotifier:
    """Notifier recording requests; raises ``error`` for the first ``failures`` sends."""

    def __init__(self, *, failures: int = 0, error: Exception | None = None) -> None:
        self.sent: list[NotificationRequest] = []
        self.attempts = 0
        self.failures = failures
        self.error = error

    async def send(self, request: NotificationRequest) -> None:
        self.attempts += 1
        if self.attempts <= self.failures:
            assert self.error is not None
            raise self.error
        self.sent.append(request)


class RecordingObserver:
    def __init__(self) -> None:
        self.started: list[tuple[int, int]] = []
        self.finished: list[ExecutionResult] = []

    async def on_execution_started(self, execution_id: int, workflow_id: int) -> None:
        self.started.append((execution_id, workflow_id))

    async def on_execution_finished(self, result: ExecutionResult) -> None:
        self.finished.append(result)


class FailingObserver:
    async def on_execution_started(self, execution_id: int, workflow_id: int) -> None:
        raise RuntimeError("observer down")

    async def on_execution_finished(self, result: ExecutionResult) -> None:
        raise RuntimeError("observer down")


class StubRunner:
    """SubgraphRunner for processor tests that never reach nested runs."""

    async def run_subgraph(self, context, node_ids, root_input):
        raise AssertionError("run_subgraph not expected")

    async def run_subworkflow(self, context, workflow_id, trigger_data):
        raise AssertionError("run_subworkflow not expected")


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


class FakeSource:
    """ActiveWorkflowSource returning a fixed list of graphs."""

    def __init__(self, workflows=()):
        self.workflows = list(workflows)

    async def list_active_workflows(self):
        return self.workflows


class FakeEngine:
    """Engine stand-in for the scheduler; ``error`` makes every run raise."""

    def __init__(self, status=ExecutionStatus.SUCCESS, error: Exception | None = None):
        self.status = status
        self.error = error
        self.calls: list[int] = []

    async def execute(self, workflow_id, trigger_data=None):
        self.calls.append(workflow_id)
        if self.error is not None:
            raise self.error
        return ExecutionResult(
            execution_id=len(self.calls), workflow_id=workflow_id, status=self.status
        )
