"""WorkflowExecutor: level-by-level execution of workflow graphs.

A run loads the graph, creates a running execution record, levels the
graph and dispatches each level's nodes concurrently with an
asyncio.TaskGroup. The next level starts only after every node of the
current one has produced an outcome.

Branch pruning:
    A node with incoming edges runs only when at least one of them is
    live, i.e. its source produced an output on the branch the edge
    follows. Nodes behind an untaken conditional branch (and everything
    that only they feed) are skipped and reported in
    ``ExecutionResult.skipped_nodes``.

Loops:
    Loop bodies are taken out of the main schedule; the loop processor
    runs them per iteration through ``run_subgraph``.

Cancellation:
    Cooperative. ``cancel`` sets the run's token and the controller stops
    at the next level boundary. The terminal state is persisted exactly
    once, by the run itself.
"""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from hiveflow.core.config import Settings, get_settings
from hiveflow.core.logging import LogContext, get_logger
from hiveflow.models.enums import ExecutionStatus, NodeType
from hiveflow.services.workflow.algorithms import (
    GraphAlgorithms,
    Level,
    compute_levels,
    find_loop_body,
)
from hiveflow.services.workflow.cancellation import CancellationToken
from hiveflow.services.workflow.context import ExecutionContext
from hiveflow.services.workflow.exceptions import (
    ExecutionCancelledError,
    GraphDefinitionError,
    GraphStructureError,
    NodeExecutionError,
    WorkflowNotFoundError,
)
from hiveflow.services.workflow.results import ExecutionResult, NodeOutcome

if TYPE_CHECKING:
    from hiveflow.schemas.graph import BaseNode, Edge, WorkflowGraph
    from hiveflow.services.workflow.interfaces import ExecutionObserver, WorkflowStore
    from hiveflow.services.workflow.node_executor import NodeExecutor

logger = get_logger(__name__)


class _LevelRun:
    """Outcome of driving a set of levels to completion."""

    __slots__ = ("error", "failed_node", "skipped", "status")

    def __init__(self) -> None:
        self.status = ExecutionStatus.SUCCESS
        self.error: str | None = None
        self.failed_node: str | None = None
        self.skipped: list[str] = []


class WorkflowExecutor:
    """Execution controller for workflow runs.

    Attributes:
        store: Graph and execution record persistence.
        node_executor: Dispatches single nodes to their processors.
        max_parallel_nodes: Upper bound on nodes running at once per level.
        observers: Receive run start and finish events.

    Example:
        >>> executor = WorkflowExecutor(store, NodeExecutor(registry, deps))
        >>> result = await executor.execute(7, {"ref": "main"})
        >>> result.status
        <ExecutionStatus.SUCCESS: 'success'>
    """

    def __init__(
        self,
        store: WorkflowStore,
        node_executor: NodeExecutor,
        *,
        settings: Settings | None = None,
        max_parallel_nodes: int | None = None,
        observers: Iterable[ExecutionObserver] = (),
    ) -> None:
        self.store = store
        self.node_executor = node_executor
        self.settings = settings or get_settings()
        self.max_parallel_nodes = max_parallel_nodes or self.settings.MAX_PARALLEL_NODES
        self.observers = list(observers)
        self._active: dict[int, CancellationToken] = {}

    # ==========================================================================
    # Public API
    # ==========================================================================

    @property
    def active_executions(self) -> list[int]:
        return list(self._active)

    def is_running(self, execution_id: int) -> bool:
        return execution_id in self._active

    async def execute(
        self, workflow_id: int, trigger_data: Any = None
    ) -> ExecutionResult:
        """Run a workflow to a terminal state.

        Never raises for expected conditions: a missing workflow, a graph
        that fails to parse or level, and node failures all come back as a
        failed ExecutionResult.

        Args:
            workflow_id: Stored workflow to run.
            trigger_data: Payload from the webhook, scheduler or caller.

        Returns:
            ExecutionResult. ``execution_id`` is None when no record was
            created (unknown workflow, unreadable definition).
        """
        return await self._execute(
            workflow_id, trigger_data, call_stack=(), parent_token=None
        )

    def cancel(self, execution_id: int) -> bool:
        """Request cancellation of a running execution.

        Returns:
            True if the execution was running, False when it is unknown or
            already finished.
        """
        token = self._active.get(execution_id)
        if token is None:
            return False
        token.cancel()
        logger.info(
            f"Cancellation requested for execution {execution_id}",
            extra={"context": {"execution_id": execution_id}},
        )
        return True

    # ==========================================================================
    # Nested execution (used by loop and subworkflow processors)
    # ==========================================================================

    async def run_subgraph(
        self, context: ExecutionContext, node_ids: set[str], root_input: Any
    ) -> Any:
        """Run a loop body once against ``root_input``.

        Body nodes without an incoming edge from inside the body receive
        ``root_input``. Outputs stay in a scoped child context.

        Returns:
            The output of the body's single sink node, or a mapping of sink
            id to output when the body has several sinks.

        Raises:
            NodeExecutionError: A body node failed.
            ExecutionCancelledError: The run was cancelled mid-iteration.
        """
        scope = [node.id for node in context.workflow.nodes if node.id in node_ids]
        graph = GraphAlgorithms.build(scope, context.workflow.edges, strict=False)
        levels = GraphAlgorithms.compute_levels(graph)

        child = context.scoped(root_input)
        run = await self._run_levels(child, levels, set(scope))
        if run.status == ExecutionStatus.CANCELLED:
            raise ExecutionCancelledError(context.execution_id)
        if run.status == ExecutionStatus.FAILED:
            raise NodeExecutionError(run.failed_node or "", run.error or "")

        sinks = [
            node_id
            for node_id in scope
            if graph.get_out_degree(node_id) == 0 and child.has_output(node_id)
        ]
        if len(sinks) == 1:
            return child.output_of(sinks[0])
        return {node_id: child.output_of(node_id) for node_id in sinks}

    async def run_subworkflow(
        self, context: ExecutionContext, workflow_id: int, trigger_data: Any
    ) -> ExecutionResult:
        """Run another workflow as a child of the current run.

        The child gets its own execution record and a child cancellation
        token, so cancelling the parent also stops the child.
        """
        return await self._execute(
            workflow_id,
            trigger_data,
            call_stack=context.call_stack,
            parent_token=context.token,
        )

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    async def _execute(
        self,
        workflow_id: int,
        trigger_data: Any,
        *,
        call_stack: tuple[int, ...],
        parent_token: CancellationToken | None,
    ) -> ExecutionResult:
        started = time.perf_counter()

        try:
            workflow = await self.store.load_graph(workflow_id)
        except GraphDefinitionError as e:
            return await self._reject(workflow_id, e.message, started)
        if workflow is None:
            return await self._reject(
                workflow_id, WorkflowNotFoundError(workflow_id).message, started
            )

        record = await self.store.create_execution_record(workflow_id)
        token = parent_token.child() if parent_token is not None else CancellationToken()
        self._active[record.id] = token
        context = ExecutionContext(
            workflow=workflow,
            execution_id=record.id,
            trigger_data=trigger_data,
            token=token,
            runner=self,
            call_stack=(*call_stack, workflow_id),
        )

        with LogContext(execution_id=record.id, workflow_id=workflow_id):
            await self._notify_started(record.id, workflow_id)
            logger.info(
                f"Workflow execution started: {workflow.name}",
                extra={"context": {"node_count": len(workflow.nodes)}},
            )
            try:
                run = await self._run_workflow(context)
            finally:
                self._active.pop(record.id, None)

            result = ExecutionResult(
                execution_id=record.id,
                workflow_id=workflow_id,
                status=run.status,
                error=run.error,
                node_results=context.snapshot(),
                skipped_nodes=run.skipped,
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            await self.store.update_execution_record(
                record.id,
                status=result.status,
                error=result.error,
                data=result.node_results,
            )

            if result.succeeded and workflow.auto_create_task:
                await self._create_follow_up_task(workflow, record.id, result)

            await self._notify_finished(result)
        return result

    async def _run_workflow(self, context: ExecutionContext) -> _LevelRun:
        try:
            levels = compute_levels(context.workflow)
        except GraphStructureError as e:
            logger.warning(
                f"Workflow graph cannot be scheduled: {e.message}",
                extra={"context": {"error_code": e.error_code}},
            )
            run = _LevelRun()
            run.status = ExecutionStatus.FAILED
            run.error = e.message
            return run

        scope = {node.id for node in context.workflow.nodes}
        try:
            return await self._run_levels(context, levels, scope)
        except Exception as e:
            logger.exception("Unexpected error while executing workflow")
            run = _LevelRun()
            run.status = ExecutionStatus.FAILED
            run.error = f"Unexpected engine error: {e}"
            return run

    async def _run_levels(
        self, context: ExecutionContext, levels: list[Level], scope: set[str]
    ) -> _LevelRun:
        """Drive levels in order, pruning dead branches, until done or stopped."""
        workflow = context.workflow
        consumed = self._loop_bodies(workflow, scope)
        run = _LevelRun()

        for index, level in enumerate(levels):
            if context.token.cancelled:
                run.status = ExecutionStatus.CANCELLED
                logger.info(f"Execution cancelled before level {index}")
                return run

            batch: list[tuple[BaseNode, Any]] = []
            for node_id in level:
                if node_id in consumed:
                    continue
                incoming = self._incoming(workflow, node_id, scope)
                if incoming and not any(context.is_live(edge) for edge in incoming):
                    run.skipped.append(node_id)
                    continue
                node = workflow.get_node(node_id)
                if node is not None:
                    batch.append((node, context.resolve_input(incoming)))

            if not batch:
                continue

            logger.debug(
                f"Dispatching level {index}",
                extra={"context": {"nodes": [node.id for node, _ in batch]}},
            )
            outcomes = await self._dispatch(context, batch)

            interrupted = False
            for node, _ in batch:
                outcome = outcomes[node.id]
                if outcome.success:
                    context.record(node, outcome)
                elif outcome.cancelled:
                    interrupted = True
                elif run.failed_node is None:
                    run.failed_node = node.id
                    run.error = outcome.error

            if run.failed_node is None and interrupted:
                run.status = ExecutionStatus.CANCELLED
                return run
            if run.failed_node is not None:
                run.status = ExecutionStatus.FAILED
                logger.warning(
                    f"Node {run.failed_node} failed: {run.error}",
                    extra={"context": {"level": index, "node_id": run.failed_node}},
                )
                return run

        if context.token.cancelled:
            run.status = ExecutionStatus.CANCELLED
        if run.skipped:
            logger.info(
                f"Skipped {len(run.skipped)} node(s) on untaken branches",
                extra={"context": {"skipped": run.skipped}},
            )
        return run

    async def _dispatch(
        self, context: ExecutionContext, batch: list[tuple[BaseNode, Any]]
    ) -> dict[str, NodeOutcome]:
        semaphore = asyncio.Semaphore(self.max_parallel_nodes)

        async def run_node(node: BaseNode, node_input: Any) -> NodeOutcome:
            async with semaphore:
                return await self.node_executor.execute(node, node_input, context)

        async with asyncio.TaskGroup() as tg:
            tasks = {
                node.id: tg.create_task(run_node(node, node_input))
                for node, node_input in batch
            }
        return {node_id: task.result() for node_id, task in tasks.items()}

    @staticmethod
    def _incoming(workflow: WorkflowGraph, node_id: str, scope: set[str]) -> list[Edge]:
        return [edge for edge in workflow.incoming_edges(node_id) if edge.source in scope]

    @staticmethod
    def _loop_bodies(workflow: WorkflowGraph, scope: set[str]) -> set[str]:
        consumed: set[str] = set()
        for node in workflow.nodes:
            if node.type == NodeType.LOOP and node.id in scope:
                consumed |= find_loop_body(workflow, node.id) & scope
        return consumed

    async def _reject(
        self, workflow_id: int, error: str, started: float
    ) -> ExecutionResult:
        logger.warning(
            f"Workflow {workflow_id} cannot be executed: {error}",
            extra={"context": {"workflow_id": workflow_id}},
        )
        result = ExecutionResult(
            execution_id=None,
            workflow_id=workflow_id,
            status=ExecutionStatus.FAILED,
            error=error,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        await self._notify_finished(result)
        return result

    async def _create_follow_up_task(
        self, workflow: WorkflowGraph, execution_id: int, result: ExecutionResult
    ) -> None:
        title = f"{workflow.name} - Execution #{execution_id}"
        description = json.dumps(result.node_results, indent=2, default=str)
        try:
            await self.store.create_follow_up_task(
                workflow, execution_id, title, description
            )
        except Exception:
            logger.exception("Failed to create follow-up task")

    async def _notify_started(self, execution_id: int, workflow_id: int) -> None:
        for observer in self.observers:
            try:
                await observer.on_execution_started(execution_id, workflow_id)
            except Exception:
                logger.exception(f"Observer {type(observer).__name__} failed on start")

    async def _notify_finished(self, result: ExecutionResult) -> None:
        for observer in self.observers:
            try:
                await observer.on_execution_finished(result)
            except Exception:
                logger.exception(f"Observer {type(observer).__name__} failed on finish")


class LoggingExecutionObserver:
    """Observer that writes the run lifecycle to the engine log."""

    async def on_execution_started(self, execution_id: int, workflow_id: int) -> None:
        logger.info(
            f"Execution {execution_id} started",
            extra={"context": {"execution_id": execution_id, "workflow_id": workflow_id}},
        )

    async def on_execution_finished(self, result: ExecutionResult) -> None:
        context = {
            "execution_id": result.execution_id,
            "workflow_id": result.workflow_id,
            "status": str(result.status),
            "duration_ms": round(result.duration_ms, 2),
        }
        if result.status == ExecutionStatus.FAILED:
            logger.error(
                f"Execution {result.execution_id} failed: {result.error}",
                extra={"context": context},
            )
        else:
            logger.info(
                f"Execution {result.execution_id} finished: {result.status}",
                extra={"context": context},
            )


WorkflowEngine = WorkflowExecutor

__all__ = ["LoggingExecutionObserver", "WorkflowEngine", "WorkflowExecutor"]
