"""Execution context for a single workflow run.

The context owns the run's data map: node id to output, plus the trigger
payload under TRIGGER_KEY. Only the execution controller records outputs;
processors read their resolved input and may look up other outputs.

A trigger node's output is the trigger payload itself, so it is recorded
as an alias of TRIGGER_KEY rather than as a second copy.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, Final, Protocol

from hiveflow.models.enums import NodeType

if TYPE_CHECKING:
    from hiveflow.schemas.graph import BaseNode, Edge, WorkflowGraph
    from hiveflow.services.workflow.cancellation import CancellationToken
    from hiveflow.services.workflow.results import ExecutionResult, NodeOutcome

TRIGGER_KEY: Final = "__trigger__"

_UNSET: Final = object()


class SubgraphRunner(Protocol):
    """Engine entry points available to loop and subworkflow processors."""

    async def run_subgraph(
        self, context: ExecutionContext, node_ids: set[str], root_input: Any
    ) -> Any:
        ...

    async def run_subworkflow(
        self, context: ExecutionContext, workflow_id: int, trigger_data: Any
    ) -> ExecutionResult:
        ...


class ExecutionContext:
    """Run-scoped state shared by the controller and processors.

    Attributes:
        workflow: The graph being executed (read-only during the run).
        execution_id: Persisted execution record id.
        token: Cancellation token checked between levels.
        runner: Engine callbacks for nested execution.
        call_stack: Workflow ids from the outermost run down to this one.
        root_input: Input given to nodes without incoming edges.

    Example:
        >>> context = ExecutionContext(workflow=graph, execution_id=1,
        ...                            trigger_data={"ref": "main"}, ...)
        >>> context.resolve_input([])
        {'ref': 'main'}
    """

    def __init__(
        self,
        *,
        workflow: WorkflowGraph,
        execution_id: int,
        trigger_data: Any,
        token: CancellationToken,
        runner: SubgraphRunner,
        call_stack: tuple[int, ...] = (),
        root_input: Any = _UNSET,
        parent: ExecutionContext | None = None,
    ) -> None:
        self.workflow = workflow
        self.execution_id = execution_id
        self.token = token
        self.runner = runner
        self.call_stack = call_stack
        self.root_input = trigger_data if root_input is _UNSET else root_input
        self._parent = parent
        self._data: dict[str, Any] = {TRIGGER_KEY: trigger_data}
        self._aliases: dict[str, str] = {}
        self._branches: dict[str, str] = {}

    @property
    def trigger_data(self) -> Any:
        return self._data[TRIGGER_KEY]

    def scoped(self, root_input: Any) -> ExecutionContext:
        """Child context for one loop iteration.

        Outputs recorded in the child stay in the child; lookups fall back to
        this context for nodes outside the loop body.
        """
        return ExecutionContext(
            workflow=self.workflow,
            execution_id=self.execution_id,
            trigger_data=self.trigger_data,
            token=self.token,
            runner=self.runner,
            call_stack=self.call_stack,
            root_input=root_input,
            parent=self,
        )

    def record(self, node: BaseNode, outcome: NodeOutcome) -> None:
        """Store a successful node outcome."""
        if node.type == NodeType.TRIGGER:
            self._aliases[node.id] = TRIGGER_KEY
        else:
            self._data[node.id] = outcome.output
        if outcome.branch is not None:
            self._branches[node.id] = outcome.branch

    def has_output(self, node_id: str) -> bool:
        if node_id in self._data or node_id in self._aliases:
            return True
        return self._parent is not None and self._parent.has_output(node_id)

    def output_of(self, node_id: str) -> Any:
        key = self._aliases.get(node_id, node_id)
        if key in self._data:
            return self._data[key]
        if self._parent is not None:
            return self._parent.output_of(node_id)
        return None

    def branch_of(self, node_id: str) -> str | None:
        if node_id in self._branches:
            return self._branches[node_id]
        return self._parent.branch_of(node_id) if self._parent is not None else None

    def is_live(self, edge: Edge) -> bool:
        """Whether an edge carries data in this run.

        An edge is live when its source produced an output and, for sources
        that chose a branch, the edge's ``source_handle`` names that branch.
        Edges without a handle follow every branch.
        """
        if not self.has_output(edge.source):
            return False
        branch = self.branch_of(edge.source)
        return branch is None or edge.source_handle is None or edge.source_handle == branch

    def resolve_input(self, incoming: list[Edge]) -> Any:
        """Input for a node given its incoming edges.

        No edges gives the root input. One edge gives that source's
        output. Several edges give a mapping of source id to output for the
        live sources.
        """
        if not incoming:
            return self.root_input
        if len(incoming) == 1:
            return self.output_of(incoming[0].source)
        return {
            edge.source: self.output_of(edge.source)
            for edge in incoming
            if self.is_live(edge)
        }

    def snapshot(self) -> dict[str, Any]:
        """Copy of the data map for persistence and results."""
        return copy.deepcopy(self._data)

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(execution_id={self.execution_id}, "
            f"outputs={len(self._data) - 1}, stack={list(self.call_stack)})"
        )
