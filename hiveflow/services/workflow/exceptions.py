"""Graph structure and workflow execution exceptions.

Structural errors carry a machine-readable ``error_code`` and a ``details``
dict for API responses. Execution errors are raised inside the engine and
converted into failed outcomes before they reach a caller.
"""

from typing import Any


# ============================================================================
# Graph structure exceptions
# ============================================================================


class GraphStructureError(Exception):
    """Base exception for graph structure errors.

    Attributes:
        message: Human-readable error message.
        error_code: Machine-readable error code for API responses.
        details: Additional error context as dictionary.
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class CyclicGraphError(GraphStructureError):
    """Raised when leveling cannot place every node.

    Attributes:
        unplaced_nodes: Node ids left without a level; each lies on or
            behind a directed cycle.
    """

    def __init__(self, unplaced_nodes: list[str]) -> None:
        super().__init__(
            message=(
                "Workflow contains cycles: "
                f"{len(unplaced_nodes)} node(s) could not be scheduled "
                f"({', '.join(unplaced_nodes)})"
            ),
            error_code="CYCLE_DETECTED",
            details={"unplaced_nodes": unplaced_nodes},
        )
        self.unplaced_nodes = unplaced_nodes


class InvalidNodeReferenceError(GraphStructureError):
    """Raised when an edge references a node that is not in the graph.

    Attributes:
        missing_nodes: Node ids referenced by edges but not defined.
    """

    def __init__(self, node_ids: list[str]) -> None:
        super().__init__(
            message=f"Edges reference unknown nodes: {', '.join(node_ids)}",
            error_code="NODE_NOT_FOUND",
            details={"missing_nodes": node_ids},
        )
        self.missing_nodes = node_ids


class GraphDefinitionError(GraphStructureError):
    """Raised when a stored graph cannot be parsed into the graph model."""

    def __init__(self, workflow_id: int, reason: str) -> None:
        super().__init__(
            message=f"Workflow {workflow_id} has an invalid definition: {reason}",
            error_code="INVALID_DEFINITION",
            details={"workflow_id": workflow_id},
        )
        self.workflow_id = workflow_id
        self.reason = reason


# ============================================================================
# Workflow execution exceptions
# ============================================================================


class ExecutionError(Exception):
    """Base exception for workflow execution errors.

    Attributes:
        message: Human-readable error message.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class WorkflowNotFoundError(ExecutionError):
    """Raised when a run is requested for a workflow that does not exist."""

    def __init__(self, workflow_id: int) -> None:
        super().__init__(f"Workflow {workflow_id} not found")
        self.workflow_id = workflow_id


class NodeExecutionError(ExecutionError):
    """Raised when a node inside a sub-graph (loop body) fails.

    Attributes:
        node_id: ID of the node that failed.
        reason: The node's error text.
    """

    def __init__(self, node_id: str, reason: str) -> None:
        super().__init__(f"Node {node_id} execution failed: {reason}")
        self.node_id = node_id
        self.reason = reason


class ExecutionCancelledError(ExecutionError):
    """Raised when a cancelled run reaches a level boundary."""

    def __init__(self, execution_id: int | None) -> None:
        super().__init__(f"Execution {execution_id} was cancelled")
        self.execution_id = execution_id


class ConditionDepthError(ExecutionError):
    """Raised when condition groups nest deeper than the configured limit."""

    def __init__(self, max_depth: int) -> None:
        super().__init__(f"Condition groups nested deeper than {max_depth} levels")
        self.max_depth = max_depth
