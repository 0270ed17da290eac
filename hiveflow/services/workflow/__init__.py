"""Workflow validation and execution package.

Components:
- Graph, GraphAlgorithms: directed graph and level scheduler
- WorkflowValidator: candidate document checks and format migration
- conditions: field comparison and AND/OR group evaluation
- NodeExecutor, processors: per-node strategies
- WorkflowExecutor: the execution controller
- SQLWorkflowRepository: persistence for the controller

Example:
    >>> from hiveflow.services.workflow import WorkflowExecutor, WorkflowValidator
    >>> report = WorkflowValidator().validate(document)
    >>> result = await executor.execute(workflow_id, {"ref": "main"})
"""

from hiveflow.services.workflow.algorithms import (
    GraphAlgorithms,
    compute_levels,
    find_loop_body,
)
from hiveflow.services.workflow.cancellation import CancellationToken
from hiveflow.services.workflow.context import TRIGGER_KEY, ExecutionContext
from hiveflow.services.workflow.exceptions import (
    ConditionDepthError,
    CyclicGraphError,
    ExecutionCancelledError,
    ExecutionError,
    GraphDefinitionError,
    GraphStructureError,
    InvalidNodeReferenceError,
    NodeExecutionError,
    WorkflowNotFoundError,
)
from hiveflow.services.workflow.executor import (
    LoggingExecutionObserver,
    WorkflowEngine,
    WorkflowExecutor,
)
from hiveflow.services.workflow.graph import Graph
from hiveflow.services.workflow.node_executor import NodeExecutor
from hiveflow.services.workflow.repository import SQLWorkflowRepository
from hiveflow.services.workflow.results import ExecutionResult, NodeOutcome
from hiveflow.services.workflow.transfer import export_workflow, import_workflow
from hiveflow.services.workflow.validator import WorkflowValidator

__all__ = [
    "TRIGGER_KEY",
    "CancellationToken",
    "ConditionDepthError",
    "CyclicGraphError",
    "ExecutionCancelledError",
    "ExecutionContext",
    "ExecutionError",
    "ExecutionResult",
    "Graph",
    "GraphAlgorithms",
    "GraphDefinitionError",
    "GraphStructureError",
    "InvalidNodeReferenceError",
    "LoggingExecutionObserver",
    "NodeExecutionError",
    "NodeExecutor",
    "NodeOutcome",
    "SQLWorkflowRepository",
    "WorkflowEngine",
    "WorkflowExecutor",
    "WorkflowNotFoundError",
    "WorkflowValidator",
    "compute_levels",
    "export_workflow",
    "find_loop_body",
    "import_workflow",
]
