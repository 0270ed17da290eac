"""Service layer.

Workflow and execution services used by the API, plus the collaborator
implementations the engine is wired with.
"""

from hiveflow.services.execution_service import WorkflowExecutionService
from hiveflow.services.workflow_service import (
    InvalidWorkflowError,
    WorkflowService,
    WorkflowServiceError,
)

__all__ = [
    "InvalidWorkflowError",
    "WorkflowExecutionService",
    "WorkflowService",
    "WorkflowServiceError",
]
