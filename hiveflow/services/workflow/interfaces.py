"""Collaborator contracts consumed by the engine.

The engine depends on these protocols only; concrete implementations
(SQL persistence, local task runner, webhook notifier) are wired in by
the service container.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from hiveflow.models.enums import (
    ExecutionStatus,
    NotificationChannel,
    TaskExecutionStatus,
)

if TYPE_CHECKING:
    from hiveflow.schemas.graph import WorkflowGraph
    from hiveflow.services.workflow.results import ExecutionResult


# =============================================================================
# Task execution
# =============================================================================


@dataclass(frozen=True)
class TaskExecutionRequest:
    task_ref: str
    command: str
    cwd: str | None = None


@dataclass
class TaskExecutionState:
    execution_id: str
    status: TaskExecutionStatus
    error: str | None = None
    exit_code: int | None = None
    output: str | None = None


class TaskRunner(Protocol):
    """Runs external tasks and reports their status."""

    async def start_execution(self, request: TaskExecutionRequest) -> str:
        """Start a task and return its execution id."""
        ...

    async def get_execution(self, execution_id: str) -> TaskExecutionState | None:
        ...


@runtime_checkable
class CompletionAwareTaskRunner(Protocol):
    """Task runner that can signal completion instead of being polled."""

    async def wait_for_completion(
        self, execution_id: str, timeout: float
    ) -> TaskExecutionState:
        """Block until the execution leaves RUNNING.

        Raises:
            TimeoutError: The execution is still running after ``timeout``.
        """
        ...


# =============================================================================
# Notification
# =============================================================================


@dataclass(frozen=True)
class NotificationRequest:
    channel: NotificationChannel
    message: str
    title: str | None = None
    webhook_url: str | None = None
    email_to: str | None = None


class Notifier(Protocol):
    async def send(self, request: NotificationRequest) -> None:
        """Deliver a notification.

        Raises:
            NotificationError: The channel is misconfigured or unreachable.
        """
        ...


# =============================================================================
# Persistence
# =============================================================================


@dataclass(frozen=True)
class ExecutionRecord:
    id: int
    workflow_id: int
    started_at: datetime


class WorkflowStore(Protocol):
    """Graph persistence used by the execution controller."""

    async def load_graph(self, workflow_id: int) -> WorkflowGraph | None:
        """Load a stored workflow.

        Raises:
            GraphDefinitionError: The stored document does not parse.
        """
        ...

    async def create_execution_record(self, workflow_id: int) -> ExecutionRecord:
        ...

    async def update_execution_record(
        self,
        execution_id: int,
        *,
        status: ExecutionStatus,
        error: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        ...

    async def create_follow_up_task(
        self,
        workflow: WorkflowGraph,
        execution_id: int,
        title: str,
        description: str,
    ) -> None:
        ...


# =============================================================================
# Observers
# =============================================================================


class ExecutionObserver(Protocol):
    """Receives run lifecycle events."""

    async def on_execution_started(self, execution_id: int, workflow_id: int) -> None:
        ...

    async def on_execution_finished(self, result: ExecutionResult) -> None:
        ...


__all__ = [
    "CompletionAwareTaskRunner",
    "ExecutionObserver",
    "ExecutionRecord",
    "NotificationRequest",
    "Notifier",
    "TaskExecutionRequest",
    "TaskExecutionState",
    "TaskRunner",
    "WorkflowStore",
]
