"""Execution record model.

A WorkflowExecution is created in RUNNING state when a run starts and is
finalized exactly once. The state helpers reject any second transition.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hiveflow.models.base import Base
from hiveflow.models.enums import ExecutionStatus
from hiveflow.models.workflow import JSONType

if TYPE_CHECKING:
    from hiveflow.models.workflow import Workflow


class WorkflowExecution(Base):
    """One run of a workflow graph.

    Attributes:
        id: Integer primary key
        workflow_id: The executed workflow
        status: running, success, failed or cancelled
        started_at: When the run was created
        completed_at: When the run reached a terminal state
        error: Top-level error text for failed runs
        execution_data: Node id (plus the trigger key) to resolved output
    """

    __tablename__ = "workflow_executions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    workflow_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    status: Mapped[ExecutionStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ExecutionStatus.RUNNING,
        server_default="running",
    )

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    execution_data: Mapped[dict[str, Any] | None] = mapped_column(
        JSONType,
        nullable=True,
    )

    workflow: Mapped[Workflow] = relationship(
        "Workflow",
        back_populates="executions",
    )

    @property
    def is_terminal(self) -> bool:
        """Check if execution is in a terminal state."""
        return self.status != ExecutionStatus.RUNNING

    @property
    def duration_seconds(self) -> float | None:
        """Execution duration in seconds, None while running."""
        if self.started_at is None or self.completed_at is None:
            return None
        # SQLite returns naive datetimes
        started = self.started_at.replace(tzinfo=self.started_at.tzinfo or UTC)
        completed = self.completed_at.replace(tzinfo=self.completed_at.tzinfo or UTC)
        return (completed - started).total_seconds()

    def _finish(self, status: ExecutionStatus) -> None:
        if self.is_terminal:
            raise ValueError(f"Cannot move execution from {self.status} to {status}")
        self.status = status
        self.completed_at = datetime.now(UTC)

    def complete(self, execution_data: dict[str, Any] | None = None) -> None:
        """Mark execution as successful.

        Args:
            execution_data: Resolved outputs keyed by node id.

        Raises:
            ValueError: If execution is not in RUNNING state.
        """
        self._finish(ExecutionStatus.SUCCESS)
        self.execution_data = execution_data

    def fail(
        self, error: str, execution_data: dict[str, Any] | None = None
    ) -> None:
        """Mark execution as failed.

        Args:
            error: Description of what caused the failure.
            execution_data: Outputs of the nodes that finished before the failure.

        Raises:
            ValueError: If execution is not in RUNNING state.
        """
        self._finish(ExecutionStatus.FAILED)
        self.error = error
        self.execution_data = execution_data

    def cancel(self, execution_data: dict[str, Any] | None = None) -> None:
        """Cancel the execution.

        Raises:
            ValueError: If execution is not in RUNNING state.
        """
        self._finish(ExecutionStatus.CANCELLED)
        self.execution_data = execution_data

    def __repr__(self) -> str:
        """Return string representation of the workflow execution."""
        return (
            f"<WorkflowExecution(id={self.id}, workflow_id={self.workflow_id}, "
            f"status={self.status})>"
        )


__all__ = ["WorkflowExecution"]
