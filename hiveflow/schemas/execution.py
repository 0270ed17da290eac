"""Execution API schemas."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Any

from pydantic import Field

from hiveflow.models.enums import ExecutionStatus, WorkflowStatus
from hiveflow.schemas.base import BaseSchema


class ExecuteRequest(BaseSchema):
    """Manual run request."""

    trigger_data: dict[str, Any] | None = Field(
        default=None,
        description="Payload exposed to trigger nodes and root nodes",
        examples=[{"branch": "main"}],
    )


class ExecutionResponse(BaseSchema):
    """Persisted execution record."""

    id: int
    workflow_id: int
    status: ExecutionStatus
    started_at: datetime
    completed_at: datetime | None = None
    error: str | None = None
    execution_data: dict[str, Any] | None = None


class ExecutionResultResponse(BaseSchema):
    """Outcome of a finished run."""

    execution_id: int | None = None
    workflow_id: int
    status: ExecutionStatus
    error: str | None = None
    node_results: dict[str, Any] = Field(default_factory=dict)
    skipped_nodes: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0


class CancelResponse(BaseSchema):
    execution_id: int
    cancelled: bool
    message: str


class WebhookAck(BaseSchema):
    """Acknowledgment returned before the triggered run finishes."""

    success: bool = True
    message: str = "Workflow execution started"
    workflow_id: int = Field(..., alias="workflowId")


class WebhookInfo(BaseSchema):
    id: int
    name: str
    url: str
    status: WorkflowStatus


__all__ = [
    "CancelResponse",
    "ExecuteRequest",
    "ExecutionResponse",
    "ExecutionResultResponse",
    "WebhookAck",
    "WebhookInfo",
]
