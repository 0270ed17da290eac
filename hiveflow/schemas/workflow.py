"""Workflow API schemas.

Nodes and edges are accepted as raw documents so the validator can report
every defect at once instead of failing on the first shape error.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from hiveflow.models.enums import WorkflowStatus
from hiveflow.schemas.base import BaseResponse, BaseSchema


class WorkflowBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255, examples=["Nightly build"])
    description: str | None = Field(default=None, max_length=2000)


class WorkflowCreate(WorkflowBase):
    """Schema for creating a workflow."""

    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)
    status: WorkflowStatus = WorkflowStatus.DRAFT
    auto_create_task: bool = Field(default=False, alias="autoCreateTask")


class WorkflowUpdate(BaseSchema):
    """Schema for updating a workflow. All fields are optional."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=2000)
    nodes: list[dict[str, Any]] | None = None
    edges: list[dict[str, Any]] | None = None
    status: WorkflowStatus | None = None
    auto_create_task: bool | None = Field(default=None, alias="autoCreateTask")


class WorkflowListResponse(BaseResponse):
    """Workflow summary for list endpoints."""

    name: str
    description: str | None = None
    status: WorkflowStatus
    auto_create_task: bool = Field(alias="autoCreateTask")


class WorkflowResponse(WorkflowListResponse):
    """Full workflow including its graph."""

    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)


__all__ = [
    "WorkflowCreate",
    "WorkflowListResponse",
    "WorkflowResponse",
    "WorkflowUpdate",
]
