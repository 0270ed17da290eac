"""Validation report and export document schemas.

The validation report is what importers and the authoring API show the
user: every error and warning, not only the first.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Required at runtime for Pydantic
from typing import Any

from pydantic import Field

from hiveflow.models.enums import Compatibility, Complexity
from hiveflow.schemas.base import BaseSchema


class ValidationResult(BaseSchema):
    """Outcome of validating a candidate workflow document."""

    valid: bool = Field(..., description="True when there are no errors")
    errors: list[str] = Field(default_factory=list, description="Blocking defects")
    warnings: list[str] = Field(
        default_factory=list, description="Non-blocking diagnostics"
    )
    node_count: int = Field(default=0, ge=0)
    edge_count: int = Field(default=0, ge=0)
    has_advanced_features: bool = False
    advanced_features: list[str] = Field(
        default_factory=list,
        description="Feature names: loop, subworkflow, expert-condition",
        examples=[["loop", "expert-condition"]],
    )
    compatibility: Compatibility = Field(
        ...,
        description="full without diagnostics, partial with warnings only, "
        "none with errors",
    )


class ExportDocument(BaseSchema):
    """Serialized workflow in the current export format.

    Field names are camelCase on the wire to stay readable by older clients.
    """

    format_version: str = Field(..., alias="formatVersion", examples=["2.0"])
    exported_at: datetime = Field(..., alias="exportedAt")
    name: str
    description: str | None = None
    nodes: list[dict[str, Any]] = Field(default_factory=list)
    edges: list[dict[str, Any]] = Field(default_factory=list)
    auto_create_task: bool = Field(default=False, alias="autoCreateTask")
    node_count: int = Field(..., alias="nodeCount", ge=0)
    edge_count: int = Field(..., alias="edgeCount", ge=0)
    uses_advanced_features: list[str] | None = Field(
        default=None, alias="usesAdvancedFeatures"
    )
    complexity: Complexity


class ImportResponse(BaseSchema):
    """Result of importing a workflow document."""

    validation: ValidationResult
    workflow_id: int | None = Field(
        default=None, description="Id of the created workflow when the import succeeded"
    )


__all__ = [
    "ExportDocument",
    "ImportResponse",
    "ValidationResult",
]
