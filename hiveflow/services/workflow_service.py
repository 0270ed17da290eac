"""Workflow service layer.

CRUD for stored workflows plus import/export. Every graph written through
this service passes the workflow validator first, so the engine only ever
loads graphs that parse.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from hiveflow.models.enums import Compatibility, WorkflowStatus
from hiveflow.models.workflow import Workflow
from hiveflow.services.schedule.triggers import (
    schedule_expression,
    validate_cron_expression,
)
from hiveflow.services.workflow.exceptions import WorkflowNotFoundError
from hiveflow.services.workflow.repository import to_graph
from hiveflow.services.workflow.transfer import export_workflow, import_workflow
from hiveflow.services.workflow.validator import CURRENT_FORMAT_VERSION

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hiveflow.schemas.graph import WorkflowGraph
    from hiveflow.schemas.validation import ExportDocument, ValidationResult
    from hiveflow.schemas.workflow import WorkflowCreate, WorkflowUpdate


# =============================================================================
# Exceptions
# =============================================================================


class WorkflowServiceError(Exception):
    """Base exception for workflow service errors."""


class InvalidWorkflowError(WorkflowServiceError):
    """Raised when a workflow graph fails validation.

    Attributes:
        report: The full validation report.
    """

    def __init__(self, report: ValidationResult) -> None:
        super().__init__("; ".join(report.errors) or "Invalid workflow")
        self.report = report


# =============================================================================
# WorkflowService
# =============================================================================


def check_definition(
    name: str, nodes: list[dict[str, Any]], edges: list[dict[str, Any]]
) -> WorkflowGraph:
    """Validate a graph definition and return it parsed.

    A schedule trigger must also carry a cron expression that parses.

    Raises:
        InvalidWorkflowError: The definition has errors.
    """
    report, graph = import_workflow(
        {
            "formatVersion": CURRENT_FORMAT_VERSION,
            "name": name,
            "nodes": nodes,
            "edges": edges,
        }
    )
    if graph is None:
        raise InvalidWorkflowError(report)

    expression = schedule_expression(graph)
    if expression is not None and not validate_cron_expression(expression):
        raise InvalidWorkflowError(
            report.model_copy(
                update={
                    "valid": False,
                    "errors": [f"Invalid cron expression: {expression}"],
                    "compatibility": Compatibility.NONE,
                }
            )
        )
    return graph


class WorkflowService:
    """Service for workflow CRUD, import and export."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, data: WorkflowCreate) -> Workflow:
        check_definition(data.name, data.nodes, data.edges)
        workflow = Workflow(
            name=data.name,
            description=data.description,
            nodes=data.nodes,
            edges=data.edges,
            status=data.status,
            auto_create_task=data.auto_create_task,
        )
        self.db.add(workflow)
        await self.db.flush()
        await self.db.refresh(workflow)
        return workflow

    async def get(self, workflow_id: int) -> Workflow | None:
        return await self.db.get(Workflow, workflow_id)

    async def get_or_raise(self, workflow_id: int) -> Workflow:
        workflow = await self.get(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        status: WorkflowStatus | None = None,
    ) -> list[Workflow]:
        query = select(Workflow)
        if status is not None:
            query = query.where(Workflow.status == status)
        query = query.order_by(Workflow.id.desc()).offset(skip).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count(self, status: WorkflowStatus | None = None) -> int:
        query = select(func.count()).select_from(Workflow)
        if status is not None:
            query = query.where(Workflow.status == status)
        result = await self.db.scalar(query)
        return result or 0

    async def update(self, workflow_id: int, data: WorkflowUpdate) -> Workflow:
        """Apply a partial update.

        The graph is re-validated when nodes, edges or the name change.

        Raises:
            WorkflowNotFoundError: No workflow with this id.
            InvalidWorkflowError: The updated graph fails validation.
        """
        workflow = await self.get_or_raise(workflow_id)
        update_data = data.model_dump(exclude_unset=True, by_alias=False)

        if {"name", "nodes", "edges"} & update_data.keys():
            check_definition(
                update_data.get("name") or workflow.name,
                update_data.get("nodes", workflow.nodes),
                update_data.get("edges", workflow.edges),
            )

        for field, value in update_data.items():
            if value is not None or field == "description":
                setattr(workflow, field, value)

        await self.db.flush()
        await self.db.refresh(workflow)
        return workflow

    async def delete(self, workflow_id: int) -> None:
        workflow = await self.get_or_raise(workflow_id)
        await self.db.delete(workflow)
        await self.db.flush()

    async def export(self, workflow_id: int) -> ExportDocument:
        workflow = await self.get_or_raise(workflow_id)
        return export_workflow(to_graph(workflow))

    async def import_document(
        self, document: Any
    ) -> tuple[ValidationResult, Workflow | None]:
        """Validate, migrate and store an export document.

        Imported workflows are stored as drafts. An invalid document is
        reported without creating anything.
        """
        report, graph = import_workflow(document)
        if graph is None:
            return report, None

        workflow = Workflow(
            name=graph.name,
            description=graph.description,
            nodes=[node.to_document() for node in graph.nodes],
            edges=[edge.to_document() for edge in graph.edges],
            status=WorkflowStatus.DRAFT,
            auto_create_task=graph.auto_create_task,
        )
        self.db.add(workflow)
        await self.db.flush()
        await self.db.refresh(workflow)
        return report, workflow


__all__ = [
    "InvalidWorkflowError",
    "WorkflowService",
    "WorkflowServiceError",
    "check_definition",
]
