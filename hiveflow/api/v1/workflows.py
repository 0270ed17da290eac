"""Workflow API Router.

CRUD for stored workflows, candidate validation, export and import.
Creating, updating or deleting a workflow re-syncs its cron registration.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Query, status

from hiveflow.api.deps import (  # noqa: TC001 - Required at runtime for FastAPI
    DBSession,
    Pagination,
    Scheduler,
)
from hiveflow.core.logging import get_logger
from hiveflow.models.enums import WorkflowStatus
from hiveflow.schemas.base import PaginatedResponse
from hiveflow.schemas.validation import (
    ExportDocument,
    ImportResponse,
    ValidationResult,
)
from hiveflow.schemas.workflow import (
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from hiveflow.services.workflow.exceptions import (
    GraphDefinitionError,
    WorkflowNotFoundError,
)
from hiveflow.services.workflow.repository import to_graph
from hiveflow.services.workflow.validator import WorkflowValidator
from hiveflow.services.workflow_service import InvalidWorkflowError, WorkflowService

router = APIRouter()
logger = get_logger(__name__)


def _not_found(workflow_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Workflow with ID {workflow_id} not found",
    )


def _invalid(error: InvalidWorkflowError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"message": "Invalid workflow", "errors": error.report.errors},
    )


# =============================================================================
# Workflow Endpoints
# =============================================================================


@router.get(
    "/",
    response_model=PaginatedResponse[WorkflowListResponse],
    summary="List workflows",
)
async def list_workflows(
    db: DBSession,
    pagination: Pagination,
    workflow_status: Annotated[
        WorkflowStatus | None,
        Query(alias="status", description="Filter by lifecycle status"),
    ] = None,
) -> PaginatedResponse[WorkflowListResponse]:
    workflow_service = WorkflowService(db)
    workflows = await workflow_service.list(
        skip=pagination.skip, limit=pagination.limit, status=workflow_status
    )
    total = await workflow_service.count(status=workflow_status)

    return PaginatedResponse.create(
        items=[WorkflowListResponse.model_validate(workflow) for workflow in workflows],
        total=total,
        page=pagination.page,
        size=pagination.limit,
    )


@router.post(
    "/",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create workflow",
)
async def create_workflow(
    db: DBSession,
    scheduler: Scheduler,
    workflow_in: WorkflowCreate,
) -> WorkflowResponse:
    """Create a workflow after validating its graph.

    Raises:
        HTTPException: 400 if the graph fails validation.
    """
    try:
        workflow = await WorkflowService(db).create(workflow_in)
    except InvalidWorkflowError as e:
        raise _invalid(e) from e
    await db.commit()

    scheduler.sync_workflow(to_graph(workflow))
    return WorkflowResponse.model_validate(workflow)


@router.post(
    "/validate",
    response_model=ValidationResult,
    summary="Validate workflow document",
    description="Check a candidate workflow document and report every defect.",
)
async def validate_workflow(
    document: Annotated[Any, Body()],
) -> ValidationResult:
    return WorkflowValidator().validate(document)


@router.post(
    "/import",
    response_model=ImportResponse,
    summary="Import workflow",
    description="Validate, migrate and store an exported workflow as a draft.",
)
async def import_workflow(
    db: DBSession,
    document: Annotated[Any, Body()],
) -> ImportResponse:
    """Import an export document.

    An invalid document is answered with its validation report and no
    workflow is created.
    """
    report, workflow = await WorkflowService(db).import_document(document)
    if workflow is None:
        return ImportResponse(validation=report)
    await db.commit()

    logger.info(
        f"Imported workflow {workflow.id}: {workflow.name}",
        extra={"context": {"workflow_id": workflow.id}},
    )
    return ImportResponse(validation=report, workflow_id=workflow.id)


@router.get(
    "/{workflow_id}",
    response_model=WorkflowResponse,
    summary="Get workflow",
)
async def get_workflow(db: DBSession, workflow_id: int) -> WorkflowResponse:
    workflow = await WorkflowService(db).get(workflow_id)
    if workflow is None:
        raise _not_found(workflow_id)
    return WorkflowResponse.model_validate(workflow)


@router.patch(
    "/{workflow_id}",
    response_model=WorkflowResponse,
    summary="Update workflow",
)
async def update_workflow(
    db: DBSession,
    scheduler: Scheduler,
    workflow_id: int,
    workflow_in: WorkflowUpdate,
) -> WorkflowResponse:
    """Partially update a workflow.

    Raises:
        HTTPException: 404 if the workflow does not exist.
        HTTPException: 400 if the updated graph fails validation.
    """
    try:
        workflow = await WorkflowService(db).update(workflow_id, workflow_in)
    except WorkflowNotFoundError as e:
        raise _not_found(workflow_id) from e
    except InvalidWorkflowError as e:
        raise _invalid(e) from e
    await db.commit()

    scheduler.sync_workflow(to_graph(workflow))
    return WorkflowResponse.model_validate(workflow)


@router.delete(
    "/{workflow_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workflow",
)
async def delete_workflow(
    db: DBSession,
    scheduler: Scheduler,
    workflow_id: int,
) -> None:
    try:
        await WorkflowService(db).delete(workflow_id)
    except WorkflowNotFoundError as e:
        raise _not_found(workflow_id) from e
    await db.commit()

    scheduler.unschedule_workflow(workflow_id)


@router.get(
    "/{workflow_id}/export",
    response_model=ExportDocument,
    summary="Export workflow",
)
async def export_workflow(db: DBSession, workflow_id: int) -> ExportDocument:
    try:
        return await WorkflowService(db).export(workflow_id)
    except WorkflowNotFoundError as e:
        raise _not_found(workflow_id) from e
    except GraphDefinitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=e.message,
        ) from e
