"""Execution API Router.

Manual runs, execution history and cancellation.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from hiveflow.api.deps import (  # noqa: TC001 - Required at runtime for FastAPI
    DBSession,
    Engine,
    Pagination,
)
from hiveflow.models.enums import ExecutionStatus
from hiveflow.schemas.base import PaginatedResponse
from hiveflow.schemas.execution import (
    CancelResponse,
    ExecuteRequest,
    ExecutionResponse,
    ExecutionResultResponse,
)
from hiveflow.services.execution_service import WorkflowExecutionService
from hiveflow.services.workflow_service import WorkflowService

router = APIRouter()


# =============================================================================
# Workflow-scoped Endpoints
# =============================================================================


@router.post(
    "/workflows/{workflow_id}/execute",
    response_model=ExecutionResultResponse,
    summary="Execute workflow",
    description="Run a workflow to completion and return its result.",
)
async def execute_workflow(
    db: DBSession,
    engine: Engine,
    workflow_id: int,
    execute_in: ExecuteRequest | None = None,
) -> ExecutionResultResponse:
    """Run a workflow and wait for the outcome.

    A failed run is still a 200 response; its status and error are in the
    body.

    Raises:
        HTTPException: 404 if the workflow does not exist.
    """
    if await WorkflowService(db).get(workflow_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workflow with ID {workflow_id} not found",
        )

    trigger_data = execute_in.trigger_data if execute_in is not None else None
    result = await engine.execute(workflow_id, trigger_data)
    return ExecutionResultResponse.model_validate(result)


@router.get(
    "/workflows/{workflow_id}/executions",
    response_model=PaginatedResponse[ExecutionResponse],
    summary="List workflow executions",
)
async def list_workflow_executions(
    db: DBSession,
    pagination: Pagination,
    workflow_id: int,
    execution_status: Annotated[
        ExecutionStatus | None,
        Query(alias="status", description="Filter by execution status"),
    ] = None,
) -> PaginatedResponse[ExecutionResponse]:
    if await WorkflowService(db).get(workflow_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workflow with ID {workflow_id} not found",
        )

    executions = await WorkflowExecutionService.list(
        db,
        workflow_id,
        skip=pagination.skip,
        limit=pagination.limit,
        status=execution_status,
    )
    total = await WorkflowExecutionService.count(
        db, workflow_id, status=execution_status
    )

    return PaginatedResponse.create(
        items=[ExecutionResponse.model_validate(execution) for execution in executions],
        total=total,
        page=pagination.page,
        size=pagination.limit,
    )


# =============================================================================
# Execution Endpoints
# =============================================================================


@router.get(
    "/executions/{execution_id}",
    response_model=ExecutionResponse,
    summary="Get execution",
)
async def get_execution(db: DBSession, execution_id: int) -> ExecutionResponse:
    execution = await WorkflowExecutionService.get(db, execution_id)
    if execution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Execution with ID {execution_id} not found",
        )
    return ExecutionResponse.model_validate(execution)


@router.post(
    "/executions/{execution_id}/cancel",
    response_model=CancelResponse,
    summary="Cancel execution",
    description="Request cooperative cancellation of a running execution.",
)
async def cancel_execution(
    db: DBSession,
    engine: Engine,
    execution_id: int,
) -> CancelResponse:
    """Cancel a running execution.

    The run stops at its next level boundary; the final status is written
    by the run itself.

    Raises:
        HTTPException: 404 if the execution does not exist.
        HTTPException: 409 if the execution is not running.
    """
    if engine.cancel(execution_id):
        return CancelResponse(
            execution_id=execution_id,
            cancelled=True,
            message="Cancellation requested",
        )

    execution = await WorkflowExecutionService.get(db, execution_id)
    if execution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Execution with ID {execution_id} not found",
        )
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Execution {execution_id} is not running ({execution.status})",
    )
