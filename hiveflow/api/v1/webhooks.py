"""Webhook trigger endpoints.

``POST /webhook/{workflow_id}`` starts a run with the request body as
trigger data and answers before the run finishes.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Body, HTTPException, Request, status

from hiveflow.api.deps import (  # noqa: TC001 - Required at runtime for FastAPI
    DBSession,
    Engine,
)
from hiveflow.core.logging import get_logger
from hiveflow.schemas.execution import WebhookAck, WebhookInfo
from hiveflow.services.workflow.executor import WorkflowExecutor
from hiveflow.services.workflow_service import WorkflowService

router = APIRouter()
logger = get_logger(__name__)


async def run_triggered_workflow(
    engine: WorkflowExecutor, workflow_id: int, trigger_data: Any
) -> None:
    """Background task body for webhook-triggered runs."""
    try:
        result = await engine.execute(workflow_id, trigger_data)
    except Exception:
        logger.exception(
            f"Webhook execution of workflow {workflow_id} failed",
            extra={"context": {"workflow_id": workflow_id}},
        )
        return

    logger.info(
        f"Workflow {workflow_id} executed via webhook: {result.status}",
        extra={
            "context": {
                "workflow_id": workflow_id,
                "execution_id": result.execution_id,
            }
        },
    )


@router.post(
    "/webhook/{workflow_id}",
    response_model=WebhookAck,
    summary="Trigger workflow",
    description="Start a workflow run with the JSON body as trigger data.",
)
async def trigger_webhook(
    db: DBSession,
    engine: Engine,
    background_tasks: BackgroundTasks,
    workflow_id: int,
    payload: Annotated[Any, Body()] = None,
) -> WebhookAck:
    """Start a run in the background.

    The acknowledgment does not depend on the run's outcome.

    Raises:
        HTTPException: 404 if the workflow does not exist.
    """
    if await WorkflowService(db).get(workflow_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Workflow {workflow_id} not found",
        )

    background_tasks.add_task(run_triggered_workflow, engine, workflow_id, payload)
    return WebhookAck(workflow_id=workflow_id)


@router.get(
    "/webhooks",
    summary="List webhooks",
    description="Webhook URL of every stored workflow.",
)
async def list_webhooks(db: DBSession, request: Request) -> dict[str, list[WebhookInfo]]:
    workflows = await WorkflowService(db).list(limit=1000)
    return {
        "webhooks": [
            WebhookInfo(
                id=workflow.id,
                name=workflow.name,
                url=str(request.url_for("trigger_webhook", workflow_id=workflow.id)),
                status=workflow.status,
            )
            for workflow in workflows
        ]
    }
