"""Read access to execution records for the API."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from hiveflow.models.execution import WorkflowExecution

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from hiveflow.models.enums import ExecutionStatus


class WorkflowExecutionService:
    """Queries over WorkflowExecution records.

    Records are written only by the engine's repository; this service
    never changes them.
    """

    @staticmethod
    async def get(db: AsyncSession, execution_id: int) -> WorkflowExecution | None:
        return await db.get(WorkflowExecution, execution_id)

    @staticmethod
    async def list(
        db: AsyncSession,
        workflow_id: int,
        skip: int = 0,
        limit: int = 20,
        status: ExecutionStatus | None = None,
    ) -> list[WorkflowExecution]:
        """List executions of a workflow, newest first."""
        query = select(WorkflowExecution).where(
            WorkflowExecution.workflow_id == workflow_id
        )
        if status is not None:
            query = query.where(WorkflowExecution.status == status)

        query = query.order_by(WorkflowExecution.id.desc()).offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def count(
        db: AsyncSession,
        workflow_id: int,
        status: ExecutionStatus | None = None,
    ) -> int:
        query = select(func.count()).where(WorkflowExecution.workflow_id == workflow_id)
        if status is not None:
            query = query.where(WorkflowExecution.status == status)
        result = await db.scalar(query)
        return result or 0


__all__ = ["WorkflowExecutionService"]
