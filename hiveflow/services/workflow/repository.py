"""SQL persistence for the execution controller.

Implements the WorkflowStore protocol over an async session factory. Each
operation opens its own session, so concurrent runs never share one.
Writes to a single execution record are serialized with a per-execution
lock.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import select

from hiveflow.core.logging import get_logger
from hiveflow.models import FollowUpTask, Workflow, WorkflowExecution
from hiveflow.models.enums import ExecutionStatus, WorkflowStatus
from hiveflow.schemas.graph import WorkflowGraph
from hiveflow.services.workflow.exceptions import ExecutionError, GraphDefinitionError
from hiveflow.services.workflow.interfaces import ExecutionRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


def to_graph(workflow: Workflow) -> WorkflowGraph:
    """Parse a stored workflow row into the graph model.

    Raises:
        GraphDefinitionError: The stored nodes or edges do not parse.
    """
    try:
        return WorkflowGraph.model_validate(
            {
                "id": workflow.id,
                "name": workflow.name,
                "description": workflow.description,
                "nodes": workflow.nodes or [],
                "edges": workflow.edges or [],
                "status": workflow.status,
                "autoCreateTask": workflow.auto_create_task,
            }
        )
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise GraphDefinitionError(workflow.id, f"{location}: {first['msg']}") from e


class SQLWorkflowRepository:
    """WorkflowStore backed by SQLAlchemy.

    Example:
        >>> repository = SQLWorkflowRepository(async_session)
        >>> graph = await repository.load_graph(1)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def load_graph(self, workflow_id: int) -> WorkflowGraph | None:
        async with self._session_factory() as session:
            workflow = await session.get(Workflow, workflow_id)
            return None if workflow is None else to_graph(workflow)

    async def list_active_workflows(self) -> list[WorkflowGraph]:
        """Active workflows whose definitions parse.

        Rows with an invalid definition are logged and left out.
        """
        async with self._session_factory() as session:
            result = await session.execute(
                select(Workflow)
                .where(Workflow.status == WorkflowStatus.ACTIVE)
                .order_by(Workflow.id)
            )
            workflows = result.scalars().all()

        graphs: list[WorkflowGraph] = []
        for workflow in workflows:
            try:
                graphs.append(to_graph(workflow))
            except GraphDefinitionError as e:
                logger.warning(
                    e.message, extra={"context": {"workflow_id": workflow.id}}
                )
        return graphs

    async def create_execution_record(self, workflow_id: int) -> ExecutionRecord:
        async with self._session_factory() as session, session.begin():
            execution = WorkflowExecution(
                workflow_id=workflow_id,
                status=ExecutionStatus.RUNNING,
                started_at=datetime.now(UTC),
            )
            session.add(execution)
            await session.flush()
            return ExecutionRecord(
                id=execution.id,
                workflow_id=workflow_id,
                started_at=execution.started_at,
            )

    async def update_execution_record(
        self,
        execution_id: int,
        *,
        status: ExecutionStatus,
        error: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Write a status transition for an execution record.

        A RUNNING update only replaces the stored data. Terminal updates go
        through the model's one-way transition helpers.

        Raises:
            ExecutionError: The record does not exist.
            ValueError: The record is already terminal.
        """
        async with self._locks[execution_id]:
            async with self._session_factory() as session, session.begin():
                execution = await session.get(WorkflowExecution, execution_id)
                if execution is None:
                    raise ExecutionError(f"Execution {execution_id} not found")

                match status:
                    case ExecutionStatus.SUCCESS:
                        execution.complete(data)
                    case ExecutionStatus.FAILED:
                        execution.fail(error or "Execution failed", data)
                    case ExecutionStatus.CANCELLED:
                        execution.cancel(data)
                    case ExecutionStatus.RUNNING:
                        execution.execution_data = data

        if ExecutionStatus(status).is_terminal:
            self._locks.pop(execution_id, None)

    async def create_follow_up_task(
        self,
        workflow: WorkflowGraph,
        execution_id: int,
        title: str,
        description: str,
    ) -> None:
        if workflow.id is None:
            raise ValueError("Follow-up tasks need a stored workflow")
        async with self._session_factory() as session, session.begin():
            session.add(
                FollowUpTask(
                    workflow_id=workflow.id,
                    execution_id=execution_id,
                    title=title,
                    description=description,
                )
            )
        logger.info(
            f"Created follow-up task: {title}",
            extra={"context": {"workflow_id": workflow.id, "execution_id": execution_id}},
        )


__all__ = ["SQLWorkflowRepository", "to_graph"]
