"""Cron scheduler for active workflows.

Wraps an APScheduler AsyncIOScheduler with one job per scheduled workflow.
Jobs live in the in-memory job store: the schedule of record is the
trigger node of each stored workflow, and ``initialize`` rebuilds the jobs
from the database at startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from hiveflow.core.config import Settings, get_settings
from hiveflow.core.logging import get_logger
from hiveflow.models.enums import WorkflowStatus
from hiveflow.services.schedule.triggers import (
    build_cron_trigger,
    schedule_expression,
)

if TYPE_CHECKING:
    from hiveflow.schemas.graph import WorkflowGraph
    from hiveflow.services.workflow.executor import WorkflowExecutor

logger = get_logger(__name__)


class InvalidCronExpressionError(ValueError):
    """Raised when a cron expression cannot be scheduled."""

    def __init__(self, expression: str, reason: str | None = None):
        self.expression = expression
        self.message = f"Invalid cron expression: {expression}"
        if reason:
            self.message += f" ({reason})"
        super().__init__(self.message)


class ActiveWorkflowSource(Protocol):
    async def list_active_workflows(self) -> list[WorkflowGraph]:
        ...


@dataclass(frozen=True)
class ScheduledWorkflow:
    workflow_id: int
    cron_expression: str
    next_run_time: datetime | None = None


def _job_id(workflow_id: int) -> str:
    return f"workflow-{workflow_id}"


class WorkflowScheduler:
    """Runs active workflows on their cron schedules.

    Attributes:
        scheduler: The underlying AsyncIOScheduler.

    Examples:
        >>> scheduler = WorkflowScheduler(executor, repository, settings)
        >>> await scheduler.initialize()
        >>> scheduler.start()
        >>> scheduler.schedule_workflow(7, "0 * * * *")
        >>> scheduler.shutdown()
    """

    def __init__(
        self,
        engine: WorkflowExecutor,
        source: ActiveWorkflowSource,
        settings: Settings | None = None,
    ) -> None:
        self.engine = engine
        self.source = source
        self.settings = settings or get_settings()
        self.scheduler = self._new_scheduler()
        self.is_running = False
        self._expressions: dict[int, str] = {}

    def _new_scheduler(self) -> AsyncIOScheduler:
        return AsyncIOScheduler(
            timezone=self.settings.SCHEDULER_TIMEZONE,
            job_defaults={"coalesce": True, "max_instances": 1},
        )

    async def initialize(self) -> int:
        """Schedule every active workflow with a schedule trigger.

        Workflows with an invalid expression are logged and skipped.

        Returns:
            Number of workflows scheduled.
        """
        scheduled = 0
        for workflow in await self.source.list_active_workflows():
            expression = schedule_expression(workflow)
            if expression is None or workflow.id is None:
                continue
            try:
                self.schedule_workflow(workflow.id, expression)
            except InvalidCronExpressionError as e:
                logger.warning(
                    f"Skipping schedule for workflow {workflow.id}: {e.message}",
                    extra={"context": {"workflow_id": workflow.id}},
                )
                continue
            scheduled += 1

        logger.info(
            f"Scheduler initialized with {scheduled} workflow(s)",
            extra={"context": {"scheduled": scheduled}},
        )
        return scheduled

    def schedule_workflow(self, workflow_id: int, cron_expression: str) -> None:
        """Register or replace the cron job of a workflow.

        Raises:
            InvalidCronExpressionError: The expression does not parse.
        """
        try:
            trigger = build_cron_trigger(
                cron_expression, timezone=self.settings.SCHEDULER_TIMEZONE
            )
        except (ValueError, TypeError) as e:
            raise InvalidCronExpressionError(cron_expression, str(e)) from e

        # Pending jobs are not replaced before the scheduler starts
        if workflow_id in self._expressions:
            self.scheduler.remove_job(_job_id(workflow_id))

        self.scheduler.add_job(
            self._run_scheduled,
            trigger=trigger,
            args=[workflow_id],
            id=_job_id(workflow_id),
            name=f"Workflow {workflow_id}",
            replace_existing=True,
        )
        self._expressions[workflow_id] = cron_expression
        logger.info(
            f"Scheduled workflow {workflow_id}: {cron_expression}",
            extra={"context": {"workflow_id": workflow_id, "cron": cron_expression}},
        )

    def unschedule_workflow(self, workflow_id: int) -> bool:
        """Remove the cron job of a workflow.

        Returns:
            True if the workflow was scheduled.
        """
        if self._expressions.pop(workflow_id, None) is None:
            return False
        self.scheduler.remove_job(_job_id(workflow_id))
        logger.info(
            f"Unscheduled workflow {workflow_id}",
            extra={"context": {"workflow_id": workflow_id}},
        )
        return True

    def update_schedule(self, workflow_id: int, cron_expression: str) -> None:
        self.schedule_workflow(workflow_id, cron_expression)

    def sync_workflow(self, workflow: WorkflowGraph) -> bool:
        """Bring a workflow's cron job in line with its stored definition.

        Active workflows with a valid schedule trigger are (re)scheduled;
        anything else is unscheduled.

        Returns:
            True if the workflow is scheduled afterwards.
        """
        if workflow.id is None:
            return False
        expression = schedule_expression(workflow)
        if workflow.status != WorkflowStatus.ACTIVE or expression is None:
            self.unschedule_workflow(workflow.id)
            return False
        try:
            self.update_schedule(workflow.id, expression)
        except InvalidCronExpressionError as e:
            logger.warning(
                f"Not scheduling workflow {workflow.id}: {e.message}",
                extra={"context": {"workflow_id": workflow.id}},
            )
            self.unschedule_workflow(workflow.id)
            return False
        return True

    def is_scheduled(self, workflow_id: int) -> bool:
        return workflow_id in self._expressions

    def get_scheduled_workflows(self) -> list[ScheduledWorkflow]:
        scheduled = []
        for workflow_id, expression in self._expressions.items():
            job = self.scheduler.get_job(_job_id(workflow_id))
            scheduled.append(
                ScheduledWorkflow(
                    workflow_id=workflow_id,
                    cron_expression=expression,
                    next_run_time=getattr(job, "next_run_time", None),
                )
            )
        return scheduled

    def start(self) -> None:
        if self.is_running:
            logger.warning("Workflow scheduler is already running")
            return

        self.scheduler.start()
        self.is_running = True
        logger.info("Workflow scheduler started")

    def shutdown(self) -> None:
        """Stop the scheduler and drop every job.

        AsyncIOScheduler stops on its next loop iteration; a fresh instance
        takes its place for any later ``start``.
        """
        self.scheduler.remove_all_jobs()
        self._expressions.clear()
        if not self.is_running:
            return

        self.scheduler.shutdown(wait=False)
        self.scheduler = self._new_scheduler()
        self.is_running = False
        logger.info("Workflow scheduler shutdown")

    async def _run_scheduled(self, workflow_id: int) -> None:
        try:
            result = await self.engine.execute(workflow_id)
        except Exception:
            logger.exception(
                f"Scheduled execution of workflow {workflow_id} failed",
                extra={"context": {"workflow_id": workflow_id}},
            )
            return

        if not result.succeeded:
            logger.warning(
                f"Scheduled execution of workflow {workflow_id} ended {result.status}: "
                f"{result.error}",
                extra={
                    "context": {
                        "workflow_id": workflow_id,
                        "execution_id": result.execution_id,
                    }
                },
            )


__all__ = [
    "ActiveWorkflowSource",
    "InvalidCronExpressionError",
    "ScheduledWorkflow",
    "WorkflowScheduler",
]
