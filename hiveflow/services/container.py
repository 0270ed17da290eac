"""Service container.

Builds the engine and its collaborators once per process. The FastAPI
lifespan stores the container on ``app.state``; tests build their own
with in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from hiveflow.services.notification_service import WebhookNotifier
from hiveflow.services.schedule.scheduler import WorkflowScheduler
from hiveflow.services.task_runner import LocalTaskRunner
from hiveflow.services.workflow.executor import (
    LoggingExecutionObserver,
    WorkflowExecutor,
)
from hiveflow.services.workflow.node_executor import NodeExecutor
from hiveflow.services.workflow.processors.base import ProcessorDependencies
from hiveflow.services.workflow.processors.registry import ProcessorRegistry
from hiveflow.services.workflow.repository import SQLWorkflowRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from hiveflow.core.config import Settings


@dataclass
class ServiceContainer:
    settings: Settings
    repository: SQLWorkflowRepository
    registry: ProcessorRegistry
    task_runner: LocalTaskRunner
    notifier: WebhookNotifier
    engine: WorkflowExecutor
    scheduler: WorkflowScheduler

    async def aclose(self) -> None:
        """Stop scheduling, kill running tasks and close HTTP clients."""
        self.scheduler.shutdown()
        await self.task_runner.cleanup()
        await self.notifier.aclose()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> ServiceContainer:
    """Wire the engine, scheduler and collaborators.

    Example:
        >>> services = build_services(get_settings(), async_session)
        >>> await services.scheduler.initialize()
    """
    repository = SQLWorkflowRepository(session_factory)
    registry = ProcessorRegistry()
    task_runner = LocalTaskRunner()
    notifier = WebhookNotifier(settings)

    node_executor = NodeExecutor(
        registry,
        ProcessorDependencies(
            settings=settings, task_runner=task_runner, notifier=notifier
        ),
    )
    engine = WorkflowExecutor(
        repository,
        node_executor,
        settings=settings,
        observers=[LoggingExecutionObserver()],
    )
    scheduler = WorkflowScheduler(engine, repository, settings)

    return ServiceContainer(
        settings=settings,
        repository=repository,
        registry=registry,
        task_runner=task_runner,
        notifier=notifier,
        engine=engine,
        scheduler=scheduler,
    )


__all__ = ["ServiceContainer", "build_services"]
