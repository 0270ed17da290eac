"""API dependencies.

Database sessions, pagination, and access to the engine and scheduler
built at startup and stored on ``app.state``.
"""

from typing import Annotated

from fastapi import Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from hiveflow.db.session import get_db
from hiveflow.services.container import ServiceContainer
from hiveflow.services.schedule.scheduler import WorkflowScheduler
from hiveflow.services.workflow.executor import WorkflowExecutor

# =============================================================================
# Database Session Dependency
# =============================================================================

DBSession = Annotated[AsyncSession, Depends(get_db)]
"""Type alias for database session dependency injection.

Usage:
    @router.get("/items")
    async def get_items(db: DBSession):
        result = await db.execute(select(Item))
        return result.scalars().all()
"""


# =============================================================================
# Pagination Dependencies
# =============================================================================


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints."""

    skip: int = Field(default=0, ge=0, description="Number of records to skip")
    limit: int = Field(
        default=20, ge=1, le=100, description="Maximum number of records to return"
    )

    @property
    def page(self) -> int:
        return self.skip // self.limit + 1


def get_pagination_params(
    skip: Annotated[int, Query(ge=0, description="Number of records to skip")] = 0,
    limit: Annotated[
        int, Query(ge=1, le=100, description="Maximum number of records to return")
    ] = 20,
) -> PaginationParams:
    return PaginationParams(skip=skip, limit=limit)


Pagination = Annotated[PaginationParams, Depends(get_pagination_params)]


# =============================================================================
# Engine Dependencies
# =============================================================================


def get_services(request: Request) -> ServiceContainer:
    """Service container created in the application lifespan."""
    return request.app.state.services


def get_engine(services: Annotated[ServiceContainer, Depends(get_services)]) -> WorkflowExecutor:
    return services.engine


def get_scheduler(
    services: Annotated[ServiceContainer, Depends(get_services)],
) -> WorkflowScheduler:
    return services.scheduler


Services = Annotated[ServiceContainer, Depends(get_services)]
Engine = Annotated[WorkflowExecutor, Depends(get_engine)]
Scheduler = Annotated[WorkflowScheduler, Depends(get_scheduler)]
"""Type aliases for engine dependency injection.

Usage:
    @router.post("/{workflow_id}/execute")
    async def execute(workflow_id: int, engine: Engine):
        return await engine.execute(workflow_id)
"""


__all__ = [
    "DBSession",
    "Engine",
    "Pagination",
    "PaginationParams",
    "Scheduler",
    "Services",
    "get_db",
    "get_engine",
    "get_pagination_params",
    "get_scheduler",
    "get_services",
]
