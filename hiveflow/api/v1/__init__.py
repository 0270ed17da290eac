"""API v1 routing configuration."""

from fastapi import APIRouter

from hiveflow.api.v1 import executions, workflows

router = APIRouter()

# Domain routers
router.include_router(workflows.router, prefix="/workflows", tags=["Workflows"])
router.include_router(executions.router, tags=["Executions"])


@router.get("/status", tags=["Status"])
async def api_status() -> dict[str, str]:
    """API v1 status check."""
    return {"status": "ok", "version": "v1"}
