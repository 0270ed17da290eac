"""API routing configuration.

Versioned routes live under ``API_V1_PREFIX``; webhook triggers are served
from the root so that external callers get short, stable URLs.
"""

from fastapi import APIRouter

from hiveflow.api.v1 import router as v1_router
from hiveflow.api.v1.webhooks import router as webhook_router

router = APIRouter()

# Include versioned routers
router.include_router(v1_router, tags=["v1"])

__all__ = ["router", "webhook_router"]
