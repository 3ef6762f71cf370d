from fastapi import APIRouter

from sqlgate.api.executions_router import router as executions_router
from sqlgate.api.healthcheck_router import router as healthcheck_router
from sqlgate.api.scripts_router import router as scripts_router
from sqlgate.api.sync_router import router as sync_router
from sqlgate.api.webhook_router import router as webhook_router

# Create the main API router
api_router = APIRouter()

# Include all the sub-routers
api_router.include_router(healthcheck_router)
api_router.include_router(scripts_router)
api_router.include_router(executions_router)
api_router.include_router(sync_router)
api_router.include_router(webhook_router)

__all__ = ["api_router"]
