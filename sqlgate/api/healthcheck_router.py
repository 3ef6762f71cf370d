from fastapi import APIRouter, Request

from sqlgate.config import settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("")
async def health_check(request: Request):
    """
    Health check endpoint to verify API is running.

    Returns:
        dict: Status information, including whether the target pools and
        services were wired at startup
    """
    ready = getattr(request.app.state, "execution_service", None) is not None
    return {
        "status": "ok" if ready else "starting",
        "version": settings.VERSION,
        "services_ready": ready,
    }
