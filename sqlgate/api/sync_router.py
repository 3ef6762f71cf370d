from fastapi import APIRouter, Depends, HTTPException

from sqlgate.core.dependencies import ReconcilerDep
from sqlgate.core.logger import LoggerManager
from sqlgate.dependencies.auth import get_current_principal
from sqlgate.schemas.sync import SyncResponse

logger = LoggerManager.get_instance().sync

router = APIRouter(
    prefix="/sync",
    tags=["sync"],
)


@router.post("", response_model=SyncResponse)
async def run_reconciliation(
    reconciler: ReconcilerDep,
    principal: str = Depends(get_current_principal),
):
    """
    Import approved scripts from recently merged change requests.

    Returns:
        SyncResponse with synced, skipped and error counts
    """
    logger.info(f"Manual sync requested by {principal}")
    try:
        stats = await reconciler.sync()
    except Exception as e:
        logger.error(f"Sync failed: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Sync failed: {str(e)}")

    return SyncResponse(success=True, message="Sync completed", stats=stats)
