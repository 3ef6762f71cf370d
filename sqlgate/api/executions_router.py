"""
API router for execution history.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sqlgate.core.dependencies import ExecutionServiceDep
from sqlgate.core.logger import LoggerManager
from sqlgate.dependencies.auth import get_current_principal
from sqlgate.schemas.execution import ExecutionHistoryList

logger = LoggerManager.get_instance().system

router = APIRouter(
    prefix="/executions",
    tags=["executions"],
)


@router.get("", response_model=ExecutionHistoryList)
async def get_execution_history(
    service: ExecutionServiceDep,
    script_name: Optional[str] = Query(None, description="Only executions of this script"),
    limit: int = Query(50, description="Maximum number of entries"),
    principal: str = Depends(get_current_principal),
):
    """
    Get execution log entries, newest first.

    Args:
        script_name: Optional script name filter
        limit: Maximum number of entries to return

    Returns:
        ExecutionHistoryList
    """
    try:
        return await service.get_execution_history(script_name=script_name, limit=limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting execution history: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))
