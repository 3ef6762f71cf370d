"""
API router for the script ledger.

Listing, inspecting and executing approved scripts.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from sqlgate.core.dependencies import ExecutionServiceDep, ReconcilerDep
from sqlgate.core.exceptions import ScriptNotFoundError
from sqlgate.core.logger import LoggerManager
from sqlgate.dependencies.auth import get_current_principal
from sqlgate.models.enums import ExecutionErrorKind
from sqlgate.schemas.execution import ExecuteScriptRequest, ScriptExecutionResponse
from sqlgate.schemas.script import PendingChangeRequest, ScriptDetailResponse, ScriptResponse

# Get logger from the centralized logging system
logger = LoggerManager.get_instance().system

router = APIRouter(
    prefix="/scripts",
    tags=["scripts"],
)


@router.get("", response_model=List[ScriptResponse])
async def list_scripts(
    service: ExecutionServiceDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(500, ge=1, le=1000),
    principal: str = Depends(get_current_principal),
):
    """
    List ledger entries, most recently approved first.
    """
    try:
        return await service.list_ledger(skip=skip, limit=limit)
    except Exception as e:
        logger.error(f"Error listing scripts: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/pending", response_model=List[PendingChangeRequest])
async def list_pending_change_requests(
    reconciler: ReconcilerDep,
    principal: str = Depends(get_current_principal),
):
    """
    List open change requests that touch SQL files, newest updated first.

    Open requests cannot be imported yet; the ledger is not consulted.
    """
    try:
        return await reconciler.list_pending_change_requests()
    except Exception as e:
        logger.error(f"Error listing pending change requests: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{script_id}", response_model=ScriptDetailResponse)
async def get_script(
    script_id: int,
    service: ExecutionServiceDep,
    principal: str = Depends(get_current_principal),
):
    """
    Get one ledger entry with its execution history.

    Args:
        script_id: Ledger entry ID

    Returns:
        ScriptDetailResponse with promotion state and history, newest first
    """
    try:
        return await service.get_ledger_entry(script_id)
    except ScriptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error getting script {script_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/{script_id}/execute", response_model=ScriptExecutionResponse)
async def execute_script(
    script_id: int,
    request: ExecuteScriptRequest,
    service: ExecutionServiceDep,
    principal: str = Depends(get_current_principal),
):
    """
    Execute a ledger entry against staging or production.

    Execution failures are returned with status 200 and ``success=false``.
    A production request the promotion gate rejects is returned with 403.

    Args:
        script_id: Ledger entry ID
        request: Target database

    Returns:
        ScriptExecutionResponse
    """
    try:
        result = await service.execute_script(script_id, request.target_database, principal)
    except ScriptNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        logger.warning(f"Validation error: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error executing script {script_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    if result.error_kind == ExecutionErrorKind.AUTHORIZATION:
        return JSONResponse(status_code=403, content=result.model_dump(mode="json"))
    return result
