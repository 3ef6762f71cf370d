"""
FastAPI dependencies for the process-wide services.

The services are built once in the application lifespan and stored on
``app.state``; tests replace them with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from sqlgate.services.change_source import BaseChangeSource
from sqlgate.services.script_execution_service import ScriptExecutionService
from sqlgate.services.script_sync_service import ChangeSourceReconciler


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        raise HTTPException(status_code=503, detail=f"Service {name} is not initialized")
    return service


def get_execution_service(request: Request) -> ScriptExecutionService:
    return _from_state(request, "execution_service")


def get_reconciler(request: Request) -> ChangeSourceReconciler:
    return _from_state(request, "reconciler")


def get_change_source(request: Request) -> BaseChangeSource:
    return _from_state(request, "change_source")


ExecutionServiceDep = Annotated[ScriptExecutionService, Depends(get_execution_service)]
ReconcilerDep = Annotated[ChangeSourceReconciler, Depends(get_reconciler)]
ChangeSourceDep = Annotated[BaseChangeSource, Depends(get_change_source)]
