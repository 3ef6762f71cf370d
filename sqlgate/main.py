import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sqlgate.api import api_router
from sqlgate.config import settings, validate_config
from sqlgate.config.logging import setup_logging
from sqlgate.core.logger import LoggerManager
from sqlgate.db.pools import TargetPools
from sqlgate.services.audit_service import AuditRecorder
from sqlgate.services.change_source import GitHubChangeSource
from sqlgate.services.execution_engine import ExecutionEngine
from sqlgate.services.promotion_gate import PromotionGate
from sqlgate.services.script_execution_service import ScriptExecutionService
from sqlgate.services.script_sync_service import ChangeSourceReconciler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager for the FastAPI application.

    Creates the audit tables and the target pools, wires the services onto
    ``app.state`` and disposes the pools on shutdown. A missing target URL
    raises ConfigurationError and aborts startup.
    """
    setup_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
    system_logger = LoggerManager.get_instance().system
    system_logger.info(f"Starting {settings.PROJECT_NAME} {settings.VERSION}")
    validate_config()

    from sqlgate.db.session import engine as audit_engine, init_db

    await init_db()
    pools = TargetPools.from_settings(settings)

    gate = PromotionGate()
    change_source = GitHubChangeSource.from_settings(settings)
    app.state.pools = pools
    app.state.change_source = change_source
    app.state.reconciler = ChangeSourceReconciler.from_settings(change_source, settings)
    app.state.execution_service = ScriptExecutionService(
        engine=ExecutionEngine(
            pools,
            timeout_seconds=settings.STATEMENT_TIMEOUT_SECONDS,
            max_result_rows=settings.MAX_RESULT_ROWS,
        ),
        gate=gate,
        recorder=AuditRecorder(),
    )

    replayed = await gate.replay_from_log()
    if replayed:
        system_logger.warning(f"Recovered {replayed} promotion state update(s) from the execution log")

    system_logger.info("Application startup complete")
    try:
        yield
    finally:
        await pools.dispose()
        await audit_engine.dispose()
        system_logger.info("Application shutdown complete.")


# Initialize FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.PROJECT_DESCRIPTION,
    version=settings.VERSION,
    lifespan=lifespan,
    docs_url="/api-docs" if settings.DOCS_ENABLED else None,
    redoc_url="/api-redoc" if settings.DOCS_ENABLED else None,
    openapi_url="/api-openapi.json" if settings.DOCS_ENABLED else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include the main API router
app.include_router(api_router, prefix=settings.API_V1_STR)


def main():
    import uvicorn

    uvicorn.run(
        "sqlgate.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=settings.DEBUG_MODE,
    )


if __name__ == "__main__":
    main()
