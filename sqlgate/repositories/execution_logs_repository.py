"""
Repository for execution logs data access.

This module provides database operations for the append-only execution log.
There are no update or delete operations.
"""

from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from sqlgate.core.logger import LoggerManager
from sqlgate.db.session import async_session_factory
from sqlgate.models.enums import ExecutionStatus, TargetDatabase
from sqlgate.models.execution_logs import ExecutionLog
from sqlgate.schemas.execution import ExecutionLogCreate
from sqlgate.utils.time_utils import utc_now

# Get logger from the centralized logging system
logger = LoggerManager.get_instance().audit


class ExecutionLogsRepository:
    """Repository for execution logs data access operations."""

    async def create(self, session: AsyncSession, log_in: ExecutionLogCreate) -> ExecutionLog:
        """
        Create a new execution log entry.

        Args:
            session: Database session
            log_in: Snapshot of the execution attempt

        Returns:
            Created ExecutionLog object
        """
        try:
            log = ExecutionLog(
                script_name=log_in.script_name,
                script_content=log_in.script_content,
                executed_by=log_in.executed_by,
                executed_at=utc_now(),
                target_database=log_in.target_database.value,
                status=log_in.status.value,
                error_kind=log_in.error_kind.value if log_in.error_kind else None,
                rows_affected=log_in.rows_affected,
                error_message=log_in.error_message,
                execution_time_ms=log_in.execution_time_ms,
                origin_url=log_in.origin_url,
                approvers=list(log_in.approvers),
                result_data=log_in.result_data,
            )
            session.add(log)
            await session.commit()
            await session.refresh(log)
            return log
        except Exception as e:
            logger.error(f"[ExecutionLogsRepository.create] Error creating log: {e}", exc_info=True)

            # Try to rollback if possible
            try:
                await session.rollback()
            except Exception as rollback_error:
                logger.error(f"[ExecutionLogsRepository.create] Rollback failed: {rollback_error}")

            # Re-raise to caller
            raise

    async def create_with_managed_session(self, log_in: ExecutionLogCreate) -> ExecutionLog:
        """
        Create a new execution log entry with internal session management.

        Args:
            log_in: Snapshot of the execution attempt

        Returns:
            Created ExecutionLog object
        """
        async with async_session_factory() as session:
            return await self.create(session, log_in)

    async def get_history(
        self,
        session: AsyncSession,
        script_name: Optional[str] = None,
        limit: int = 50,
    ) -> List[ExecutionLog]:
        """
        Retrieve execution history, newest first.

        Args:
            session: Database session
            script_name: Only entries for this script, or all scripts if None
            limit: Maximum number of logs to return

        Returns:
            List of ExecutionLog objects
        """
        query = select(ExecutionLog)
        if script_name is not None:
            query = query.where(ExecutionLog.script_name == script_name)
        query = query.order_by(desc(ExecutionLog.executed_at), desc(ExecutionLog.id)).limit(limit)

        result = await session.execute(query)
        return list(result.scalars().all())

    async def get_first_success(
        self,
        session: AsyncSession,
        script_name: str,
        target: TargetDatabase,
    ) -> Optional[ExecutionLog]:
        """
        Earliest successful execution of a script on a target, if any.

        Args:
            session: Database session
            script_name: Script to look up
            target: Target database

        Returns:
            ExecutionLog object if found, None otherwise
        """
        query = (
            select(ExecutionLog)
            .where(ExecutionLog.script_name == script_name)
            .where(ExecutionLog.target_database == TargetDatabase(target).value)
            .where(ExecutionLog.status == ExecutionStatus.SUCCESS.value)
            .order_by(ExecutionLog.executed_at, ExecutionLog.id)
            .limit(1)
        )
        result = await session.execute(query)
        return result.scalars().first()
