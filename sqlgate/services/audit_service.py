"""
Audit recording for execution attempts.

Every attempt that reaches the execution engine produces exactly one
execution log entry. Recording never raises: a failed write is logged on the
audit logger and reported to the caller as ``False``.
"""

from typing import Optional

from sqlgate.core.logger import LoggerManager
from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.enums import ExecutionErrorKind, ExecutionStatus, TargetDatabase
from sqlgate.repositories.execution_logs_repository import ExecutionLogsRepository
from sqlgate.schemas.execution import ExecutionLogCreate, ExecutionResult

logger = LoggerManager.get_instance().audit


class AuditRecorder:
    """Writes immutable execution log entries."""

    def __init__(self, repository: Optional[ExecutionLogsRepository] = None):
        self.repository = repository or ExecutionLogsRepository()

    @staticmethod
    def build_entry(
        script: ApprovedScript,
        target: TargetDatabase,
        result: Optional[ExecutionResult],
        executed_by: str,
    ) -> ExecutionLogCreate:
        """
        Snapshot a ledger entry and an execution outcome into a log entry.

        Args:
            script: Ledger entry as read before execution
            target: Target the attempt ran against
            result: Engine result, or None if the engine produced nothing usable
            executed_by: Executor identity

        Returns:
            ExecutionLogCreate ready to be recorded
        """
        if result is None:
            result = ExecutionResult(
                success=False,
                error="Execution did not produce a result",
                error_kind=ExecutionErrorKind.INTERNAL,
            )

        return ExecutionLogCreate(
            script_name=script.script_name,
            script_content=script.script_content,
            executed_by=executed_by,
            target_database=TargetDatabase(target),
            status=ExecutionStatus.SUCCESS if result.success else ExecutionStatus.ERROR,
            error_kind=result.error_kind,
            rows_affected=result.rows_affected,
            error_message=result.error,
            execution_time_ms=result.duration_ms,
            origin_url=script.origin_url,
            approvers=list(script.approvers or []),
            result_data=result.result_rows,
        )

    async def record(self, entry: ExecutionLogCreate) -> bool:
        """
        Append an entry to the execution log.

        Args:
            entry: Snapshot of the attempt

        Returns:
            True if the entry was written, False if the write failed
        """
        try:
            log = await self.repository.create_with_managed_session(entry)
        except Exception as e:
            logger.error(
                f"Failed to record execution of {entry.script_name} on {entry.target_database.value} "
                f"by {entry.executed_by} (status={entry.status.value}): {e}",
                exc_info=True,
            )
            return False

        logger.info(
            f"Recorded execution {log.id}: {entry.script_name} on {entry.target_database.value} "
            f"by {entry.executed_by}, status={entry.status.value}"
        )
        return True
