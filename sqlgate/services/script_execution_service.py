"""
Service for listing, inspecting and executing ledger entries.

An execution request goes through these steps, in order:

1. fresh read of the ledger entry
2. promotion gate check (production only); a rejection stops here
3. execution engine run
4. audit record, always
5. on success, the monotonic promotion-state update

A failed audit write does not skip step 5, and a failed state update does not
undo step 4. PromotionGate.replay_from_log() repairs a missing step 5.
"""

from typing import List, Optional

from sqlgate.core.exceptions import ScriptNotFoundError
from sqlgate.core.logger import LoggerManager
from sqlgate.core.unit_of_work import UnitOfWork
from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.enums import ExecutionErrorKind, TargetDatabase
from sqlgate.schemas.execution import (
    ExecutionHistoryList,
    ExecutionLogItem,
    ExecutionResult,
    ScriptExecutionResponse,
)
from sqlgate.schemas.script import ScriptDetailResponse, ScriptResponse
from sqlgate.services.audit_service import AuditRecorder
from sqlgate.services.execution_engine import ExecutionEngine
from sqlgate.services.promotion_gate import PromotionGate

logger = LoggerManager.get_instance().execution

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 500


def build_execution_message(result: ExecutionResult) -> str:
    """Human readable summary of a successful execution."""
    if result.result_rows is not None:
        return f"Successfully executed. Returned {len(result.result_rows)} row(s) in {result.duration_ms}ms"
    return f"Successfully executed. {result.rows_affected or 0} row(s) affected in {result.duration_ms}ms"


class ScriptExecutionService:
    """Entry points for the ledger and for executing scripts."""

    def __init__(
        self,
        engine: ExecutionEngine,
        gate: Optional[PromotionGate] = None,
        recorder: Optional[AuditRecorder] = None,
    ):
        self.engine = engine
        self.gate = gate or PromotionGate()
        self.recorder = recorder or AuditRecorder()

    def _to_response(self, script: ApprovedScript) -> ScriptResponse:
        response = ScriptResponse.model_validate(script)
        return response.model_copy(
            update={
                "promotion_state": self.gate.derive_state(script),
                "can_execute_on_production": self.gate.can_execute_on_production(script),
            }
        )

    async def list_ledger(self, skip: int = 0, limit: int = 500) -> List[ScriptResponse]:
        """
        List ledger entries, most recently approved first.

        Args:
            skip: Number of entries to skip
            limit: Maximum number of entries to return

        Returns:
            List of ledger entries with their derived promotion state
        """
        async with UnitOfWork() as uow:
            scripts = await uow.approved_script_repository.list_newest_first(skip=skip, limit=limit)
        return [self._to_response(script) for script in scripts]

    async def get_ledger_entry(self, script_id: int, history_limit: int = DEFAULT_HISTORY_LIMIT) -> ScriptDetailResponse:
        """
        Get one ledger entry with its execution history, newest first.

        Raises:
            ScriptNotFoundError: If no entry has this ID
        """
        async with UnitOfWork() as uow:
            script = await uow.approved_script_repository.get(script_id)
            if script is None:
                raise ScriptNotFoundError(script_id)
            history = await uow.execution_logs_repository.get_history(
                uow.session, script_name=script.script_name, limit=history_limit
            )
        return ScriptDetailResponse(
            script=self._to_response(script),
            history=[ExecutionLogItem.model_validate(entry) for entry in history],
        )

    async def get_execution_history(
        self,
        script_name: Optional[str] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> ExecutionHistoryList:
        """
        Get execution log entries, newest first.

        Args:
            script_name: Restrict to one script, or None for all scripts
            limit: Maximum number of entries, between 1 and MAX_HISTORY_LIMIT

        Raises:
            ValueError: If limit is out of range
        """
        if limit < 1 or limit > MAX_HISTORY_LIMIT:
            raise ValueError(f"limit must be between 1 and {MAX_HISTORY_LIMIT}")

        async with UnitOfWork() as uow:
            entries = await uow.execution_logs_repository.get_history(
                uow.session, script_name=script_name, limit=limit
            )
        return ExecutionHistoryList(
            executions=[ExecutionLogItem.model_validate(entry) for entry in entries],
            script_name=script_name,
            limit=limit,
        )

    async def execute_script(
        self,
        script_id: int,
        target: TargetDatabase,
        executed_by: str,
    ) -> ScriptExecutionResponse:
        """
        Execute a ledger entry against a target database.

        Args:
            script_id: Ledger entry ID
            target: Staging or production
            executed_by: Identity of the principal requesting execution

        Returns:
            ScriptExecutionResponse; authorization rejections carry
            error_kind=AUTHORIZATION and produce no audit entry

        Raises:
            ScriptNotFoundError: If no entry has this ID
        """
        target = TargetDatabase(target)

        # Always re-read: a concurrent request may have changed the flags
        async with UnitOfWork() as uow:
            script = await uow.approved_script_repository.get(script_id)
        if script is None:
            raise ScriptNotFoundError(script_id)

        rejection = self.gate.authorize(script, target, executed_by)
        if rejection is not None:
            return ScriptExecutionResponse(
                success=False,
                error=rejection,
                error_kind=ExecutionErrorKind.AUTHORIZATION,
            )

        logger.info(f"{executed_by} executing {script.script_name} (id={script.id}) on {target.value}")
        result = await self.engine.execute(target, script.script_content)

        audit_recorded = await self.recorder.record(
            AuditRecorder.build_entry(script, target, result, executed_by)
        )

        if result.success:
            try:
                await self.gate.advance(script.id, target)
            except Exception as e:
                # The success log entry lets replay_from_log() set the flag later
                logger.error(
                    f"Executed {script.script_name} on {target.value} but could not update promotion state: {e}",
                    exc_info=True,
                )
            logger.info(f"Executed {script.script_name} on {target.value} in {result.duration_ms}ms")
        else:
            logger.warning(
                f"Execution of {script.script_name} on {target.value} failed "
                f"({result.error_kind.value if result.error_kind else 'unknown'}): {result.error}"
            )

        return ScriptExecutionResponse(
            success=result.success,
            message=build_execution_message(result) if result.success else None,
            error=result.error,
            error_kind=result.error_kind,
            rows_affected=result.rows_affected,
            result_rows=result.result_rows,
            result_truncated=result.result_truncated,
            duration_ms=result.duration_ms,
            audit_recorded=audit_recorded,
        )
