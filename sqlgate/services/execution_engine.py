"""
Execution engine for approved SQL scripts.

Runs a script against one of the target pools, wrapping it in a transaction
when the planner asks for one, and encodes every failure in the returned
ExecutionResult instead of raising.
"""

import asyncio
import base64
import time
from typing import Any, Dict, List, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncConnection

from sqlgate.core.logger import LoggerManager
from sqlgate.db.pools import TargetPools
from sqlgate.models.enums import ExecutionErrorKind, TargetDatabase
from sqlgate.schemas.execution import ExecutionResult, StatementAnalysis
from sqlgate.services.statement_analyzer import StatementAnalyzer, split_statements
from sqlgate.services.transaction_planner import TransactionPlanner

logger = LoggerManager.get_instance().execution

DEFAULT_TIMEOUT_SECONDS = 300.0
DEFAULT_MAX_RESULT_ROWS = 1000

# Binary columns are stored base64-encoded in the execution log
_ROW_ENCODERS = {bytes: lambda value: base64.b64encode(value).decode("ascii")}


def _driver_message(error: Exception) -> str:
    """The database's own message, without SQLAlchemy's statement echo."""
    original = getattr(error, "orig", None)
    return str(original if original is not None else error).strip()


class ExecutionEngine:
    """Runs SQL scripts against the staging or production pool."""

    def __init__(
        self,
        pools: TargetPools,
        analyzer: Optional[StatementAnalyzer] = None,
        planner: Optional[TransactionPlanner] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_result_rows: int = DEFAULT_MAX_RESULT_ROWS,
    ):
        self.pools = pools
        self.analyzer = analyzer or StatementAnalyzer()
        self.planner = planner or TransactionPlanner()
        self.timeout_seconds = timeout_seconds
        self.max_result_rows = max_result_rows

    async def execute(self, target: TargetDatabase, sql_text: str) -> ExecutionResult:
        """
        Execute a script against a target database.

        Args:
            target: Staging or production
            sql_text: Raw script text

        Returns:
            ExecutionResult describing success or the failure. Never raises,
            apart from cancellation of the calling task.
        """
        started = time.perf_counter()

        try:
            target = TargetDatabase(target)
            analysis = self.analyzer.analyze(sql_text)
            use_transaction = self.planner.needs_transaction(analysis)
            statements = split_statements(sql_text)
            engine = self.pools.get(target)
        except Exception as e:
            logger.error(f"Could not prepare execution for target {target}: {e}", exc_info=True)
            return self._finish(self._failure(ExecutionErrorKind.INTERNAL, str(e)), started)

        if not statements:
            return self._finish(
                self._failure(ExecutionErrorKind.EMPTY_SCRIPT, "Script contains no executable statements"),
                started,
            )

        logger.info(
            f"Executing {len(statements)} statement(s) on {target.value} "
            f"(transaction={'yes' if use_transaction else 'no'}, capture_rows={analysis.should_capture_rows})"
        )

        acquired = False
        try:
            async with engine.connect() as conn:
                acquired = True
                try:
                    result = await asyncio.wait_for(
                        self._run(conn, statements, use_transaction, analysis),
                        timeout=self.timeout_seconds,
                    )
                except asyncio.TimeoutError:
                    # The server may still be working on the statement; never hand this connection out again
                    await conn.invalidate()
                    logger.warning(f"Execution on {target.value} timed out after {self.timeout_seconds:g}s")
                    result = self._failure(
                        ExecutionErrorKind.TIMEOUT,
                        f"Execution timed out after {self.timeout_seconds:g} seconds",
                    )
        except Exception as e:
            if not acquired:
                logger.error(f"Could not acquire a connection for {target.value}: {e}")
                result = self._failure(
                    ExecutionErrorKind.CONNECTION,
                    f"Could not connect to {target.value} database: {_driver_message(e)}",
                )
            else:
                logger.error(f"Unexpected error executing on {target.value}: {e}", exc_info=True)
                result = self._failure(ExecutionErrorKind.INTERNAL, f"Unexpected error: {e}")

        return self._finish(result, started)

    async def _run(
        self,
        conn: AsyncConnection,
        statements: List[str],
        use_transaction: bool,
        analysis: StatementAnalysis,
    ) -> ExecutionResult:
        # One terminator can still separate two statements when the last one has none;
        # they must not run as separate autocommits
        if use_transaction or (len(statements) > 1 and not analysis.is_already_wrapped):
            return await self._run_in_transaction(conn, statements, analysis)
        return await self._run_direct(conn, statements, analysis)

    async def _run_in_transaction(
        self,
        conn: AsyncConnection,
        statements: List[str],
        analysis: StatementAnalysis,
    ) -> ExecutionResult:
        transaction = await conn.begin()
        total_rows = 0
        captured: Optional[Tuple[List[Dict[str, Any]], bool]] = None

        for index, statement in enumerate(statements, start=1):
            try:
                result = await conn.exec_driver_sql(statement)
                rows_affected, rows, truncated = self._consume(result, analysis)
            except DBAPIError as e:
                await transaction.rollback()
                logger.warning(f"Statement {index} of {len(statements)} failed, transaction rolled back: {_driver_message(e)}")
                return self._failure(
                    ExecutionErrorKind.STATEMENT,
                    f"Statement {index} of {len(statements)} failed, all changes rolled back: {_driver_message(e)}",
                )
            total_rows += rows_affected or 0
            if rows is not None:
                captured = (rows, truncated)

        try:
            await transaction.commit()
        except DBAPIError as e:
            logger.warning(f"Commit failed: {_driver_message(e)}")
            return self._failure(ExecutionErrorKind.STATEMENT, f"Commit failed: {_driver_message(e)}")

        return ExecutionResult(
            success=True,
            rows_affected=total_rows,
            result_rows=captured[0] if captured else None,
            result_truncated=captured[1] if captured else False,
        )

    async def _run_direct(
        self,
        conn: AsyncConnection,
        statements: List[str],
        analysis: StatementAnalysis,
    ) -> ExecutionResult:
        # No implicit BEGIN from the driver: the statement (or the script's own BEGIN/COMMIT) decides
        await conn.execution_options(isolation_level="AUTOCOMMIT")

        total_rows: Optional[int] = None
        captured: Optional[Tuple[List[Dict[str, Any]], bool]] = None

        for statement in statements:
            try:
                result = await conn.exec_driver_sql(statement)
                rows_affected, rows, truncated = self._consume(result, analysis)
            except DBAPIError as e:
                if len(statements) > 1:
                    # A self-wrapped script may have left its own transaction open on the server
                    await conn.invalidate()
                logger.warning(f"Statement failed: {_driver_message(e)}")
                return self._failure(ExecutionErrorKind.STATEMENT, _driver_message(e))
            if rows_affected is not None:
                total_rows = (total_rows or 0) + rows_affected
            if rows is not None:
                captured = (rows, truncated)

        return ExecutionResult(
            success=True,
            rows_affected=total_rows,
            result_rows=captured[0] if captured else None,
            result_truncated=captured[1] if captured else False,
        )

    def _consume(
        self,
        result: CursorResult,
        analysis: StatementAnalysis,
    ) -> Tuple[Optional[int], Optional[List[Dict[str, Any]]], bool]:
        """Read a statement result into (rows affected, captured rows, truncated)."""
        if not result.returns_rows:
            return (result.rowcount if result.rowcount >= 0 else None), None, False

        fetched = result.fetchall()
        if not analysis.should_capture_rows:
            return len(fetched), None, False

        truncated = len(fetched) > self.max_result_rows
        try:
            rows = [
                jsonable_encoder(dict(row._mapping), custom_encoder=_ROW_ENCODERS)
                for row in fetched[: self.max_result_rows]
            ]
        except (TypeError, ValueError) as e:
            # The statement already ran; an unencodable value only costs the capture
            logger.warning(f"Could not encode captured rows, dropping them: {e}")
            return len(fetched), None, False
        return len(fetched), rows, truncated

    @staticmethod
    def _failure(kind: ExecutionErrorKind, message: str) -> ExecutionResult:
        return ExecutionResult(success=False, error=message, error_kind=kind)

    @staticmethod
    def _finish(result: ExecutionResult, started: float) -> ExecutionResult:
        result.duration_ms = int((time.perf_counter() - started) * 1000)
        return result
