from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.enums import ExecutionErrorKind, ExecutionStatus, TargetDatabase
from sqlgate.repositories.execution_logs_repository import ExecutionLogsRepository
from sqlgate.schemas.execution import ExecutionResult
from sqlgate.services.audit_service import AuditRecorder


@pytest.fixture
def script():
    return ApprovedScript(
        id=3,
        script_name="003_backfill.sql",
        script_content="UPDATE t SET x = 1;",
        origin_url="https://github.com/acme/db/pull/3",
        approvers=["bob", "carol"],
    )


class TestBuildEntry:
    def test_snapshots_script_and_result(self, script):
        result = ExecutionResult(success=True, rows_affected=4, duration_ms=12)

        entry = AuditRecorder.build_entry(script, TargetDatabase.STAGING, result, "alice@example.com")

        assert entry.script_name == "003_backfill.sql"
        assert entry.script_content == "UPDATE t SET x = 1;"
        assert entry.status == ExecutionStatus.SUCCESS
        assert entry.rows_affected == 4
        assert entry.execution_time_ms == 12
        assert entry.origin_url == "https://github.com/acme/db/pull/3"
        assert entry.approvers == ["bob", "carol"]
        assert entry.error_kind is None

    def test_failure_result(self, script):
        result = ExecutionResult(success=False, error="boom", error_kind=ExecutionErrorKind.STATEMENT)

        entry = AuditRecorder.build_entry(script, TargetDatabase.PRODUCTION, result, "alice@example.com")

        assert entry.status == ExecutionStatus.ERROR
        assert entry.error_message == "boom"
        assert entry.error_kind == ExecutionErrorKind.STATEMENT
        assert entry.target_database == TargetDatabase.PRODUCTION

    def test_missing_result_still_produces_error_entry(self, script):
        entry = AuditRecorder.build_entry(script, TargetDatabase.STAGING, None, "alice@example.com")

        assert entry.status == ExecutionStatus.ERROR
        assert entry.error_kind == ExecutionErrorKind.INTERNAL


class TestRecord:
    @pytest.mark.asyncio
    async def test_writes_entry(self, audit_db, script):
        recorder = AuditRecorder()
        entry = AuditRecorder.build_entry(
            script, TargetDatabase.STAGING, ExecutionResult(success=True, result_rows=[{"id": 1}]), "alice"
        )

        assert await recorder.record(entry) is True

        from sqlgate.db.session import async_session_factory
        async with async_session_factory() as session:
            history = await ExecutionLogsRepository().get_history(session, script_name="003_backfill.sql")
        assert len(history) == 1
        assert history[0].status == "success"
        assert history[0].result_data == [{"id": 1}]
        assert history[0].executed_by == "alice"

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed_and_logged(self, script, mock_logger):
        repository = MagicMock(spec=ExecutionLogsRepository)
        repository.create_with_managed_session = AsyncMock(side_effect=RuntimeError("disk full"))
        recorder = AuditRecorder(repository)
        entry = AuditRecorder.build_entry(script, TargetDatabase.STAGING, ExecutionResult(success=True), "alice")

        with patch("sqlgate.services.audit_service.logger", mock_logger):
            assert await recorder.record(entry) is False

        mock_logger.error.assert_called_once()
        assert "disk full" in mock_logger.error.call_args[0][0]
