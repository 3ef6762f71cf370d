"""
Unit tests for ChangeSourceReconciler.

A scripted in-memory change source feeds the reconciler; ledger writes go to
the temporary SQLite audit store.
"""
import asyncio
from typing import Dict, List, Optional

import pytest

from sqlgate.core.unit_of_work import UnitOfWork
from sqlgate.models.enums import TargetDatabase
from sqlgate.schemas.script import PendingChangeRequest
from sqlgate.schemas.sync import ChangedFile, ChangeRequest
from sqlgate.services.change_source import BaseChangeSource
from sqlgate.services.script_sync_service import ChangeSourceReconciler


class FakeChangeSource(BaseChangeSource):
    def __init__(self):
        self.merged: List[ChangeRequest] = []
        self.open: List[PendingChangeRequest] = []
        self.approvers: Dict[int, List[str]] = {}
        self.files: Dict[int, List[ChangedFile]] = {}
        self.contents: Dict[str, Optional[str]] = {}
        self.failing_paths: Dict[str, Exception] = {}
        self.slow_change_requests = set()

    def add(self, pr_id, approvers, files):
        self.merged.append(ChangeRequest(id=pr_id, url=f"https://github.com/acme/db/pull/{pr_id}"))
        self.approvers[pr_id] = approvers
        self.files[pr_id] = [ChangedFile(path=path, status="added") for path in files]
        for path, content in files.items():
            self.contents[path] = content

    async def list_merged_change_requests(self, limit):
        return self.merged[:limit]

    async def list_approvers(self, change_request_id):
        if change_request_id in self.slow_change_requests:
            await asyncio.sleep(5)
        return self.approvers.get(change_request_id, [])

    async def list_changed_files(self, change_request_id):
        return self.files.get(change_request_id, [])

    async def fetch_file_content(self, path):
        if path in self.failing_paths:
            raise self.failing_paths[path]
        return self.contents.get(path)

    async def list_open_change_requests(self, limit):
        return self.open[:limit]

    def verify_incoming_signature(self, payload, signature):
        return True


async def ledger():
    async with UnitOfWork() as uow:
        return {s.script_name: s for s in await uow.approved_script_repository.list_newest_first()}


@pytest.fixture
def source():
    return FakeChangeSource()


@pytest.fixture
def reconciler(source):
    return ChangeSourceReconciler(source, min_approvals=2, item_timeout_seconds=0.2)


class TestSync:
    @pytest.mark.asyncio
    async def test_imports_approved_files(self, audit_db, source, reconciler):
        source.add(
            1,
            ["bob", "carol"],
            {
                "migrations/001_add_col.sql": "-- Author: Bob\nALTER TABLE t ADD COLUMN y INT;",
                "migrations/002_fix.sql": "-- Target: production\n-- DirectProd: true\nUPDATE t SET y = 1;",
            },
        )

        stats = await reconciler.sync()

        assert (stats.synced, stats.skipped, stats.errors) == (2, 0, 0)
        entries = await ledger()
        first = entries["001_add_col.sql"]
        assert first.target_database == TargetDatabase.STAGING.value
        assert first.direct_prod is False
        assert first.origin_url == "https://github.com/acme/db/pull/1"
        assert sorted(first.approvers) == ["bob", "carol"]
        second = entries["002_fix.sql"]
        assert second.target_database == TargetDatabase.PRODUCTION.value
        assert second.direct_prod is True

    @pytest.mark.asyncio
    async def test_second_run_adds_nothing(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"001.sql": "SELECT 1;"})

        await reconciler.sync()
        stats = await reconciler.sync()

        assert stats.synced == 0
        assert stats.skipped_reasons == {"already_exists": 1}
        assert len(await ledger()) == 1

    @pytest.mark.asyncio
    async def test_never_overwrites_or_regresses_existing_entry(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"001.sql": "SELECT 1;"})
        await reconciler.sync()
        entry = (await ledger())["001.sql"]
        async with UnitOfWork() as uow:
            await uow.approved_script_repository.mark_executed(entry.id, TargetDatabase.STAGING)

        source.add(2, ["dave", "erin"], {"sql/001.sql": "DROP TABLE t;"})
        stats = await reconciler.sync()

        assert stats.synced == 0
        again = (await ledger())["001.sql"]
        assert again.script_content == "SELECT 1;"
        assert again.staging_executed is True

    @pytest.mark.asyncio
    async def test_insufficient_approvals_is_a_skip(self, audit_db, source, reconciler):
        source.add(1, ["bob"], {"001.sql": "SELECT 1;"})

        stats = await reconciler.sync()

        assert stats.errors == 0
        assert stats.skipped == 1
        assert stats.skipped_reasons == {"insufficient_approvals": 1}
        assert await ledger() == {}

    @pytest.mark.asyncio
    async def test_ineligible_files_skip_change_request(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"README.md": "docs", "app.py": "print()"})
        source.files[1].append(ChangedFile(path="old.sql", status="removed"))

        stats = await reconciler.sync()

        assert stats.skipped_reasons == {"no_sql_files": 1}

    @pytest.mark.asyncio
    async def test_folder_restriction(self, audit_db, source):
        source.add(1, ["bob", "carol"], {"db/changes/001.sql": "SELECT 1;", "other/002.sql": "SELECT 2;"})
        reconciler = ChangeSourceReconciler(source, min_approvals=2, sql_folder="db/changes/")

        stats = await reconciler.sync()

        assert stats.synced == 1
        assert list(await ledger()) == ["001.sql"]

    @pytest.mark.asyncio
    async def test_deleted_file_is_a_skip(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"001.sql": None})

        stats = await reconciler.sync()

        assert stats.errors == 0
        assert stats.skipped_reasons == {"file_deleted": 1}

    @pytest.mark.asyncio
    async def test_item_error_does_not_abort_pass(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"001.sql": "SELECT 1;", "002.sql": "SELECT 2;"})
        source.failing_paths["001.sql"] = RuntimeError("connection reset")

        stats = await reconciler.sync()

        assert stats.errors == 1
        assert stats.synced == 1
        assert list(await ledger()) == ["002.sql"]

    @pytest.mark.asyncio
    async def test_timeout_counts_as_error_and_continues(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"001.sql": "SELECT 1;"})
        source.add(2, ["bob", "carol"], {"002.sql": "SELECT 2;"})
        source.slow_change_requests.add(1)

        stats = await reconciler.sync()

        assert stats.errors == 1
        assert stats.synced == 1
        assert list(await ledger()) == ["002.sql"]

    @pytest.mark.asyncio
    async def test_same_name_twice_in_one_pass(self, audit_db, source, reconciler):
        source.add(1, ["bob", "carol"], {"a/001.sql": "SELECT 1;"})
        source.add(2, ["bob", "carol"], {"b/001.sql": "SELECT 2;"})

        stats = await reconciler.sync()

        assert stats.synced == 1
        assert stats.skipped_reasons == {"already_exists": 1}
        assert (await ledger())["001.sql"].script_content == "SELECT 1;"


class TestSyncChangeRequest:
    @pytest.mark.asyncio
    async def test_reports_per_file_outcomes(self, audit_db, source, reconciler):
        source.add(7, ["bob", "carol"], {"001.sql": "-- DirectProd\nSELECT 1;", "002.sql": None})

        result = await reconciler.sync_change_request(source.merged[0])

        assert result.change_request_id == 7
        assert result.approvers == ["bob", "carol"]
        assert result.skipped_reason is None
        outcomes = {f.script_name: f for f in result.processed_files}
        assert outcomes["001.sql"].outcome == "synced"
        assert outcomes["001.sql"].direct_prod is True
        assert outcomes["002.sql"].outcome == "file_deleted"

    @pytest.mark.asyncio
    async def test_reports_skip_reason(self, audit_db, source, reconciler):
        source.add(8, [], {"001.sql": "SELECT 1;"})

        result = await reconciler.sync_change_request(source.merged[0])

        assert result.skipped_reason == "insufficient_approvals"
        assert result.processed_files == []


class TestPendingChangeRequests:
    @pytest.mark.asyncio
    async def test_lists_open_requests_with_sql_files(self, source, reconciler):
        source.open = [
            PendingChangeRequest(id=10, title="Add index", url="https://github.com/acme/db/pull/10", author="bob"),
            PendingChangeRequest(id=11, title="Docs", url="https://github.com/acme/db/pull/11", author="carol"),
        ]
        source.files[10] = [ChangedFile(path="010.sql", status="added")]
        source.files[11] = [ChangedFile(path="README.md", status="modified")]

        pending = await reconciler.list_pending_change_requests()

        assert [p.id for p in pending] == [10]
        assert pending[0].sql_files == ["010.sql"]
