"""
Reconciliation of merged change requests into the script ledger.

Skips (not enough approvals, no eligible files, name already in the ledger,
file gone) are expected and only counted. Anything unexpected while handling
one item, including a network timeout, is counted as an error and the pass
moves on to the next item.
"""

import asyncio
from pathlib import PurePosixPath
from typing import Awaitable, List, Optional, Set, TypeVar

from sqlgate.config.settings import Settings
from sqlgate.core.logger import LoggerManager
from sqlgate.core.unit_of_work import UnitOfWork
from sqlgate.models.enums import TargetDatabase
from sqlgate.schemas.script import PendingChangeRequest, ScriptCreate
from sqlgate.schemas.sync import (
    ChangedFile,
    ChangeRequest,
    ChangeRequestSyncResult,
    ProcessedFile,
    SyncStats,
)
from sqlgate.services.change_source import BaseChangeSource
from sqlgate.utils.sql_metadata import DEFAULT_SCAN_LINES, extract_target_database, parse_sql_metadata

logger = LoggerManager.get_instance().sync

T = TypeVar("T")

SKIP_INSUFFICIENT_APPROVALS = "insufficient_approvals"
SKIP_NO_SQL_FILES = "no_sql_files"
SKIP_ALREADY_EXISTS = "already_exists"
SKIP_FILE_DELETED = "file_deleted"
SKIP_NO_CONTENT = "no_content"

OUTCOME_SYNCED = "synced"
OUTCOME_ERROR = "error"


class ChangeSourceReconciler:
    """Imports approved SQL files from merged change requests."""

    def __init__(
        self,
        source: BaseChangeSource,
        min_approvals: int = 2,
        sql_folder: str = "",
        file_extension: str = ".sql",
        change_request_limit: int = 50,
        item_timeout_seconds: float = 30.0,
        metadata_scan_lines: int = DEFAULT_SCAN_LINES,
    ):
        self.source = source
        self.min_approvals = min_approvals
        self.sql_folder = sql_folder
        self.file_extension = file_extension
        self.change_request_limit = change_request_limit
        self.item_timeout_seconds = item_timeout_seconds
        self.metadata_scan_lines = metadata_scan_lines

    @classmethod
    def from_settings(cls, source: BaseChangeSource, current: Settings) -> "ChangeSourceReconciler":
        return cls(
            source,
            min_approvals=current.MIN_APPROVALS,
            sql_folder=current.GITHUB_SQL_FOLDER,
            file_extension=current.SQL_FILE_EXTENSION,
            change_request_limit=current.SYNC_PR_LIMIT,
            item_timeout_seconds=current.SYNC_ITEM_TIMEOUT_SECONDS,
            metadata_scan_lines=current.METADATA_SCAN_LINES,
        )

    def is_eligible(self, changed_file: ChangedFile) -> bool:
        if changed_file.status == "removed":
            return False
        if not changed_file.path.endswith(self.file_extension):
            return False
        return not self.sql_folder or changed_file.path.startswith(self.sql_folder)

    async def _bounded(self, call: Awaitable[T]) -> T:
        return await asyncio.wait_for(call, timeout=self.item_timeout_seconds)

    async def _existing_names(self) -> Set[str]:
        async with UnitOfWork() as uow:
            return await uow.approved_script_repository.get_existing_names()

    async def sync(self) -> SyncStats:
        """
        Run one reconciliation pass over the recent merged change requests.

        Returns:
            SyncStats with synced, skipped (by reason) and error counts
        """
        stats = SyncStats()
        existing = await self._existing_names()

        try:
            change_requests = await self._bounded(
                self.source.list_merged_change_requests(self.change_request_limit)
            )
        except Exception as e:
            logger.error(f"Could not list merged change requests: {e}", exc_info=True)
            stats.errors += 1
            return stats

        logger.info(f"Checking {len(change_requests)} merged change request(s)")
        for change_request in change_requests:
            await self.sync_change_request(change_request, existing=existing, stats=stats)

        logger.info(
            f"Sync complete: {stats.synced} synced, {stats.skipped} skipped, {stats.errors} errors"
            + (f" (skipped: {stats.skipped_reasons})" if stats.skipped_reasons else "")
        )
        return stats

    async def sync_change_request(
        self,
        change_request: ChangeRequest,
        existing: Optional[Set[str]] = None,
        stats: Optional[SyncStats] = None,
    ) -> ChangeRequestSyncResult:
        """
        Import the eligible files of a single merged change request.

        Args:
            change_request: The merged change request
            existing: Ledger names already known; updated in place with new imports
            stats: Counters to update; a fresh SyncStats is used if omitted

        Returns:
            ChangeRequestSyncResult with approvers and per-file outcomes
        """
        if existing is None:
            existing = await self._existing_names()
        if stats is None:
            stats = SyncStats()
        outcome = ChangeRequestSyncResult(change_request_id=change_request.id)

        try:
            outcome.approvers = await self._bounded(self.source.list_approvers(change_request.id))
            if len(outcome.approvers) < self.min_approvals:
                stats.skip(SKIP_INSUFFICIENT_APPROVALS)
                outcome.skipped_reason = SKIP_INSUFFICIENT_APPROVALS
                return outcome

            files = await self._bounded(self.source.list_changed_files(change_request.id))
            eligible = [f for f in files if self.is_eligible(f)]
            if not eligible:
                stats.skip(SKIP_NO_SQL_FILES)
                outcome.skipped_reason = SKIP_NO_SQL_FILES
                return outcome
        except Exception as e:
            logger.error(f"Error processing change request #{change_request.id}: {e}", exc_info=True)
            stats.errors += 1
            outcome.skipped_reason = OUTCOME_ERROR
            return outcome

        for changed_file in eligible:
            processed = await self._sync_file(change_request, changed_file, outcome.approvers, existing, stats)
            outcome.processed_files.append(processed)
        return outcome

    async def _sync_file(
        self,
        change_request: ChangeRequest,
        changed_file: ChangedFile,
        approvers: List[str],
        existing: Set[str],
        stats: SyncStats,
    ) -> ProcessedFile:
        script_name = PurePosixPath(changed_file.path).name
        processed = ProcessedFile(path=changed_file.path, script_name=script_name, outcome=OUTCOME_SYNCED)

        if script_name in existing:
            stats.skip(SKIP_ALREADY_EXISTS)
            processed.outcome = SKIP_ALREADY_EXISTS
            return processed

        try:
            content = await self._bounded(self.source.fetch_file_content(changed_file.path))
            if content is None:
                # Deleted after the merge
                stats.skip(SKIP_FILE_DELETED)
                processed.outcome = SKIP_FILE_DELETED
                return processed
            if not content.strip():
                stats.skip(SKIP_NO_CONTENT)
                processed.outcome = SKIP_NO_CONTENT
                return processed

            metadata = parse_sql_metadata(content, self.metadata_scan_lines)
            target = extract_target_database(metadata) or TargetDatabase.STAGING
            processed.target_database = target
            processed.direct_prod = metadata.direct_prod

            async with UnitOfWork() as uow:
                created = await uow.approved_script_repository.create_if_absent(
                    ScriptCreate(
                        script_name=script_name,
                        script_content=content,
                        target_database=target,
                        origin_url=change_request.url,
                        approvers=approvers,
                        direct_prod=metadata.direct_prod,
                    )
                )
        except Exception as e:
            logger.error(f"Error syncing {changed_file.path} from #{change_request.id}: {e}", exc_info=True)
            stats.errors += 1
            processed.outcome = OUTCOME_ERROR
            return processed

        existing.add(script_name)
        if created is None:
            stats.skip(SKIP_ALREADY_EXISTS)
            processed.outcome = SKIP_ALREADY_EXISTS
            return processed

        stats.synced += 1
        logger.info(
            f"Synced {script_name} from #{change_request.id}"
            + (" (DirectProd)" if metadata.direct_prod else "")
        )
        return processed

    async def list_pending_change_requests(self) -> List[PendingChangeRequest]:
        """
        Open change requests that touch eligible SQL files, newest-updated first.

        A change request whose files cannot be listed is left out and logged.
        """
        open_requests = await self._bounded(
            self.source.list_open_change_requests(self.change_request_limit)
        )
        pending: List[PendingChangeRequest] = []
        for change_request in open_requests:
            try:
                files = await self._bounded(self.source.list_changed_files(change_request.id))
            except Exception as e:
                logger.error(f"Could not list files for open change request #{change_request.id}: {e}")
                continue
            sql_files = [f.path for f in files if self.is_eligible(f)]
            if sql_files:
                pending.append(change_request.model_copy(update={"sql_files": sql_files}))
        return pending
