"""
Repository for the script ledger.

Entries are inserted by reconciliation only and never deleted. The execution
flags are set with conditional updates so they can only move forward.
"""

from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sqlgate.core.base_repository import BaseRepository
from sqlgate.core.logger import LoggerManager
from sqlgate.models.approved_script import ApprovedScript
from sqlgate.models.enums import TargetDatabase
from sqlgate.schemas.script import ScriptCreate
from sqlgate.utils.time_utils import normalize_timestamp, utc_now

logger = LoggerManager.get_instance().system

_FLAG_COLUMNS = {
    TargetDatabase.STAGING: ("staging_executed", "staging_executed_at"),
    TargetDatabase.PRODUCTION: ("production_executed", "production_executed_at"),
}


class ApprovedScriptRepository(BaseRepository[ApprovedScript]):
    """Repository for ApprovedScript model with ledger-specific operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(ApprovedScript, session)

    async def list_newest_first(self, skip: int = 0, limit: int = 500) -> List[ApprovedScript]:
        """
        Get ledger entries, most recently approved first.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of ledger entries
        """
        query = (
            select(ApprovedScript)
            .order_by(ApprovedScript.approved_at.desc(), ApprovedScript.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_existing_names(self) -> Set[str]:
        """Names of every ledger entry, used to skip already imported files."""
        result = await self.session.execute(select(ApprovedScript.script_name))
        return set(result.scalars().all())

    async def create_if_absent(self, script_in: ScriptCreate) -> Optional[ApprovedScript]:
        """
        Insert a ledger entry unless one with the same name already exists.

        An existing entry is never overwritten, even if the incoming content differs.

        Args:
            script_in: Data for the new entry

        Returns:
            The created entry, or None if the name is already taken
        """
        db_obj = ApprovedScript(
            script_name=script_in.script_name,
            script_content=script_in.script_content,
            target_database=script_in.target_database.value,
            origin_url=script_in.origin_url,
            approvers=list(script_in.approvers),
            approved_at=utc_now(),
            direct_prod=script_in.direct_prod,
        )
        self.session.add(db_obj)
        try:
            await self.session.commit()
        except IntegrityError:
            # Another pass inserted the same name first
            await self.session.rollback()
            logger.info(f"Script {script_in.script_name} already in ledger, not overwritten")
            return None
        await self.session.refresh(db_obj)
        return db_obj

    async def mark_executed(
        self,
        script_id: int,
        target: TargetDatabase,
        executed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Set the executed flag and timestamp for a target if not already set.

        Args:
            script_id: Ledger entry ID
            target: Target that was executed successfully
            executed_at: When it happened, defaults to now

        Returns:
            True if this call moved the flag, False if it was already set or the
            entry does not exist
        """
        flag_column, at_column = _FLAG_COLUMNS[TargetDatabase(target)]
        stmt = (
            update(ApprovedScript)
            .where(ApprovedScript.id == script_id)
            .where(getattr(ApprovedScript, flag_column).is_(False))
            .values({flag_column: True, at_column: normalize_timestamp(executed_at) or utc_now()})
        )
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result.rowcount > 0

    async def list_unexecuted(self, target: TargetDatabase) -> List[ApprovedScript]:
        """Ledger entries whose executed flag for ``target`` is still unset."""
        flag_column, _ = _FLAG_COLUMNS[TargetDatabase(target)]
        query = select(ApprovedScript).where(getattr(ApprovedScript, flag_column).is_(False))
        result = await self.session.execute(query)
        return list(result.scalars().all())
