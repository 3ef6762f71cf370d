"""
Unit of Work Pattern Implementation

This module implements the Unit of Work pattern for managing
audit store transactions and repository lifecycle.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from sqlgate.repositories.approved_script_repository import ApprovedScriptRepository
from sqlgate.repositories.execution_logs_repository import ExecutionLogsRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Manages repositories and transactions as a unit.

    All repositories share the same session within a single unit of work.
    The execution log repository takes the session per call, so it is
    exposed together with ``session``.
    """

    def __init__(self):
        self._session = None
        self.session: Optional[AsyncSession] = None
        self.approved_script_repository: Optional[ApprovedScriptRepository] = None
        self.execution_logs_repository: Optional[ExecutionLogsRepository] = None

    async def __aenter__(self):
        """
        Enter async context and create all repositories with a single session.

        Returns:
            UnitOfWork: Self reference with all repositories initialized
        """
        from sqlgate.db.session import async_session_factory
        self._session = async_session_factory()
        self.session = await self._session.__aenter__()

        self.approved_script_repository = ApprovedScriptRepository(self.session)
        self.execution_logs_repository = ExecutionLogsRepository()

        logger.debug("UnitOfWork initialized with repositories")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Exit the async context, committing or rolling back as appropriate.

        Args:
            exc_type: Exception type if an exception occurred, else None
            exc_val: Exception value if an exception occurred, else None
            exc_tb: Exception traceback if an exception occurred, else None
        """
        try:
            if exc_type is not None:
                logger.debug(f"UnitOfWork exiting with exception, rolling back: {exc_type.__name__}: {exc_val}")
                await self._session.rollback()
            else:
                try:
                    await self._session.commit()
                except Exception as commit_error:
                    logger.error(f"Error committing in UnitOfWork.__aexit__: {commit_error}")
                    await self._session.rollback()
                    raise
        finally:
            # Always close the session to release connections back to the pool
            await self._session.close()
            self.session = None
            self.approved_script_repository = None
            self.execution_logs_repository = None

