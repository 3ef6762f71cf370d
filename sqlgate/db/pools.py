"""
Connection pools for the execution targets.

One AsyncEngine per TargetDatabase, created at process start and disposed
at shutdown. The audit store engine lives in ``sqlgate.db.session`` and is
not reachable from here.
"""

import logging
from typing import Dict, Mapping, Optional

from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from sqlgate.config.settings import Settings, to_async_url
from sqlgate.core.exceptions import ConfigurationError
from sqlgate.models.enums import TargetDatabase

logger = logging.getLogger(__name__)


class TargetPools:
    """Process-wide pools, one per execution target."""

    def __init__(self, engines: Mapping[TargetDatabase, AsyncEngine]):
        missing = [target.value for target in TargetDatabase if target not in engines]
        if missing:
            raise ConfigurationError(f"No connection pool configured for: {', '.join(missing)}")
        self._engines: Dict[TargetDatabase, AsyncEngine] = dict(engines)

    @classmethod
    def from_urls(
        cls,
        urls: Mapping[TargetDatabase, str],
        pool_size: Optional[int] = None,
        pool_timeout: Optional[float] = None,
    ) -> "TargetPools":
        """
        Build pools from database URLs.

        Args:
            urls: URL per target
            pool_size: Maximum pooled connections per target (ignored for SQLite)
            pool_timeout: Seconds to wait for a free connection

        Raises:
            ConfigurationError: If a URL is missing or cannot be parsed
        """
        engines: Dict[TargetDatabase, AsyncEngine] = {}
        for target in TargetDatabase:
            url = to_async_url(urls.get(target) or "")
            if not url:
                raise ConfigurationError(f"Database URL for target '{target.value}' is not configured")

            options = {"pool_pre_ping": True}
            if not url.startswith("sqlite"):
                if pool_size is not None:
                    options["pool_size"] = pool_size
                if pool_timeout is not None:
                    options["pool_timeout"] = pool_timeout
            try:
                engines[target] = create_async_engine(url, **options)
            except (ArgumentError, ImportError, ValueError) as e:
                raise ConfigurationError(f"Invalid database URL for target '{target.value}': {e}") from e
            logger.info(f"Connection pool created for {target.value}")
        return cls(engines)

    @classmethod
    def from_settings(cls, current: Settings) -> "TargetPools":
        return cls.from_urls(
            {
                TargetDatabase.STAGING: current.STAGING_DB_URL,
                TargetDatabase.PRODUCTION: current.PROD_DB_URL,
            },
            pool_size=current.DB_POOL_SIZE,
            pool_timeout=current.DB_POOL_TIMEOUT_SECONDS,
        )

    def get(self, target: TargetDatabase) -> AsyncEngine:
        return self._engines[TargetDatabase(target)]

    async def dispose(self) -> None:
        for target, engine in self._engines.items():
            await engine.dispose()
            logger.info(f"Connection pool for {target.value} disposed")
