"""
Audit storage engine and session management.

The audit store holds the script ledger and the execution log. It is never
an execution target; staging and production are reached through
``sqlgate.db.pools.TargetPools``.
"""

import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sqlgate.config.settings import settings
from sqlgate.db.base import Base

logger = logging.getLogger(__name__)

# Create async engine for the audit database
engine = create_async_engine(
    str(settings.DATABASE_URI),
    echo=False,
    future=True,
    pool_pre_ping=True,
)

# Create async session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_db() -> None:
    """Initialize audit tables if they don't exist."""
    try:
        # Import all models to ensure they're registered
        import sqlgate.db.all_models  # noqa: F401

        if str(settings.DATABASE_URI).startswith("sqlite"):
            db_path = settings.SQLITE_DB_PATH
            if db_path != ":memory:":
                db_dir = os.path.dirname(os.path.abspath(db_path))
                if db_dir and not os.path.exists(db_dir):
                    logger.info(f"Creating database directory: {db_dir}")
                    os.makedirs(db_dir, exist_ok=True)

        logger.info("Creating audit tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Audit tables initialized successfully")
    except Exception as e:
        logger.error(f"Error initializing database: {str(e)}", exc_info=True)
        raise

