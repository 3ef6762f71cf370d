"""
Global test configuration for pytest.

The audit store is forced to a temporary SQLite file before the package is
imported, since ``sqlgate.db.session`` builds its engine at import time.
"""
import os
import tempfile

_test_dir = tempfile.mkdtemp(prefix="sqlgate-tests-")
os.environ.pop("AUDIT_DB_URL", None)
os.environ.pop("DATABASE_URI", None)
os.environ["DATABASE_TYPE"] = "sqlite"
os.environ["SQLITE_DB_PATH"] = os.path.join(_test_dir, "audit.db")
os.environ["LOG_DIR"] = os.path.join(_test_dir, "logs")
os.environ["SECRET_KEY"] = "test-secret-key"

import jwt  # noqa: E402
import pytest  # noqa: E402
from unittest.mock import MagicMock  # noqa: E402

from sqlgate.config import settings  # noqa: E402
from sqlgate.db.base import Base  # noqa: E402
from sqlgate.models.enums import TargetDatabase  # noqa: E402


@pytest.fixture
async def audit_db():
    """Fresh audit tables in the temporary SQLite file."""
    import sqlgate.db.all_models  # noqa: F401
    from sqlgate.db.session import engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    # Connections must not outlive the test's event loop
    await engine.dispose()


@pytest.fixture
def target_urls(tmp_path):
    """SQLite files standing in for the staging and production databases."""
    return {
        TargetDatabase.STAGING: f"sqlite+aiosqlite:///{tmp_path / 'staging.db'}",
        TargetDatabase.PRODUCTION: f"sqlite+aiosqlite:///{tmp_path / 'production.db'}",
    }


@pytest.fixture
async def target_pools(target_urls):
    from sqlgate.db.pools import TargetPools

    pools = TargetPools.from_urls(target_urls)
    yield pools
    await pools.dispose()


@pytest.fixture
def auth_headers():
    """Bearer token for a test principal."""
    token = jwt.encode({"email": "alice@example.com", "sub": "42"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


# Mock logger for testing
@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )


# Test collection modifiers
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on test location."""
    for item in items:
        path = str(item.fspath)
        if f"{os.sep}unit{os.sep}" in path:
            item.add_marker(pytest.mark.unit)
        elif f"{os.sep}integration{os.sep}" in path:
            item.add_marker(pytest.mark.integration)
