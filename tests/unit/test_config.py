import jwt
import pytest

from sqlgate.config.settings import Settings, to_async_url, validate_config
from sqlgate.core.exceptions import ConfigurationError
from sqlgate.db.pools import TargetPools
from sqlgate.dependencies.auth import decode_principal
from sqlgate.models.enums import TargetDatabase


class TestAsyncUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("postgres://u:p@db:5432/app", "postgresql+asyncpg://u:p@db:5432/app"),
            ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("sqlite:///./staging.db", "sqlite+aiosqlite:///./staging.db"),
            ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
            ("", ""),
        ],
    )
    def test_normalises_driver(self, url, expected):
        assert to_async_url(url) == expected


class TestSettings:
    def test_target_urls_are_normalised(self):
        current = Settings(STAGING_DB_URL="postgres://u:p@staging/app", PROD_DB_URL="sqlite:///prod.db")

        assert current.STAGING_DB_URL == "postgresql+asyncpg://u:p@staging/app"
        assert current.PROD_DB_URL == "sqlite+aiosqlite:///prod.db"

    def test_audit_url_alias(self):
        current = Settings(AUDIT_DB_URL="postgresql://u:p@audit/log")
        assert current.DATABASE_URI == "postgresql+asyncpg://u:p@audit/log"

    def test_validate_config_reports_missing(self):
        current = Settings(GITHUB_TOKEN="", GITHUB_REPO="")
        missing = validate_config(current)
        assert "GITHUB_TOKEN" in missing
        assert "GITHUB_REPO" in missing


class TestTargetPools:
    def test_missing_url_aborts(self):
        with pytest.raises(ConfigurationError, match="production"):
            TargetPools.from_urls({TargetDatabase.STAGING: "sqlite:///staging.db"})

    def test_unknown_driver_aborts(self):
        with pytest.raises(ConfigurationError):
            TargetPools.from_urls(
                {
                    TargetDatabase.STAGING: "sqlite:///staging.db",
                    TargetDatabase.PRODUCTION: "nosuchdialect://host/db",
                }
            )

    @pytest.mark.asyncio
    async def test_one_engine_per_target(self, target_pools):
        staging = target_pools.get(TargetDatabase.STAGING)
        production = target_pools.get("production")

        assert staging is not production
        assert "staging.db" in str(staging.url)


class TestPrincipal:
    def test_prefers_email(self):
        from sqlgate.config import settings

        token = jwt.encode({"email": "ops@example.com", "sub": "7"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        assert decode_principal(token) == "ops@example.com"

    def test_falls_back_to_sub(self):
        from sqlgate.config import settings

        token = jwt.encode({"sub": "svc-deployer"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        assert decode_principal(token) == "svc-deployer"

    def test_rejects_foreign_signature(self):
        token = jwt.encode({"sub": "mallory"}, "some-other-key", algorithm="HS256")
        with pytest.raises(jwt.exceptions.PyJWTError):
            decode_principal(token)
