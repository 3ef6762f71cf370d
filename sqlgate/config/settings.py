from typing import Any, List, Optional
import logging
import os

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def to_async_url(url: str) -> str:
    """
    Normalise a database URL to its async driver form.

    Plain ``postgresql://`` / ``postgres://`` URLs become ``postgresql+asyncpg://``
    and plain ``sqlite://`` URLs become ``sqlite+aiosqlite://``. URLs that
    already name a driver are returned unchanged.
    """
    if not url:
        return url
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


class Settings(BaseSettings):
    PROJECT_NAME: str = "SQL Gate"
    PROJECT_DESCRIPTION: str = "Staging-first execution of peer-reviewed SQL change scripts"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"

    CORS_ORIGINS: List[str] = ["*"]

    # Audit storage (ledger + execution log)
    DATABASE_TYPE: str = os.getenv("DATABASE_TYPE", "postgres")  # 'postgres' or 'sqlite'
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "audit_db"
    POSTGRES_PORT: str = "5432"
    SQLITE_DB_PATH: str = os.getenv("SQLITE_DB_PATH", "./audit.db")
    DATABASE_URI: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URI", "AUDIT_DB_URL"),
        validate_default=True,
    )

    @field_validator("DATABASE_URI", mode="before")
    def assemble_db_connection(cls, v: Optional[str], info) -> Any:
        if isinstance(v, str) and v:
            return to_async_url(v)

        db_type = info.data.get("DATABASE_TYPE", "postgres")

        if db_type.lower() == "sqlite":
            sqlite_path = info.data.get("SQLITE_DB_PATH", "./audit.db")
            return f"sqlite+aiosqlite:///{sqlite_path}"
        return f"postgresql+asyncpg://{info.data.get('POSTGRES_USER')}:{info.data.get('POSTGRES_PASSWORD')}@{info.data.get('POSTGRES_SERVER')}:{info.data.get('POSTGRES_PORT', 5432)}/{info.data.get('POSTGRES_DB') or ''}"

    # Execution targets
    STAGING_DB_URL: str = ""
    PROD_DB_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_POOL_TIMEOUT_SECONDS: float = 30.0
    STATEMENT_TIMEOUT_SECONDS: float = 300.0
    MAX_RESULT_ROWS: int = 1000

    @field_validator("STAGING_DB_URL", "PROD_DB_URL", mode="before")
    def normalise_target_url(cls, v: Optional[str]) -> str:
        return to_async_url(v or "")

    # Change source
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: str = ""
    GITHUB_REPO: str = ""  # owner/repo
    GITHUB_WEBHOOK_SECRET: str = ""
    GITHUB_SQL_FOLDER: str = ""  # empty = watch the entire repository
    SQL_FILE_EXTENSION: str = ".sql"
    MIN_APPROVALS: int = 2
    SYNC_PR_LIMIT: int = 50
    SYNC_ITEM_TIMEOUT_SECONDS: float = 30.0
    METADATA_SCAN_LINES: int = 20

    # Principal tokens are issued by the login layer; only verified here
    SECRET_KEY: str = "development_secret_key"
    ALGORITHM: str = "HS256"

    DOCS_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR")

    # Server settings
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000
    DEBUG_MODE: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()


def validate_config(current: Optional[Settings] = None) -> List[str]:
    """
    Warn about recommended settings that are not present.

    Args:
        current: Settings to check, defaults to the process settings

    Returns:
        Names of the missing settings
    """
    current = current or settings
    missing = []
    if not (os.getenv("AUDIT_DB_URL") or os.getenv("DATABASE_URI") or current.DATABASE_TYPE.lower() == "sqlite"):
        missing.append("AUDIT_DB_URL")
    if not current.GITHUB_TOKEN:
        missing.append("GITHUB_TOKEN")
    if not current.GITHUB_REPO:
        missing.append("GITHUB_REPO")

    if missing:
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
    return missing
