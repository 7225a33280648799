"""
Chunk store connection settings.

Read from POSTGRES_* variables. The target database must have the pgvector
extension available; create_tables enables it on first run.

Dependencies: pydantic, pydantic_settings, sqlalchemy
System role: Connection parameters for the async engine
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict
from sqlalchemy.engine import URL

from knowledge_backend.configs.base import BaseSettings

ASYNC_DRIVER = "postgresql+asyncpg"


class DatabaseSettings(BaseSettings):
    """Postgres location, credentials and pool sizing."""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_", env_file=".env", extra="ignore")

    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = "postgres"
    db: str = Field(default="knowledge", description="Database holding the ledger and chunk tables")

    # Each Celery worker process opens its own NullPool engine; these apply to the API
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")
    echo_sql: bool = False

    sslmode: str = Field(default="disable", description="'require' for managed Postgres")
    url_override: str = Field(
        default="",
        description="Complete async URL; when set the fields above are ignored",
    )

    @property
    def async_database_url(self) -> str:
        """
        Async SQLAlchemy URL for asyncpg.

        asyncpg takes ``ssl`` rather than libpq's ``sslmode``. Credentials
        are escaped by URL.create.

        Returns:
            str: URL string including the password
        """
        if self.url_override:
            return self.url_override
        url = URL.create(
            ASYNC_DRIVER,
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.db,
            query={"ssl": "require"} if self.sslmode == "require" else {},
        )
        return url.render_as_string(hide_password=False)
