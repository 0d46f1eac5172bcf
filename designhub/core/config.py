from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _normalise_db_url(url: str) -> str:
    """Ensure the DATABASE_URL uses the asyncpg driver prefix.

    Hosted Postgres providers (Render, Railway, Supabase) emit plain
    ``postgresql://`` connection strings.  SQLAlchemy's async engine
    requires ``postgresql+asyncpg://``.  SQLite URLs are left untouched.
    """
    if url.startswith("postgresql://") or url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1).replace(
            "postgresql://", "postgresql+asyncpg://", 1
        )
    return url


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The ShapeDiver ticket is held server-side only; callers of the
    download endpoint may choose the endpoint URL but never the ticket.

    Export cache backends
    ─────────────────────
    • redis     — blobs stored in Redis under REDIS_URL
    • memory    — per-process dict (local development, tests)
    • disabled  — every probe is a miss, nothing is written (default)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Document store
    database_url: str = "sqlite+aiosqlite:///./designhub.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def normalise_database_url(cls, v: str) -> str:
        return _normalise_db_url(v)

    # Redis (export cache backend)
    redis_url: str = "redis://localhost:6379/0"

    # Export cache
    export_cache_backend: str = "disabled"
    # 0 keeps entries until purged.
    export_cache_ttl_seconds: int = 0
    # Entry cap of the in-process memory backend; oldest used entries go first.
    export_cache_memory_max_entries: int = 256

    # ShapeDiver Geometry API
    shapediver_endpoint: str = "https://sdr8euc1.eu-central-1.shapediver.com"
    shapediver_ticket: str = ""
    # Hosts a caller-supplied shapediverEndpoint may name (fnmatch patterns).
    # The ticket is only ever sent to these hosts.
    shapediver_allowed_hosts: list[str] = ["*.shapediver.com"]
    remote_timeout_seconds: float = 120.0

    # Base URL the remote backend uses to fetch design JSON from us.
    # Falls back to http://localhost:{app_port} when blank.
    public_base_url: str = ""
    app_port: int = 5000

    # CORS — comma-separated list of allowed origins.
    cors_origins: list[str] = ["*"]

    # Rate limiting — SlowAPI format, e.g. "30/minute".
    download_rate_limit: str = "30/minute"

    # Sentry — leave blank to disable error capture.
    sentry_dsn: str = ""

    # App
    debug: bool = True

    @property
    def database_api_url(self) -> str:
        return (self.public_base_url or f"http://localhost:{self.app_port}").rstrip("/")


def get_settings() -> Settings:
    return Settings()
