"""Application settings and configuration.

This module defines all configuration options for the message sync service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Teenlancer Message Sync", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./teenlancer_sync.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Conversation provider integration settings
    provider_base_url: str = Field(
        default="https://conversations.twilio.com/v1",
        alias="PROVIDER_BASE_URL",
    )
    provider_account_sid: str | None = Field(default=None, alias="PROVIDER_ACCOUNT_SID")
    provider_auth_token: str | None = Field(default=None, alias="PROVIDER_AUTH_TOKEN")
    provider_service_sid: str | None = Field(default=None, alias="PROVIDER_SERVICE_SID")
    provider_api_key_sid: str | None = Field(default=None, alias="PROVIDER_API_KEY_SID")
    provider_api_key_secret: str | None = Field(default=None, alias="PROVIDER_API_KEY_SECRET")
    provider_http_timeout_seconds: float = Field(
        default=10.0,
        alias="PROVIDER_HTTP_TIMEOUT_SECONDS",
    )
    provider_page_size: int = Field(default=100, alias="PROVIDER_PAGE_SIZE")
    provider_token_ttl_seconds: int = Field(default=3600, alias="PROVIDER_TOKEN_TTL_SECONDS")
    provider_webhook_validate: bool = Field(default=False, alias="PROVIDER_WEBHOOK_VALIDATE")
    provider_webhook_url: str | None = Field(default=None, alias="PROVIDER_WEBHOOK_URL")

    # Periodic pull reconciliation; an interval of 0 disables the worker
    reconcile_interval_seconds: float = Field(
        default=0.0,
        alias="RECONCILE_INTERVAL_SECONDS",
    )
    reconcile_batch_size: int = Field(default=25, alias="RECONCILE_BATCH_SIZE")

    # CORS configuration for the mobile/web client
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def provider_configured(self) -> bool:
        """Return True when server-side provider credentials are present."""
        return bool(
            self.provider_account_sid
            and self.provider_auth_token
            and self.provider_service_sid
        )


settings = Settings()
