from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "mention_user"
    postgres_password: str = "changeme"
    postgres_db: str = "mention_tracker"

    # Full SQLAlchemy URL, overrides the postgres_* parts when set
    # (e.g. "sqlite+aiosqlite:///./mentions.db" for local runs)
    database_url: str = ""

    @property
    def postgres_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker / result backend)
    redis_url: str = "redis://localhost:6379/0"

    # Auth
    jwt_secret_key: str = "change-this-to-a-random-string"
    jwt_access_token_expire_minutes: int = 30
    jwt_algorithm: str = "HS256"

    # AI providers; a provider without a key is skipped by every scan
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    perplexity_api_key: str = ""
    perplexity_model: str = "sonar"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"
    provider_timeout_seconds: float = 60.0

    # Scanning
    scan_max_tokens: int = 1000
    scan_temperature: float = 0.3
    default_scan_interval_hours: int = 24
    scan_queue_max_attempts: int = 3
    scan_queue_batch_size: int = 20
    scan_queue_stale_after_minutes: int = 30  # running items older than this are failed

    # Shared secret for the scheduler trigger endpoint (empty = no check)
    cron_secret: str = ""

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    auto_create_tables: bool = True  # create tables from ORM metadata at startup

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Rate limiting
    rate_limit_enabled: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.app_env == "production":
        if settings.jwt_secret_key in ("change-this-to-a-random-string", ""):
            errors.append("JWT_SECRET_KEY must be set to a secure random value")
        if len(settings.jwt_secret_key) < 32:
            errors.append("JWT_SECRET_KEY must be at least 32 characters")
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")
        if not settings.cron_secret:
            errors.append("CRON_SECRET must be set in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
