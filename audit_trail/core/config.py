"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "Audit Trail API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    log_level: str = getenv("LOG_LEVEL", "INFO")
    database_url: str = getenv("DATABASE_URL", "sqlite:///./audit_trail.db")
    db_timeout_seconds: float = float(getenv("DB_TIMEOUT_SECONDS", "10"))
    jwt_secret_key: str = getenv("JWT_SECRET_KEY", "dev-only-change-me-to-a-long-random-secret")
    jwt_algorithm: str = getenv("JWT_ALGORITHM", "HS256")
    jwt_expire_minutes: int = int(getenv("JWT_EXPIRE_MINUTES", "60"))
    version_conflict_retries: int = max(2, int(getenv("VERSION_CONFLICT_RETRIES", "5")))
    action_type_cache_ttl_seconds: int = int(getenv("ACTION_TYPE_CACHE_TTL_SECONDS", "300"))
    dedup_retention_days: int = int(getenv("DEDUP_RETENTION_DAYS", "7"))
    tombstone_on_delete: bool = getenv("TOMBSTONE_ON_DELETE", "1") == "1"
    export_max_rows: int = int(getenv("EXPORT_MAX_ROWS", "10000"))
    max_aggregation_days: int = int(getenv("MAX_AGGREGATION_DAYS", "366"))


settings: Settings = Settings()
