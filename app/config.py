"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="Healio Scheduling API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Storage
    storage_backend: str = Field(
        default="memory",
        alias="STORAGE_BACKEND",
        description="Either 'memory' or 'sql'",
    )
    database_url: str = Field(default="sqlite:///./healio.db", alias="DATABASE_URL")
    seed_demo_clinic: bool = Field(default=True, alias="SEED_DEMO_CLINIC")

    # Idempotency ledger
    idempotency_backend: str = Field(
        default="memory",
        alias="IDEMPOTENCY_BACKEND",
        description="Either 'memory' or 'redis'",
    )
    idempotency_ttl_seconds: int = Field(default=600, ge=1, alias="IDEMPOTENCY_TTL_SECONDS")
    idempotency_key_prefix: str = Field(default="idempotency:", alias="IDEMPOTENCY_KEY_PREFIX")

    # Redis
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Attendance
    # Cancellations (or deletions) with less notice than this count as late cancels
    late_cancel_window_hours: int = Field(default=24, ge=0, alias="LATE_CANCEL_WINDOW_HOURS")

    # Default booking rules for clinics that don't configure their own
    default_lead_time_minutes: int = Field(default=60, ge=0, alias="DEFAULT_LEAD_TIME_MINUTES")
    default_max_advance_days: int = Field(default=30, ge=1, alias="DEFAULT_MAX_ADVANCE_DAYS")
    default_slot_step_minutes: int = Field(default=15, ge=1, alias="DEFAULT_SLOT_STEP_MINUTES")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def idempotency_ttl_ms(self) -> int:
        """Idempotency record lifetime in milliseconds."""
        return self.idempotency_ttl_seconds * 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
