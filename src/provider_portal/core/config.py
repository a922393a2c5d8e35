"""Application Configuration Module.

Implements 12-factor app configuration using pydantic-settings.
All configuration is loaded from environment variables with sensible defaults.

Environment file loading priority:
1. If APP_ENV is set, loads .env.{APP_ENV} (e.g., .env.dev, .env.prod)
2. Falls back to .env if specific file doesn't exist
3. Environment variables always override file values
"""
import os
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_env_file() -> str | tuple[str, ...]:
    """
    Determine which .env file(s) to load based on APP_ENV.

    Priority (later files override earlier):
    1. .env (base defaults)
    2. .env.{APP_ENV} (environment-specific overrides)

    Returns:
        Tuple of env file paths to load (in order of priority)
    """
    app_env = os.getenv("APP_ENV", "").lower()

    env_to_file = {
        "dev": "dev",
        "development": "dev",
        "prod": "prod",
        "production": "prod",
        "staging": "staging",
        "test": "test",
    }

    file_suffix = env_to_file.get(app_env, app_env)

    env_files: list[str] = []

    if Path(".env").exists():
        env_files.append(".env")

    if file_suffix:
        env_specific = f".env.{file_suffix}"
        if Path(env_specific).exists():
            env_files.append(env_specific)

    if env_files:
        return tuple(env_files)
    return ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Covers both halves of the portal: the FastAPI backend that signs uploads,
    stores provider records, imports reviews and sends notifications, and the
    client workflow that drives the profile-content step against it.
    """

    model_config = SettingsConfigDict(
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Application Settings
    # ========================================
    APP_NAME: str = Field(
        default="provider-portal-service",
        description="Application name used in logging and metrics"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Semantic version of the application"
    )
    APP_ENV: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment"
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (never enable in production)"
    )

    # ========================================
    # Server Configuration
    # ========================================
    HOST: str = Field(default="0.0.0.0", description="Server host")
    PORT: int = Field(default=8000, ge=1, le=65535, description="Server port")
    PUBLIC_BASE_URL: str = Field(
        default="http://localhost:8000",
        description="Externally reachable origin of this service, used in signed upload URLs"
    )
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level"
    )

    # ========================================
    # Database Configuration (PostgreSQL)
    # ========================================
    DATABASE_URL: str = Field(
        default="",
        description="PostgreSQL database connection URL (SQLAlchemy asyncpg format). Required in production."
    )
    DATABASE_POOL_SIZE: int = Field(default=5, ge=1, le=100, description="Database connection pool size")
    DATABASE_MAX_OVERFLOW: int = Field(default=10, ge=0, description="Max overflow connections beyond pool size")
    DATABASE_POOL_TIMEOUT: int = Field(default=30, ge=1, description="Timeout for getting connection from pool (seconds)")
    DATABASE_ECHO: bool = Field(default=False, description="Echo SQL statements to logs")

    # ========================================
    # Security Configuration
    # ========================================
    SECRET_KEY: str = Field(
        default="change-me-in-production-use-strong-random-key",
        min_length=32,
        description="Secret key for signing local upload URLs"
    )

    # ========================================
    # CORS Configuration
    # ========================================
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow credentials in CORS requests. Must be False when CORS_ORIGINS='*'."
    )
    CORS_ALLOW_METHODS: str = Field(
        default="GET,POST,PUT,DELETE,OPTIONS,PATCH",
        description="Comma-separated list of allowed HTTP methods"
    )

    # ========================================
    # Upload Settings
    # ========================================
    MAX_FILE_SIZE_MB: int = Field(default=10, ge=1, le=100, description="Maximum upload file size in MB")
    ALLOWED_IMAGE_TYPES: str = Field(
        default="image/jpeg,image/png,image/jpg",
        description="Comma-separated content types accepted for headshot and gallery images"
    )
    ALLOWED_SPREADSHEET_TYPES: str = Field(
        default=(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,"
            "application/vnd.ms-excel"
        ),
        description="Comma-separated content types accepted for the client reviews file"
    )
    UPLOAD_URL_EXPIRY_SECONDS: int = Field(
        default=300,
        ge=30,
        le=604800,
        description="Lifetime of a presigned upload URL (seconds)"
    )
    REVIEWS_MAX_ROWS: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of review rows accepted in one spreadsheet"
    )

    # ========================================
    # Blob Storage Configuration
    # ========================================
    STORAGE_BACKEND: Literal["local", "s3"] = Field(
        default="local",
        description="Storage backend to use: 'local' for filesystem, 's3' for AWS S3"
    )
    BLOB_STORAGE_PATH: str = Field(default="./blob_storage", description="Local filesystem path for blob storage")
    BLOB_BASE_URL: str = Field(default="/api/v1/blobs", description="Base URL for serving blobs (local storage)")
    AWS_ACCESS_KEY_ID: str = Field(default="", description="AWS access key ID for S3")
    AWS_SECRET_ACCESS_KEY: str = Field(default="", description="AWS secret access key for S3")
    AWS_REGION: str = Field(default="us-east-1", description="AWS region for S3 bucket")
    AWS_S3_BUCKET: str = Field(default="", description="S3 bucket name for blob storage")
    AWS_S3_PREFIX: str = Field(
        default="providers",
        description="Prefix for object keys (e.g., 'providers' -> providers/<uuid>.jpg)"
    )

    # ========================================
    # Email / SMTP Configuration
    # ========================================
    EMAIL_ENABLED: bool = Field(default=False, description="Enable outbound email sending")
    SMTP_HOST: str = Field(default="", description="SMTP server hostname")
    SMTP_PORT: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    SMTP_USERNAME: str = Field(default="", description="SMTP authentication username")
    SMTP_PASSWORD: str = Field(default="", description="SMTP authentication password / API key")
    SMTP_USE_TLS: bool = Field(default=True, description="Use STARTTLS upgrade on the SMTP connection (port 587)")
    SMTP_USE_SSL: bool = Field(default=False, description="Use implicit SSL from connection open (port 465)")
    EMAIL_FROM_ADDRESS: str = Field(default="", description="From address for all outbound emails")
    EMAIL_FROM_NAME: str = Field(default="Provider Portal", description="Display name in the From header")
    EMAIL_TEMPLATES_PATH: str = Field(
        default="config/email_templates.yaml",
        description="Path to the YAML file containing email subject/body templates",
    )
    EMAIL_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=60, description="SMTP timeout (seconds)")
    NOTIFICATION_FALLBACK_RECIPIENTS: str = Field(
        default="",
        description="Comma-separated addresses that always receive provider signup notifications"
    )

    # ========================================
    # Portal Client Configuration
    # ========================================
    PORTAL_API_BASE_URL: str = Field(
        default="http://localhost:8000/api/v1",
        description="Base URL the client workflow uses to reach the portal API"
    )
    PORTAL_API_TIMEOUT: float = Field(default=30.0, gt=0, description="Client request timeout (seconds)")
    PORTAL_ENTRY_PATH: str = Field(default="/provider-portal", description="First step of the onboarding flow")
    PORTAL_COMPLETION_PATH: str = Field(default="/completion", description="Step shown after a committed onboarding")
    SESSION_STORE: Literal["memory", "redis"] = Field(
        default="memory",
        description="Backing store for the client-side provider session marker"
    )
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (format: redis://[:password@]host:port/db)"
    )
    SESSION_KEY_PREFIX: str = Field(default="portal:", description="Key prefix for session markers in Redis")

    # ========================================
    # Computed Properties
    # ========================================
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def cors_methods_list(self) -> list[str]:
        """Parse CORS methods from comma-separated string."""
        return [method.strip() for method in self.CORS_ALLOW_METHODS.split(",")]

    @property
    def allowed_image_types_list(self) -> list[str]:
        return [t.strip().lower() for t in self.ALLOWED_IMAGE_TYPES.split(",") if t.strip()]

    @property
    def allowed_spreadsheet_types_list(self) -> list[str]:
        return [t.strip().lower() for t in self.ALLOWED_SPREADSHEET_TYPES.split(",") if t.strip()]

    @property
    def notification_fallback_recipients_list(self) -> list[str]:
        return [
            addr.strip()
            for addr in self.NOTIFICATION_FALLBACK_RECIPIENTS.split(",")
            if addr.strip()
        ]

    @property
    def max_file_size_bytes(self) -> int:
        """Convert MB to bytes."""
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    # ========================================
    # Validators
    # ========================================
    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Require DATABASE_URL; warn (not silently substitute) when absent in dev."""
        if not v:
            warnings.warn(
                "DATABASE_URL is not set. The application will fail on first DB access.",
                UserWarning,
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.CORS_ORIGINS.strip() == "*" and self.CORS_ALLOW_CREDENTIALS:
            raise ValueError(
                "CORS_ALLOW_CREDENTIALS cannot be True when CORS_ORIGINS is '*'. "
                "Set CORS_ORIGINS to an explicit comma-separated list of origins."
            )

        if self.is_production:
            if self.DEBUG:
                raise ValueError("DEBUG must be False in production")
            if "change-me" in self.SECRET_KEY.lower():
                raise ValueError("SECRET_KEY must be changed in production")
            if not self.DATABASE_URL:
                raise ValueError("DATABASE_URL must be set in production")
            if self.STORAGE_BACKEND == "local":
                raise ValueError("STORAGE_BACKEND=local is not supported in production")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings instance.

    Prefer ``get_settings()`` over the module-level ``settings`` alias so
    that the construction is deferred until the first call (and can be
    overridden in tests via ``get_settings.cache_clear()``).
    """
    return Settings()


settings = get_settings()
