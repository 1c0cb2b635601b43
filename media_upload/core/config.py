"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Values that would make the upload pipeline misbehave
(e.g. a zero chunk size) are rejected at load time.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Upload settings loaded from environment and .env.

    The backend base URL and bearer token are normally provided by the
    host application; everything else has a working default.
    """

    # App
    app_name: str = "media-upload"
    app_version: str = "1.0.0"
    debug: bool = False

    # Backend
    api_base_url: str = "http://localhost:8080"
    api_token: SecretStr | None = None
    request_timeout_seconds: float = 60.0

    # Third-party CDN (unsigned uploads; cloud name and preset come from tenant settings)
    cdn_upload_base_url: str = "https://api.cloudinary.com/v1_1"
    managed_image_modules: tuple[str, ...] = ("tasset",)

    # Resumable (TUS) transfers
    resumable_chunk_size: int = 5 * 1024 * 1024  # 5MB
    resumable_retry_delays: tuple[float, ...] = (0, 3, 5, 10, 20, 60, 60)
    resume_store_backend: str = "memory"
    resume_store_ttl_seconds: int = 24 * 60 * 60
    max_video_size: int | None = None

    # None = no cap on simultaneous byte transfers
    max_concurrent_uploads: int | None = None

    # Redis (resume store and status publishing)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    status_channel_namespace: str = "default"

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_transfer_settings(self) -> "Settings":
        """Validate transfer tuning and resume store backend.

        - resumable_chunk_size must be positive.
        - resumable_retry_delays must not contain negative values.
        - max_concurrent_uploads, when set, must be at least 1.
        - resume_store_backend must be 'memory' or 'redis'.
        """
        if not self.api_base_url:
            raise ValueError(
                "API_BASE_URL is required. Set in environment or .env file."
            )
        if self.resumable_chunk_size <= 0:
            raise ValueError(
                f"resumable_chunk_size must be positive, got: {self.resumable_chunk_size}"
            )
        if any(delay < 0 for delay in self.resumable_retry_delays):
            raise ValueError("resumable_retry_delays must not contain negative values")
        if self.max_concurrent_uploads is not None and self.max_concurrent_uploads < 1:
            raise ValueError(
                "max_concurrent_uploads must be at least 1 (or unset for no cap), "
                f"got: {self.max_concurrent_uploads}"
            )
        if self.resume_store_backend not in ("memory", "redis"):
            raise ValueError(
                f"Invalid resume_store_backend '{self.resume_store_backend}'. "
                "Must be one of: 'memory', 'redis'"
            )
        return self

    @property
    def api_token_value(self) -> str | None:
        """Bearer token as plain string, or None when not configured."""
        if self.api_token is None:
            return None
        return self.api_token.get_secret_value() or None


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
