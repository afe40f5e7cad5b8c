"""
Configuration for image-intake using pydantic-settings.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Upload validation settings."""

    model_config = SettingsConfigDict(
        env_prefix="IMAGE_INTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Validation settings
    allowed_content_types: str = Field(
        default="image/jpg,image/jpeg,image/png",
        description="Comma-separated MIME types accepted as declared type",
    )
    allowed_extensions: str = Field(
        default=".jpg,.jpeg,.png",
        description="Comma-separated filename extensions accepted",
    )
    min_upload_bytes: int = Field(
        default=512,
        ge=0,
        description="Declared length below which an upload is rejected as too small",
    )
    max_upload_bytes: int = Field(
        default=20 * 1024 * 1024,
        ge=1,
        description="Largest body the HTTP layer will read (413 above this)",
    )

    # Re-encoding settings
    output_format: str = Field(
        default="JPEG",
        description="Pillow format used when a rotated image is re-encoded",
    )
    jpeg_quality: int = Field(
        default=95,
        ge=1,
        le=100,
        description="JPEG quality for re-encoded images",
    )

    # API settings
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=9000, description="API port")

    # Authentication settings
    api_key: str | None = Field(default=None, description="Master API key")
    api_keys: str | None = Field(
        default=None, description="Comma-separated list of master API keys"
    )

    @property
    def api_keys_list(self) -> list[str]:
        """Return API keys configured in the environment."""
        keys = []
        if self.api_key:
            keys.append(self.api_key)
        if self.api_keys:
            keys.extend([k.strip() for k in self.api_keys.split(",") if k.strip()])
        return keys

    @property
    def content_types(self) -> frozenset[str]:
        return frozenset(
            t.strip().lower() for t in self.allowed_content_types.split(",") if t.strip()
        )

    @property
    def extensions(self) -> frozenset[str]:
        return frozenset(
            e.strip().lower() for e in self.allowed_extensions.split(",") if e.strip()
        )

    # Rate limiting
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable rate limiting",
    )
    rate_limit_requests: int = Field(
        default=30,
        description="Max requests per time window",
    )
    rate_limit_window: str = Field(
        default="second",
        description="Time window for rate limit (second, minute, hour)",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="JSON logs (True) or colored console logs (False)",
    )

    # Sentry / GlitchTip settings
    sentry_dsn: str | None = Field(default=None, description="Sentry/GlitchTip DSN")
    sentry_environment: str = Field(default="production", description="Environment tag")
    sentry_traces_sample_rate: float = Field(default=0.1, description="Transaction sampling rate")

    @field_validator("output_format", mode="before")
    @classmethod
    def upper_format(cls, v: str) -> str:
        """Pillow format names are upper case."""
        return str(v).strip().upper()


# Singleton for global settings
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the global settings (singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (useful for tests)."""
    global _settings
    _settings = None
