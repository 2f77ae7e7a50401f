"""
FastAPI application configuration using Pydantic Settings.

Provides centralized configuration for:
- Roblox Open Cloud credentials and target universe
- Template place used to clone new places
- API settings (bind address, CORS)
- Logging and monitoring

All settings are read once at startup from environment variables (and an
optional .env file) and are immutable afterwards.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Variable names are the upper-cased field names without a prefix
    (e.g., ROBLOX_API_KEY, TEMPLATE_PLACE_ID, PORT).

    Environment variables are loaded from:
    1. System environment
    2. .env file in the current directory
    3. Default values defined below
    """

    # =========================================================================
    # API Settings
    # =========================================================================

    app_name: str = Field(
        default="Roblox Place Creator API",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="API version"
    )
    environment: str = Field(
        default="production",
        description="Environment: development|staging|production"
    )

    host: str = Field(
        default="0.0.0.0",
        description="API bind host"
    )
    port: int = Field(
        default=3000,
        description="API bind port",
        gt=0,
        lt=65536
    )

    # =========================================================================
    # Roblox Open Cloud Settings
    # =========================================================================

    roblox_api_key: str = Field(
        ...,
        description="Open Cloud API key sent in the x-api-key header",
        min_length=1
    )
    roblox_universe_id: str = Field(
        ...,
        description="Universe that new places are created in",
        min_length=1
    )
    template_place_id: int = Field(
        ...,
        description="Place that new places are cloned from"
    )

    open_cloud_base_url: str = Field(
        default="https://apis.roblox.com",
        description="Roblox Open Cloud base URL"
    )
    open_cloud_timeout: float = Field(
        default=30.0,
        description="Total timeout for one Open Cloud request (seconds)",
        gt=0
    )

    # =========================================================================
    # CORS Settings
    # =========================================================================

    cors_enabled: bool = Field(
        default=True,
        description="Enable CORS middleware"
    )
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # =========================================================================
    # Monitoring and Observability
    # =========================================================================

    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics endpoint"
    )

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level: DEBUG|INFO|WARNING|ERROR|CRITICAL"
    )
    log_format: str = Field(
        default="json",
        description="Log format: json|text"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("roblox_api_key", "roblox_universe_id", mode="before")
    @classmethod
    def strip_required_strings(cls, v):
        """Treat whitespace-only values the same as unset ones."""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("template_place_id", mode="before")
    @classmethod
    def validate_template_place_id(cls, v):
        """Reject an empty TEMPLATE_PLACE_ID instead of failing int parsing."""
        if isinstance(v, str) and not v.strip():
            raise ValueError("TEMPLATE_PLACE_ID must not be empty")
        return v

    @field_validator("open_cloud_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        v = v.rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("open_cloud_base_url must be an http(s) URL")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "text"]
        v_lower = v.lower()
        if v_lower not in valid_formats:
            raise ValueError(f"log_format must be one of {valid_formats}")
        return v_lower

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is valid."""
        valid_environments = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in valid_environments:
            raise ValueError(f"environment must be one of {valid_environments}")
        return v_lower

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def create_place_url(self) -> str:
        """Open Cloud endpoint that creates a place inside the universe."""
        return f"{self.open_cloud_base_url}/universes/v1/{self.roblox_universe_id}/places"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the lifetime of the process.

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If a required variable is missing or invalid

    Example:
        >>> settings = get_settings()
        >>> print(settings.template_place_id)
    """
    return Settings()


def clear_settings_cache():
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
