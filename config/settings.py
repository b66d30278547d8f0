"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """
    Application settings.

    All values loaded from .env file or environment variables.
    Validation happens automatically on startup.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),  # Check current dir, then parent
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"  # Ignore extra env vars
    )

    # ===================
    # REMOTE PLATFORM
    # ===================
    platform_api_url: str = Field(
        default="https://openapi.planday.com",
        description="Base URL of the workforce platform API"
    )
    platform_auth_url: str = Field(
        default="https://id.planday.com/connect/token",
        description="OAuth token endpoint used for refresh-token grants"
    )
    platform_client_id: Optional[str] = Field(
        None,
        description="Application (client) ID registered with the platform"
    )
    platform_request_timeout: int = Field(
        default=30,
        ge=1,
        le=300,
        description="Seconds before an HTTP call to the platform is abandoned"
    )
    token_refresh_buffer_minutes: int = Field(
        default=5,
        ge=0,
        le=30,
        description="Refresh the access token this many minutes before expiry"
    )

    # ===================
    # UPLOAD PACING
    # ===================
    upload_batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Employees submitted per batch"
    )
    delay_between_batches_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Pause between creation batches"
    )
    payrate_delay_ms: int = Field(
        default=1000,
        ge=0,
        le=60000,
        description="Pause between pay-rate calls"
    )
    existing_employee_page_size: int = Field(
        default=50,
        ge=1,
        le=50,
        description="Page size when scanning existing employees (platform max is 50)"
    )

    # ===================
    # NAME RESOLUTION
    # ===================
    suggestion_confidence: float = Field(
        default=0.7,
        gt=0,
        lt=1,
        description="Above this, a single 'did you mean' candidate is named"
    )
    possible_match_confidence: float = Field(
        default=0.4,
        gt=0,
        lt=1,
        description="Above this, the top candidates are listed"
    )
    top_match_floor: float = Field(
        default=0.3,
        ge=0,
        lt=1,
        description="Candidates below this never appear in a possible-match list"
    )
    max_possible_matches: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Length of the possible-match list"
    )

    # ===================
    # APP SETTINGS
    # ===================
    environment: str = Field(
        default="development",
        pattern="^(development|staging|production)$",
        description="Application environment"
    )
    debug: bool = Field(
        default=True,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Logging level"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API host"
    )
    api_port: int = Field(
        default=8000,
        ge=1000,
        le=65535,
        description="API port"
    )

    # ===================
    # COMPUTED PROPERTIES
    # ===================
    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def platform_configured(self) -> bool:
        """Check if a client ID is available for token refresh."""
        return bool(self.platform_client_id)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
