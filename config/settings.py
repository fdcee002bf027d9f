"""
Application settings loaded from environment variables.

Uses pydantic-settings for validation and type safety.
Supplier feed URLs and credentials never live in code.
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
    # SUPABASE
    # ===================
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anon/public key"
    )
    supabase_service_key: Optional[str] = Field(
        None,
        description="Supabase service role key (for admin operations)"
    )

    # ===================
    # SUPPLIER FEEDS
    # ===================
    elit_api_url: Optional[str] = Field(
        None,
        description="Elit CSV price list URL (token included)"
    )
    newbytes_api_url: Optional[str] = Field(
        None,
        description="NewBytes semicolon CSV price list URL"
    )
    invid_user: Optional[str] = Field(
        None,
        description="Invid storefront username"
    )
    invid_pass: Optional[str] = Field(
        None,
        description="Invid storefront password"
    )
    invid_login_url: str = Field(
        default="https://www.invidcomputers.com/login.php",
        description="Invid login form endpoint"
    )
    invid_export_url: str = Field(
        default="https://www.invidcomputers.com/genera_excel.php",
        description="Invid XLSX price list export"
    )
    invid_base_url: str = Field(
        default="https://www.invidcomputers.com",
        description="Invid storefront root, product pages live under it"
    )
    invid_image_batch_size: int = Field(
        default=100,
        ge=1,
        le=500,
        description="Image-less Invid products handled per backfill run"
    )
    invid_image_workers: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Concurrent Invid product page requests"
    )
    invid_image_timeout_seconds: int = Field(
        default=12,
        ge=1,
        le=120,
        description="HTTP timeout for one Invid product page"
    )
    provider_timeout_seconds: int = Field(
        default=60,
        ge=5,
        le=600,
        description="HTTP timeout for each supplier request"
    )

    # ===================
    # EXCHANGE RATE
    # ===================
    dolar_api_url: str = Field(
        default="https://dolarapi.com/v1/dolares/oficial",
        description="Official USD/ARS rate endpoint"
    )
    dolar_fallback_rate: float = Field(
        default=1400.0,
        gt=0,
        description="Rate used when the FX API is unreachable"
    )

    # ===================
    # SYNC
    # ===================
    sync_max_workers: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Concurrent supplier downloads"
    )
    merge_lock_ttl_seconds: int = Field(
        default=900,
        ge=60,
        le=7200,
        description="Seconds before an abandoned merge lease is considered stale"
    )
    markup_cache_ttl_seconds: int = Field(
        default=120,
        ge=0,
        le=3600,
        description="Freshness window of the markup settings snapshot"
    )
    cron_secret: Optional[str] = Field(
        None,
        description="Shared secret for the scheduled sync trigger"
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
    def invid_configured(self) -> bool:
        """Check if Invid credentials are present."""
        return bool(self.invid_user and self.invid_pass)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload.

    Returns:
        Settings: Application settings

    Raises:
        ValidationError: If required env vars are missing or invalid
    """
    return Settings()


# For convenient imports: from config.settings import settings
settings = get_settings()
