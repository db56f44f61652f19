"""
Configuration management for Tidewatch.
Loads environment variables and provides typed configuration.
"""
from typing import List, Optional
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

from tidewatch.data.ndbc import NDBC_REALTIME_URL, NDBC_STATIONS_URL
from tidewatch.data.usgs import DEFAULT_PERIOD, DEFAULT_SITES, USGS_IV_URL


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ========================================================================
    # Application Configuration
    # ========================================================================
    environment: str = "development"
    log_level: str = "info"

    # ========================================================================
    # Storage Configuration
    # ========================================================================
    # "sql" for the durable relational store, "kv" for the flat blob store
    # (either case)
    storage_backend: str = "sql"
    database_url: str = "sqlite:///./tidewatch.db"
    db_echo: bool = False
    kv_directory: str = "./tidewatch_data"
    kv_redis_url: Optional[str] = None
    kv_prefix: str = "tidewatch:"

    # ========================================================================
    # Feed Configuration
    # ========================================================================
    ndbc_base_url: str = NDBC_REALTIME_URL
    ndbc_stations_url: str = NDBC_STATIONS_URL
    usgs_base_url: str = USGS_IV_URL
    usgs_sites: str = ",".join(DEFAULT_SITES)
    usgs_period: str = DEFAULT_PERIOD

    request_timeout: float = 10.0
    max_attempts: int = 3
    retry_base_delay: float = 1.0

    @property
    def usgs_sites_list(self) -> List[str]:
        """Parse USGS site codes from comma-separated string."""
        return [site.strip() for site in self.usgs_sites.split(",") if site.strip()]

    # ========================================================================
    # Refresh Configuration
    # ========================================================================
    refresh_interval_hours: float = 4.0
    reachability_url: str = "https://waterservices.usgs.gov/"
    reachability_timeout: float = 5.0

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_hours * 3600

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    # ========================================================================
    # Pydantic Settings Configuration
    # ========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings
    """
    settings = Settings()
    if settings.storage_backend.lower() not in ("sql", "kv"):
        raise ValueError(
            f"STORAGE_BACKEND must be 'sql' or 'kv', got {settings.storage_backend!r}"
        )
    return settings
