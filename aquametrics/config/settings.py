"""
Aquaculture Production Metrics Engine
Centralized Configuration Management

This module provides configuration management using Pydantic settings with
environment variable support, validation, and type safety.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="aquafarm", alias="POSTGRES_DB", description="Database name")
    user: str = Field(default="aquafarm", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")
    url: Optional[str] = Field(default=None, description="Full async URL (overrides host/port)")

    @property
    def async_url(self) -> str:
        """Async database URL for asyncpg"""
        if self.url:
            return self.url
        return f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class RowSourceSettings(BaseSettings):
    """Row source (persistence boundary) configuration"""

    model_config = SettingsConfigDict(env_prefix="ROW_SOURCE_")

    backend: str = Field(default="sql", description="Row source backend: sql or rest")
    rest_url: Optional[str] = Field(default=None, alias="SUPABASE_URL", description="REST endpoint root")
    rest_api_key: Optional[SecretStr] = Field(default=None, alias="SUPABASE_ANON_KEY", description="REST API key")
    timeout_seconds: float = Field(default=30.0, description="HTTP request timeout")

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate backend value"""
        allowed = ["sql", "rest"]
        if v.lower() not in allowed:
            raise ValueError(f"Row source backend must be one of: {allowed}")
        return v.lower()


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="json", alias="LOG_FORMAT", description="Log format: json or text")


class MetricsSettings(BaseSettings):
    """Aggregation defaults"""

    model_config = SettingsConfigDict(env_prefix="METRICS_")

    default_time_period: str = Field(default="week", description="Time period used when none is given")
    consolidated_scope: str = Field(default="all", description="growth_stage_scope for farm-wide snapshots")

    # Page sizes
    summary_page_size: int = Field(default=50, description="production_summary rows per query")
    trend_page_size: int = Field(default=500, description="production_summary rows fetched for trends")
    rating_page_size: int = Field(default=30, description="daily_water_quality_rating rows per query")
    measurement_page_size: int = Field(default=100, description="water_quality_measurement rows per query")
    event_page_size: int = Field(default=100, description="Raw event rows per query")
    recent_entries_limit: int = Field(default=5, description="Rows per recent-entries list")


class Settings(BaseSettings):
    """
    Main Application Settings

    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="aquametrics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    debug: bool = Field(default=False, alias="DEBUG", description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", alias="API_HOST", description="API host")
    api_port: int = Field(default=8000, alias="API_PORT", description="API port")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    row_source: RowSourceSettings = Field(default_factory=RowSourceSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    metrics: MetricsSettings = Field(default_factory=MetricsSettings)

    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
