"""
thelook Metrics
Centralized Configuration Management

Configuration is loaded with Pydantic settings from environment variables
and an optional .env file. Metric code never reads these settings directly:
the CLI resolves them and passes explicit parameters down.
"""

from datetime import date
from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL Database Configuration"""

    model_config = SettingsConfigDict(env_prefix="POSTGRES_")

    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, description="Database port")
    db: str = Field(default="thelook_ecommerce", alias="database", description="Database name")
    user: str = Field(default="analytics", description="Database user")
    password: SecretStr = Field(default="secure_password", description="Database password")
    echo: bool = Field(default=False, description="Echo SQL queries")

    @property
    def sync_url(self) -> str:
        """Sync database URL for psycopg2"""
        return f"postgresql+psycopg2://{self.user}:{self.password.get_secret_value()}@{self.host}:{self.port}/{self.db}"


class SourceSettings(BaseSettings):
    """Order Item Source Configuration"""

    model_config = SettingsConfigDict(env_prefix="SOURCE_")

    kind: str = Field(default="file", description="Source kind: file or database")
    path: str = Field(default="./data/order_items.parquet", description="CSV or Parquet file with order items")
    url: Optional[str] = Field(default=None, description="SQLAlchemy URL (overrides POSTGRES_* settings)")
    table_name: str = Field(default="order_items", description="Order items table name")

    @field_validator("kind")
    @classmethod
    def validate_kind(cls, v: str) -> str:
        """Validate source kind"""
        allowed = ["file", "database"]
        if v.lower() not in allowed:
            raise ValueError(f"Source kind must be one of: {allowed}")
        return v.lower()


class ReportSettings(BaseSettings):
    """Default reporting parameters for the CLI"""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    start_date: date = Field(default=date(2019, 1, 1), description="First reported day")
    end_date: date = Field(default=date(2022, 12, 31), description="Last reported day")
    churn_window_days: int = Field(default=90, description="Churn lookahead window in days")

    # Product change impact
    pre_start: date = Field(default=date(2021, 10, 15), description="Start of the pre-launch period")
    post_end: date = Field(default=date(2022, 4, 15), description="End of the post-launch period")
    launch_date: date = Field(default=date(2022, 1, 15), description="Launch day of the change")
    high_value_threshold: float = Field(default=100.0, description="Minimum value of a high-value order")


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""

    model_config = SettingsConfigDict(env_prefix="")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="text", alias="LOG_FORMAT", description="Log format: json or text")


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
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="thelook-metrics", alias="APP_NAME", description="Application name")
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")

    # Version
    version: str = Field(default="1.0.0", description="Application version")

    # Subsystem configurations
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    source: SourceSettings = Field(default_factory=SourceSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

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
    def source_url(self) -> str:
        """SQLAlchemy URL of the order items database"""
        return self.source.url or self.database.sync_url


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses LRU cache to ensure settings are only loaded once.

    Returns:
        Settings: Application settings instance
    """
    return Settings()
