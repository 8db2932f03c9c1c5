"""
Configuration management using Pydantic Settings.

All configuration values are loaded from environment variables
with sensible defaults where appropriate.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Project root is where the .env file is located
ROOT_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = ROOT_DIR / ".env"

# Load .env into environment for nested settings models
load_dotenv(ENV_FILE)


class AppSettings(BaseSettings):
    """Application-level configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_name: str = "es-monitor-gateway"
    app_version: str = "1.0.0"
    app_debug: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    # Call statistics live in each worker process; /api/monitor/stats only
    # reports the worker that served the request
    api_workers: int = Field(default=1, ge=1)

    # CORS
    cors_origins: str = "http://localhost:3000,http://localhost:5173"
    cors_credentials: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


class KibanaSettings(BaseSettings):
    """Kibana Monitoring API connection configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="KIBANA_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    base_url: str = "http://localhost:5601"
    cluster_id: str = ""
    username: str = "elastic"
    password: str = ""
    version: str = "8.11.0"
    build_number: str = "68312"

    # Timeouts per phase, in seconds
    connect_timeout: float = 10.0
    write_timeout: float = 10.0
    read_timeout: float = 30.0  # monitoring queries can be slow aggregations
    pool_timeout: float = 10.0

    # Connection pool
    max_keepalive_connections: int = Field(default=10, ge=1)
    max_connections: int = Field(default=20, ge=1)
    keepalive_expiry: float = 300.0  # 5 minutes

    slow_call_threshold_ms: int = 2000

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class MonitorSettings(BaseSettings):
    """Aggregation service configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="MONITOR_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_window_minutes: int = Field(default=60, ge=1)
    cluster_display_name: str = "elasticsearch"  # Kibana does not return the cluster name

    # Heuristics, not measurements. The upstream does not expose these values
    # in the calls we make, so they are estimated.
    primaries_divisor: int = Field(default=2, ge=1)  # primaries ~= total shards / 2
    fs_free_ratio: float = Field(default=0.4, gt=0, le=1)  # total ~= free / 0.4 (~60% used)


class LogSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_prefix="LOG_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    level: str = "INFO"
    format: Literal["json", "text"] = "json"
    requests: bool = True


class Settings(BaseSettings):
    """Main settings class that aggregates all configuration sections."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=AppSettings)
    kibana: KibanaSettings = Field(default_factory=KibanaSettings)
    monitor: MonitorSettings = Field(default_factory=MonitorSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    # DOCS
    docs_enabled: bool = True
    dev_auto_reload: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
