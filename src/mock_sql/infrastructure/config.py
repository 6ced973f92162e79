"""Configuration management for the mock SQL engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineConfig(BaseModel):
    """Engine configuration."""

    default_database: str = Field(
        default="UniversityDB", description="Database selected at startup and after reset"
    )


class ServerConfig(BaseModel):
    """REST server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"], description="Origins allowed to call the API"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    metrics_enabled: bool = Field(default=True, description="Record Prometheus metrics")
    tracing_enabled: bool = Field(default=False, description="Install an OpenTelemetry tracer provider")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="mock_sql", description="Service name for tracing")
    otel_console_export: bool = Field(default=False, description="Also print finished spans to stdout")
    max_logged_sql_length: int = Field(
        default=200, ge=16, description="SQL text longer than this is truncated in log events"
    )


class Config(BaseSettings):
    """Main configuration for the mock SQL engine."""

    model_config = SettingsConfigDict(
        env_prefix="MOCK_SQL_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    engine: EngineConfig = Field(default_factory=EngineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
