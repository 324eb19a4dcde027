"""
Shared configuration management for the CSRF service.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ACCESS_",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Metrics
    metrics_enabled: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


class CSRFConfig(ServiceConfig):
    """Token lifetime and extraction settings."""

    csrf_token_ttl_seconds: float = Field(default=3600.0, gt=0)
    csrf_reclaim_interval_seconds: float = Field(default=60.0, gt=0)
    csrf_header_name: str = Field(default="X-CSRF-Token")
    csrf_form_field: str = Field(default="csrf_token")


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port)


def get_csrf_config(service_name: str = "csrf", port: int = 8020, **overrides) -> CSRFConfig:
    """Get configuration for the CSRF service, applying explicit overrides."""
    return CSRFConfig(service_name=service_name, port=port, **overrides)
