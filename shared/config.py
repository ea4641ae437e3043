"""
Shared configuration management for the OTA Access Layer.
"""

from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="OTA_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Data store. The anon key is the least-privilege credential used with a
    # caller's own token; the service role key is reserved for trusted
    # server-side operations.
    store_url: str = Field(default="http://localhost:54321")
    store_anon_key: SecretStr = Field(default=SecretStr(""))
    store_service_role_key: SecretStr = Field(default=SecretStr(""))
    store_timeout_seconds: float = Field(default=5.0, gt=0)

    # Usage writes. A heartbeat upsert is retried at most usage_write_attempts
    # times and gives up once usage_write_deadline_seconds have passed.
    usage_write_attempts: int = Field(default=2, ge=1)
    usage_write_deadline_seconds: float = Field(default=3.0, gt=0)

    # Internal services
    entitlements_service_url: str = Field(default="http://localhost:8011")
    entitlements_timeout_seconds: float = Field(default=5.0, gt=0)

    # Bundle URL signer
    url_signer_url: str = Field(default="http://localhost:8090")
    url_signer_timeout_seconds: float = Field(default=5.0, gt=0)
    download_url_ttl_seconds: int = Field(default=3600, gt=0)

    # Marketing segment sync
    segment_sync_url: str = Field(default="https://api.useplunk.com")
    segment_sync_api_key: SecretStr = Field(default=SecretStr(""))
    segment_sync_timeout_seconds: float = Field(default=10.0, gt=0)
    segment_base_tag: str = Field(default="ota")

    # Billing
    default_plan_name: str = Field(default="Solo")

    # Observability
    enable_tracing: bool = Field(default=False)
    otel_exporter: Optional[str] = Field(default=None)
    enable_console_tracing: bool = Field(default=False)

    @model_validator(mode="after")
    def _check_credentials_distinct(self) -> "BaseConfig":
        anon = self.store_anon_key.get_secret_value()
        if anon and anon == self.store_service_role_key.get_secret_value():
            raise ValueError("store_anon_key and store_service_role_key must differ")
        return self


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
