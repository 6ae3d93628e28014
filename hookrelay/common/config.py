from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_APP_NAME = "hookrelay"


class ServiceSettings(BaseSettings):
    """Settings for the webhook relay service."""

    app_name: str = Field(default=DEFAULT_APP_NAME)
    environment: Literal["local", "dev", "staging", "prod"] = Field(default="local")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    service_host: str = Field(default="0.0.0.0")
    service_port: int = Field(default=8000)
    enable_metrics: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)
    tracing_endpoint: str | None = Field(default=None)
    tracing_protocol: Literal["http/protobuf", "grpc"] = Field(default="http/protobuf")
    tracing_insecure: bool = Field(default=True)
    tracing_sample_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    webhook_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("webhook_url", "SERVICE_WEBHOOK_URL", "DISCORD_WEBHOOK_URL"),
    )
    webhook_timeout_seconds: float = Field(default=10.0, gt=0.0)
    webhook_default_retry_after_seconds: float = Field(default=1.0, gt=0.0)
    webhook_shutdown_grace_seconds: float = Field(default=5.0, ge=0.0)

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_prefix="SERVICE_",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache
def get_settings() -> ServiceSettings:
    """Return cached service settings."""

    return ServiceSettings()
