"""Pydantic models for configuration schema."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.security import HTTP_SCHEMES, PUSH_SCHEMES, validate_service_url


class ServerConfig(BaseModel):
    """Remote chat service endpoints."""

    api_url: str = "https://monkemessenger.lapis.codes"
    push_url: str = "ws://monkemessenger.lapis.codes"
    request_timeout: float = Field(15.0, gt=0, le=300)

    @field_validator("api_url")
    @classmethod
    def validate_api_url(cls, v: str) -> str:
        """Validate the request/response API base URL."""
        if not validate_service_url(v, HTTP_SCHEMES):
            raise ValueError(f"Invalid API URL: {v}. Expected http:// or https://")
        return v.rstrip("/")

    @field_validator("push_url")
    @classmethod
    def validate_push_url(cls, v: str) -> str:
        """Validate the push socket URL."""
        if not validate_service_url(v, PUSH_SCHEMES):
            raise ValueError(f"Invalid push URL: {v}. Expected ws:// or wss://")
        return v


class ReconnectConfig(BaseModel):
    """Backoff schedule for the push connection.

    The delay before retry attempt ``n`` doubles from ``base_delay`` for the
    first ``growth_attempts`` attempts and is ``steady_delay`` afterwards.
    """

    base_delay: float = Field(1.0, gt=0, le=60.0)
    growth_attempts: int = Field(6, ge=1, le=16)
    steady_delay: float = Field(30.0, gt=0, le=600.0)
    open_timeout: float = Field(10.0, gt=0, le=120.0)


class RetryConfig(BaseModel):
    """Retry configuration for idempotent API reads."""

    max_attempts: int = Field(3, ge=1, le=10)
    initial_delay: float = Field(1.0, ge=0.1, le=10.0)
    max_delay: float = Field(30.0, ge=1.0, le=300.0)


class CredentialsConfig(BaseModel):
    """Credentials used for automatic login on startup."""

    username: str | None = None
    password: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.username) and bool(self.password)


class ClientConfig(BaseModel):
    """Client identity and host loop settings."""

    version: str = "1.0.0"
    required_version: str | None = None
    tick_interval: float = Field(0.2, gt=0, le=10.0)


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("messenger-sync.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "console"
    file: FileLoggingConfig = FileLoggingConfig()


class MessengerConfig(BaseSettings):
    """Root configuration for messenger-sync."""

    server: ServerConfig = ServerConfig()
    reconnect: ReconnectConfig = ReconnectConfig()
    retry: RetryConfig = RetryConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    client: ClientConfig = ClientConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="MESSENGER_",
        env_file=".env",
        env_nested_delimiter="__",
    )
