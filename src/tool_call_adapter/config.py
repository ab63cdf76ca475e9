"""Configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TARGET_BASE_URL = "http://ollama:11434/v1"


class Settings(BaseSettings):
    """Application settings.

    Built once at startup and never mutated; components receive the
    instance they need instead of reading process-wide state.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Upstream settings
    target_base_url: str = Field(
        default=DEFAULT_TARGET_BASE_URL,
        validation_alias="TARGET_BASE_URL",
        description="Upstream OpenAI-compatible API base URL",
    )
    request_timeout: float = Field(
        default=300.0,
        validation_alias="TOOL_CALL_ADAPTER_REQUEST_TIMEOUT",
        description="Upstream read/write timeout in seconds",
    )
    connect_timeout: float = Field(
        default=10.0,
        validation_alias="TOOL_CALL_ADAPTER_CONNECT_TIMEOUT",
        description="Upstream connect timeout in seconds",
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        validation_alias="TOOL_CALL_ADAPTER_HOST",
        description="Server bind host",
    )
    port: int = Field(
        default=8000,
        validation_alias="TOOL_CALL_ADAPTER_PORT",
        description="Server port",
    )
    log_level: str = Field(
        default="info",
        validation_alias="TOOL_CALL_ADAPTER_LOG_LEVEL",
        description="Logging level",
    )
    metrics_port: int | None = Field(
        default=None,
        validation_alias="TOOL_CALL_ADAPTER_METRICS_PORT",
        description="Port for the Prometheus exposition server (disabled when unset)",
    )

    # Interception settings
    grammar_file_path: str | None = Field(
        default=None,
        validation_alias="GRAMMAR_FILE_PATH",
        description="Path to the GBNF grammar file",
    )
    max_body_size: int = Field(
        default=32 * 1024 * 1024,
        ge=0,
        validation_alias="TOOL_CALL_ADAPTER_MAX_BODY_SIZE",
        description="Max buffered POST body size in bytes (0 disables the limit)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
