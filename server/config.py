"""
Server Configuration Module
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Configuration for the control panel core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=True, description="Emit JSON logs")

    # Backend collaborator
    backend_base_url: str = Field(
        default="http://127.0.0.1:5000", description="Backend API base URL"
    )
    backend_timeout_seconds: float = Field(
        default=30.0, description="Timeout for non-streaming backend calls"
    )

    # Streaming
    stream_event_prefix: str = Field(
        default="data: ", description="Line prefix that marks an event line"
    )

    # Tool registry
    tool_history_limit: int = Field(
        default=1000, ge=1, description="Max execution records kept in memory"
    )


@lru_cache
def get_server_config() -> ServerConfig:
    """Get cached server configuration."""
    return ServerConfig()
