"""
Runtime configuration for the associate graph memory service.

Settings are grouped per concern and loaded from ``ASSOCIATE_*`` environment
variables (or a ``.env`` file) via pydantic-settings.
"""

from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    """Backing graph store connection."""

    model_config = SettingsConfigDict(env_prefix="ASSOCIATE_STORE_", env_file=".env", extra="ignore")

    backend: Literal["falkordb", "sqlite"] = "falkordb"
    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    password: SecretStr | None = None
    graph_name: str = "associate"
    max_connections: int = Field(default=16, ge=1)
    # Only used by the sqlite backend; ":memory:" keeps the graph in-process
    sqlite_path: str = "associate.db"


class RetrySettings(BaseSettings):
    """Initial-connect retry policy."""

    model_config = SettingsConfigDict(env_prefix="ASSOCIATE_RETRY_", env_file=".env", extra="ignore")

    max_attempts: int = Field(default=30, ge=1)
    initial_delay: float = Field(default=1.0, gt=0.0)
    max_delay: float = Field(default=10.0, gt=0.0)


class ServerSettings(BaseSettings):
    """Tool server and HTTP surface."""

    model_config = SettingsConfigDict(env_prefix="ASSOCIATE_SERVER_", env_file=".env", extra="ignore")

    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    web_port: int = Field(default=8001, ge=1, le=65535)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    default_zone_name: str = Field(default="Default", min_length=1)


class Settings(BaseSettings):
    """Top-level settings container."""

    model_config = SettingsConfigDict(extra="ignore")

    store: StoreSettings = Field(default_factory=StoreSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    server: ServerSettings = Field(default_factory=ServerSettings)


settings = Settings()
