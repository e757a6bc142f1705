"""Centralized configuration management using Pydantic Settings.

This module provides type-safe configuration with environment variable support,
validation, and clear defaults for the MongoDB MCP server. It serves as the single
source of truth for connection, pooling and logging settings.

Configuration can be overridden via environment variables (e.g., MONGO_URL)
or a local .env file. The connection target may also be given on the command
line, which takes precedence over the environment.

Example:
    Resolving the connection target:
    >>> from mongo_mcp.config.settings import settings
    >>> settings.resolve_connection_target("mongodb://localhost:27017")
    'mongodb://localhost:27017'
"""

import logging
import re
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mongo_mcp.mcp_server.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_CREDENTIALS_PATTERN = re.compile(r"(mongodb(?:\+srv)?://[^:/@]+:)[^@]+(@)")


def redact_connection_string(connection_string: str | None) -> str:
    """Mask the password portion of a MongoDB URI for safe logging.

    Example:
        >>> redact_connection_string("mongodb://admin:secret@db:27017/app")
        'mongodb://admin:****@db:27017/app'
    """
    if not connection_string:
        return "<not set>"
    return _CREDENTIALS_PATTERN.sub(r"\1****\2", connection_string)


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation.

    Settings are loaded from:
    1. Environment variables (highest priority)
    2. .env file (if present)
    3. Class defaults (lowest priority)

    All settings can be overridden via environment variables using uppercase names
    (e.g., MONGO_URL=mongodb://custom:27017).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # MongoDB Configuration
    # ========================================================================

    mongo_url: str | None = Field(
        default=None,
        description=(
            "MongoDB connection string used when none is given on the command line. "
            "Format: mongodb://[username:password@]host[:port][/database][?options]"
        ),
    )

    mongodb_default_database: str = Field(
        default="test",
        description="Database used when a tool omits the name and the URI names none",
        min_length=1,
    )

    mongodb_timeout: int = Field(
        default=30,
        description="Server selection and connect timeout in seconds",
        ge=1,
        le=300,
    )

    mongodb_min_pool_size: int = Field(
        default=0,
        description="Minimum number of connections to maintain in the connection pool",
        ge=0,
    )

    mongodb_max_pool_size: int = Field(
        default=100,
        description="Maximum number of connections allowed in the connection pool",
        ge=1,
    )

    # ========================================================================
    # MCP Server Configuration
    # ========================================================================

    server_name: str = Field(
        default="mongo-mcp",
        description="Name advertised to MCP clients",
    )

    server_version: str = Field(
        default="1.0.0",
        description="Server version reported in startup diagnostics",
    )

    # ========================================================================
    # Logging Configuration
    # ========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for diagnostic output on stderr",
    )

    log_pool_events: bool = Field(
        default=False,
        description="Log every connection pool event emitted by the driver (DEBUG level)",
    )

    # ========================================================================
    # Field Validators
    # ========================================================================

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        """Accept log levels in any case."""
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("mongodb_max_pool_size")
    @classmethod
    def validate_pool_sizes(cls, max_size: int, info) -> int:
        """Validate that max pool size is not below the min pool size.

        Raises:
            ValueError: If mongodb_min_pool_size > mongodb_max_pool_size
        """
        if "mongodb_min_pool_size" in info.data:
            min_size = info.data["mongodb_min_pool_size"]
            if min_size > max_size:
                raise ValueError(
                    f"mongodb_min_pool_size ({min_size}) cannot exceed "
                    f"mongodb_max_pool_size ({max_size})"
                )
        return max_size

    # ========================================================================
    # Helpers
    # ========================================================================

    def resolve_connection_target(self, cli_value: str | None = None) -> str:
        """Pick the connection string: command line first, then MONGO_URL.

        Args:
            cli_value: Connection string passed as a command-line argument

        Returns:
            The non-empty connection string to use

        Raises:
            ConfigurationError: If neither source supplies a connection string
        """
        for candidate in (cli_value, self.mongo_url):
            if candidate and candidate.strip():
                return candidate.strip()

        raise ConfigurationError(
            message=(
                "MongoDB URL is required. Provide it as a command-line argument "
                "or set the MONGO_URL environment variable."
            ),
            details={"env_var": "MONGO_URL"},
        )


settings = Settings()
