"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Secrets (repo token, webhook secret) only ever come from the environment
- Board layout (project name, column names) is fixed for the target repository
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Board Layout
# =============================================================================

BACKLOG = "Backlog"
IN_PROGRESS = "In progress"
IN_REVIEW = "In review"
PENDING_RELEASE = "Pending release"

# Order matters: cards are collected column by column in this order.
ALL_COLUMNS: List[str] = [BACKLOG, IN_PROGRESS, IN_REVIEW, PENDING_RELEASE]


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # Secrets
    # =========================================================================
    github_token: str = Field(
        default="",
        description="Access token for the repository owning the project board"
    )

    webhook_secret: str = Field(
        default="",
        description="Webhook secret for signature verification"
    )

    # =========================================================================
    # Target Board
    # =========================================================================
    repo_owner: str = Field(
        default="iamhopaul123",
        description="Owner of the repository whose project board is managed"
    )

    repo_name: str = Field(
        default="penghaoh-flask-app",
        description="Repository whose project board is managed"
    )

    project_name: str = Field(
        default="Sprint",
        description="Name the repository's project board must have"
    )

    # =========================================================================
    # GitHub API
    # =========================================================================
    github_api_base: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL"
    )

    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for each GitHub API request"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=80,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("github_api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once,
    which is important for performance and consistency.

    Returns:
        Settings instance
    """
    return Settings()
