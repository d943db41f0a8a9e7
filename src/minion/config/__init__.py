"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="minion", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=9001, description="Server port", ge=1, le=65535)

    # ========== Jira (ticket lookup and product catalog) ==========
    jira_url: str = Field(
        default="https://jira.sonarsource.com",
        description="Base URL of the Jira instance holding known issues"
    )
    jira_browse_url: str = Field(
        default="https://jira.sonarsource.com/browse",
        description="Prefix used to render ticket links"
    )
    jira_username: Optional[str] = Field(default=None, description="Jira basic auth user")
    jira_token: Optional[str] = Field(default=None, description="Jira basic auth token")
    jira_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for Jira API calls",
        ge=0.1,
        le=120
    )
    jira_max_results: int = Field(
        default=50,
        description="Page size for Jira issue searches",
        ge=1,
        le=1000
    )

    # ========== Product Catalog ==========
    catalog_source: Literal["jira", "file"] = Field(
        default="jira",
        description="Where known products and versions come from"
    )
    catalog_path: Path = Field(
        default=Path("catalog.yaml"),
        description="YAML catalog used when catalog_source is 'file'"
    )
    catalog_refresh_interval: int = Field(
        default=3600,
        description="Seconds between refreshes of the cached Jira catalog (0 disables)",
        ge=0
    )

    # ========== Community forum (Discourse) ==========
    community_url: str = Field(
        default="https://community.sonarsource.org",
        description="Discourse instance answered by /process_message"
    )
    community_api_key: Optional[str] = Field(default=None, description="Discourse API key")
    community_api_username: str = Field(default="system", description="Discourse API user")
    community_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Discourse API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("jira_url", "jira_browse_url", "community_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
