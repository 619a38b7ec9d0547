"""Configuration management with pydantic-settings for the exporter.

Loads from (in order of precedence):
1. Environment variables (highest priority)
2. .env file in the working directory
3. Default values (lowest priority)

The token is held as a SecretStr so it never shows up in reprs or logs.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from urllib.parse import urlsplit

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("ghexport.config")

__all__ = [
    "DEFAULT_API_ROOT",
    "DEFAULT_CACHE_TTL_MS",
    "DEFAULT_CONCURRENCY",
    "ExportConfig",
    "get_config",
    "reset_config",
]

DEFAULT_API_ROOT = "https://api.github.com"
DEFAULT_CONCURRENCY = 4
DEFAULT_CACHE_TTL_MS = 30_000


class ExportConfig(BaseSettings):
    """Configuration for the GitHub Markdown exporter.

    Attributes:
        github_token: Optional personal access token (empty = anonymous)
        github_api_root: REST/GraphQL API root, overridable for GHES
        export_concurrency: Max in-flight per-item fetches (commit details, job logs)
        export_cache_ttl_ms: TTL for the per-run read-through cache
        http_timeout_seconds: Read timeout for GitHub requests
        state_dir: Directory holding settings, token and last-profile JSON files
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log format (json for production, text for development)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    github_token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token (fine-grained, read-only: contents, issues, pull_requests, actions)",
    )

    github_api_root: str = Field(
        default=DEFAULT_API_ROOT,
        description="GitHub API root. Pagination links are only followed within this origin.",
    )

    export_concurrency: int = Field(
        default=DEFAULT_CONCURRENCY,
        ge=1,
        le=32,
        description="Maximum concurrent per-item fetches during one export",
    )

    export_cache_ttl_ms: int = Field(
        default=DEFAULT_CACHE_TTL_MS,
        ge=0,
        description="TTL in milliseconds for cached commit details and job logs",
    )

    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Read timeout for GitHub API requests (seconds)",
    )

    state_dir: Path = Field(
        default_factory=lambda: Path.home() / ".ghexport",
        description="Directory for settings.json, auth.json and last_profile.json",
    )

    log_level: str = Field(
        default="WARNING",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL",
    )

    log_format: str = Field(
        default="json",
        pattern="^(json|text)$",
        description="Log format: json (production), text (development)",
    )

    @field_validator("github_api_root")
    @classmethod
    def validate_api_root(cls, v: str) -> str:
        """Require an absolute http(s) URL and strip the trailing slash."""
        parts = urlsplit(v.strip())
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError("GITHUB_API_ROOT must be an absolute http(s) URL")
        return v.strip().rstrip("/")

    @field_validator("state_dir", mode="before")
    @classmethod
    def expand_user_paths(cls, v):
        """Expand ~ and environment variables in paths."""
        if isinstance(v, str):
            return Path(os.path.expanduser(os.path.expandvars(v)))
        return v

    @property
    def auth_scope_key(self) -> str:
        """Cache scope: entries fetched with a token never serve anonymous runs."""
        return "token" if self.github_token.get_secret_value() else "anon"


@lru_cache(maxsize=1)
def get_config() -> ExportConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Returns:
        ExportConfig singleton instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return ExportConfig()


def reset_config() -> None:
    """Reset configuration singleton for testing.

    Warning:
        Only use in test code. Production code should not reset config.
    """
    get_config.cache_clear()
