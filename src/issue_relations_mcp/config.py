"""Configuration loaded from the process environment."""
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_API_BASE_URL = "https://api.github.com"


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


class Config(BaseModel):
    """Server configuration.

    The token is expected to be set by the caller (e.g. the MCP host's
    server entry). The base URL override exists for GitHub Enterprise and
    for pointing the server at a mock API in tests.
    """

    github_token: str = Field(..., min_length=1, repr=False)
    github_api_base_url: str = DEFAULT_API_BASE_URL
    log_level: str = "INFO"

    @field_validator("github_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{value}'")
        return level


def load_config(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Load configuration from environment variables.

    Raises:
        ConfigError: If GITHUB_TOKEN is missing or empty, or a value is invalid
    """
    env = os.environ if environ is None else environ

    github_token = (env.get("GITHUB_TOKEN") or "").strip()
    if not github_token:
        raise ConfigError(
            "GITHUB_TOKEN environment variable is required. "
            "Set it directly or use: gh auth token"
        )

    # Optional: custom GitHub API base URL (GHES, testing)
    base_url = (env.get("GITHUB_API_BASE_URL") or "").strip() or DEFAULT_API_BASE_URL

    try:
        return Config(
            github_token=github_token,
            github_api_base_url=base_url,
            log_level=env.get("LOG_LEVEL") or "INFO",
        )
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        raise ConfigError(f"Invalid configuration: {problems}") from e
