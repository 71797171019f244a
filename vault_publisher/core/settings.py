"""Publisher settings and configuration."""

from __future__ import annotations

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Publisher settings loaded from environment variables."""

    # GitHub API configuration
    # Enterprise hosts use https://<hostname>/api/v3
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_TOKEN: str | None = None
    GITHUB_REQUEST_TIMEOUT: float = 30.0

    # Default target repository
    GITHUB_OWNER: str = ""
    GITHUB_REPO: str = ""
    GITHUB_BRANCH: str = "main"
    GITHUB_AUTOCLEAN: bool = False

    # Publishing workflow
    AUTO_MERGE_PR: bool = True  # False leaves the opened PR for a human to merge
    BRANCH_PREFIX: str = "vault"

    # Logging / notifications
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    NOTICE_ERROR: bool = True  # False keeps failure notices in the logs only

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("GITHUB_API_URL")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("GITHUB_REQUEST_TIMEOUT")
    @classmethod
    def timeout_must_be_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"GITHUB_REQUEST_TIMEOUT must be positive, got {value}")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown LOG_LEVEL: {value}")
        return level


def get_settings() -> Settings:
    """Load a fresh Settings instance from the current environment."""
    return Settings()
