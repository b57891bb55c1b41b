"""Configuration management."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class GitHubConfig:
    """Remote tracking service configuration."""
    token: Optional[str]  # only required by commands that call the API
    api_url: str      # e.g. "https://api.github.com" or "https://ghe.example.com/api/v3"
    domain: str       # browsable base, e.g. "https://github.com"
    timeout: int = 30  # seconds per request


@dataclass
class SyncConfig:
    """Reconciliation behaviour."""
    fetch_subject: bool   # fetch and track issue/PR/commit/release state
    user_id: int = 1      # owner of the notifications handled by this process


@dataclass
class AppConfig:
    """Complete application configuration."""
    db_path: str
    log_level: str
    github: GitHubConfig
    sync: SyncConfig


def _parse_bool_env(key: str, default: bool) -> bool:
    """Parse a true/false environment variable."""
    value = os.getenv(key)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(require_token: bool = True) -> AppConfig:
    """
    Load configuration from environment variables.

    Args:
        require_token: Fail when GITHUB_TOKEN is unset. Commands that only
            read or edit the local database pass False.

    Raises:
        ValueError: If required configuration values are missing or malformed.
    """
    db_path = os.getenv("DB_PATH", "notifications.db")
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    github_token = os.getenv("GITHUB_TOKEN")
    github_api_url = os.getenv("GITHUB_API_URL", "https://api.github.com").rstrip("/")
    github_domain = os.getenv("GITHUB_DOMAIN", "https://github.com").rstrip("/")

    fetch_subject = _parse_bool_env("FETCH_SUBJECT", False)

    missing = []
    if require_token and not github_token:
        missing.append("GITHUB_TOKEN")
    if missing:
        raise ValueError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    try:
        github_timeout = int(os.getenv("GITHUB_TIMEOUT", "30"))
        user_id = int(os.getenv("NOTIFICATION_USER_ID", "1"))
    except ValueError as e:
        raise ValueError(f"Invalid numeric configuration value: {e}") from e

    return AppConfig(
        db_path=db_path,
        log_level=log_level,
        github=GitHubConfig(
            token=github_token,
            api_url=github_api_url,
            domain=github_domain,
            timeout=github_timeout,
        ),
        sync=SyncConfig(
            fetch_subject=fetch_subject,
            user_id=user_id,
        ),
    )
