from __future__ import annotations

import pytest

from notification_sync.config import load_config

_ENV_KEYS = (
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "GITHUB_DOMAIN",
    "GITHUB_TIMEOUT",
    "FETCH_SUBJECT",
    "DB_PATH",
    "LOG_LEVEL",
    "NOTIFICATION_USER_ID",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "secret")

    config = load_config()

    assert config.db_path == "notifications.db"
    assert config.log_level == "INFO"
    assert config.github.token == "secret"
    assert config.github.api_url == "https://api.github.com"
    assert config.github.domain == "https://github.com"
    assert config.github.timeout == 30
    assert config.sync.fetch_subject is False
    assert config.sync.user_id == 1


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("GITHUB_API_URL", "https://ghe.example.com/api/v3/")
    monkeypatch.setenv("GITHUB_DOMAIN", "https://ghe.example.com/")
    monkeypatch.setenv("FETCH_SUBJECT", "true")
    monkeypatch.setenv("NOTIFICATION_USER_ID", "7")
    monkeypatch.setenv("DB_PATH", "/tmp/other.db")

    config = load_config()

    assert config.github.api_url == "https://ghe.example.com/api/v3"
    assert config.github.domain == "https://ghe.example.com"
    assert config.sync.fetch_subject is True
    assert config.sync.user_id == 7
    assert config.db_path == "/tmp/other.db"


def test_missing_token_raises() -> None:
    with pytest.raises(ValueError, match="GITHUB_TOKEN"):
        load_config()


def test_bad_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("GITHUB_TIMEOUT", "soon")

    with pytest.raises(ValueError, match="Invalid numeric"):
        load_config()


def test_token_optional_for_local_commands() -> None:
    config = load_config(require_token=False)

    assert config.github.token is None
    assert config.github.api_url == "https://api.github.com"
