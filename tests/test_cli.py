from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import FakeRemoteClient, make_payload

from notification_sync import main as main_module


@pytest.fixture
def remote(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> FakeRemoteClient:
    fake = FakeRemoteClient()
    monkeypatch.setenv("GITHUB_TOKEN", "secret")
    monkeypatch.setenv("DB_PATH", str(tmp_path / "cli.db"))
    monkeypatch.setenv("FETCH_SUBJECT", "false")
    monkeypatch.setenv("NOTIFICATION_USER_ID", "1")
    monkeypatch.setattr(main_module, "GitHubClient", lambda config: fake)
    return fake


def _run(*argv: str) -> int:
    return main_module.run(main_module.build_parser().parse_args(list(argv)))


def _sync(tmp_path: Path, *payloads) -> int:
    path = tmp_path / "payloads.json"
    path.write_text(json.dumps(list(payloads)), encoding="utf-8")
    return _run("sync", str(path))


def test_sync_then_list(remote, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert _sync(tmp_path, make_payload(thread_id=5, title="Ship the release")) == 0

    assert _run("list") == 0

    out = capsys.readouterr().out
    assert "5\tU--\toctobox/octobox\tIssue\t\tShip the release" in out


def test_mute_and_list_archive(remote, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _sync(tmp_path, make_payload(thread_id=5))

    assert _run("mute", "5") == 0
    assert _run("list", "--archived") == 0

    assert remote.read_threads == [5]
    assert remote.subscriptions == [(5, True)]
    assert "5\t-A-" in capsys.readouterr().out


def test_url_and_search(remote, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _sync(tmp_path, make_payload(thread_id=5, title="Flaky login spec"))

    assert _run("url", "5") == 0
    assert _run("search", "flaky") == 0

    out = capsys.readouterr().out
    assert "https://github.com/octobox/octobox/issues/56" in out
    assert "Flaky login spec" in out


def test_unknown_thread_returns_error(remote) -> None:
    assert _run("mark-read", "999") == 1
    assert remote.read_threads == []


def test_local_commands_run_without_token(
    remote, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    _sync(tmp_path, make_payload(thread_id=5, title="Ship the release"))
    monkeypatch.delenv("GITHUB_TOKEN")

    assert _run("list") == 0
    assert _run("search", "ship") == 0
    assert _run("archive", "5") == 0
    assert _run("unarchive", "5") == 0
    assert _run("star", "5") == 0
    assert _run("url", "5") == 0

    assert "Ship the release" in capsys.readouterr().out


def test_remote_commands_require_token(remote, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _sync(tmp_path, make_payload(thread_id=5))
    monkeypatch.delenv("GITHUB_TOKEN")

    with pytest.raises(ValueError, match="GITHUB_TOKEN"):
        _run("mark-read", "5")
    assert remote.read_threads == []
