from __future__ import annotations

from pathlib import Path

import pytest

from notification_sync.db import init_db
from notification_sync.reconciliation import ReconciliationEngine
from notification_sync.remote_client import RemoteClient
from notification_sync.stores import NotificationStore, SubjectStore


class FakeRemoteClient(RemoteClient):
    """Records calls; ``responses`` maps URL -> payload or exception instance."""

    def __init__(self, responses=None) -> None:
        self.responses = dict(responses or {})
        self.fetched: list[str] = []
        self.read_threads: list[int] = []
        self.subscriptions: list[tuple[int, bool]] = []
        self.mark_read_error: Exception | None = None
        self.subscription_error: Exception | None = None

    def get(self, url):
        self.fetched.append(url)
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        return response

    def mark_thread_as_read(self, thread_id) -> None:
        self.read_threads.append(thread_id)
        if self.mark_read_error:
            raise self.mark_read_error

    def update_thread_subscription(self, thread_id, ignored) -> None:
        self.subscriptions.append((thread_id, ignored))
        if self.subscription_error:
            raise self.subscription_error


ISSUE_URL = "https://api.github.com/repos/octobox/octobox/issues/56"
PULL_URL = "https://api.github.com/repos/octobox/octobox/pulls/57"
COMMIT_URL = "https://api.github.com/repos/octobox/octobox/commits/6dcb09b5b5"


def make_payload(
    thread_id: int = 1,
    subject_type: str = "Issue",
    subject_url: str | None = ISSUE_URL,
    title: str = "Add more tests",
    updated_at: str = "2024-05-01T10:00:00Z",
    **overrides,
) -> dict:
    payload = {
        "id": str(thread_id),
        "unread": True,
        "reason": "mention",
        "updated_at": updated_at,
        "last_read_at": None,
        "url": f"https://api.github.com/notifications/threads/{thread_id}",
        "repository": {
            "id": 1296269,
            "full_name": "octobox/octobox",
            "html_url": "https://github.com/octobox/octobox",
            "owner": {"login": "octobox"},
        },
        "subject": {
            "title": title,
            "url": subject_url,
            "latest_comment_url": subject_url,
            "type": subject_type,
        },
    }
    payload.update(overrides)
    return payload


def make_issue(state: str = "open", merged_at: str | None = None, updated_at: str = "2024-05-01T09:00:00Z") -> dict:
    issue = {
        "state": state,
        "user": {"login": "andrew"},
        "html_url": "https://github.com/octobox/octobox/issues/56",
        "created_at": "2024-04-01T08:00:00Z",
        "updated_at": updated_at,
    }
    if merged_at is not None:
        issue["merged_at"] = merged_at
    return issue


@pytest.fixture
def conn(tmp_path: Path):
    connection = init_db(str(tmp_path / "notifications.db"))
    yield connection
    connection.close()


@pytest.fixture
def notifications(conn) -> NotificationStore:
    return NotificationStore(conn)


@pytest.fixture
def subjects(conn) -> SubjectStore:
    return SubjectStore(conn)


@pytest.fixture
def client() -> FakeRemoteClient:
    return FakeRemoteClient()


@pytest.fixture
def engine(client, notifications, subjects) -> ReconciliationEngine:
    return ReconciliationEngine(client, notifications, subjects, fetch_subject=True)
