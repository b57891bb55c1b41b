"""Reconciliation of notifications with the remote state of their subjects."""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from .attributes import attributes_from_api_response, dig
from .db import parse_time, transaction
from .models import Notification, Subject, SubjectKind
from .remote_client import Forbidden, NotFound, RemoteClient, RemoteError
from .stores import NotificationStore, SubjectStore
from .subject_url import SubjectUrlParser

logger = logging.getLogger(__name__)

# A subject updated this close to its notification was synced for the same event.
STALENESS_WINDOW = timedelta(seconds=2)


def _remote_state(remote: Dict[str, Any]) -> Optional[str]:
    return "merged" if remote.get("merged_at") else remote.get("state")


def _remote_times(remote: Dict[str, Any]):
    # commits carry their dates under commit.author / commit.committer
    created_at = remote.get("created_at") or dig(remote, ("commit", "author", "date"))
    updated_at = remote.get("updated_at") or dig(remote, ("commit", "committer", "date"))
    return parse_time(created_at), parse_time(updated_at)


class ReconciliationEngine:
    """
    Decides when to fetch a notification's subject and merges the result.

    The engine holds no state of its own: it works over the two stores and
    the remote client passed in.
    """

    def __init__(
        self,
        client: RemoteClient,
        notifications: NotificationStore,
        subjects: SubjectStore,
        fetch_subject: bool = False,
        github_domain: str = "https://github.com",
    ):
        """
        Args:
            client: Remote service client for the notifications' owner.
            notifications: Notification store.
            subjects: Subject store (must share the notification store's connection).
            fetch_subject: Track subject state at all.
            github_domain: Browsable base URL of the remote service.
        """
        self.client = client
        self.notifications = notifications
        self.subjects = subjects
        self.fetch_subject = fetch_subject
        self.github_domain = github_domain.rstrip("/")

    # -- inbound sync -------------------------------------------------------

    def update_from_api_response(
        self,
        notification: Notification,
        api_response: Dict[str, Any],
        unarchive: bool = False,
    ) -> bool:
        """
        Apply a notifications API payload to a notification.

        Args:
            notification: Stored or freshly built notification for the thread.
            api_response: One element of ``GET /notifications``.
            unarchive: Move the thread back to the inbox if the payload reports
                newer activity.

        Returns:
            True if the notification was written.

        Raises:
            RemoteError: Subject fetch failed for a reason other than 403/404.
                Nothing is written in that case.
        """
        attrs = attributes_from_api_response(api_response)
        if attrs["github_id"] is None:
            # keep the id the notification was looked up by
            del attrs["github_id"]
        previous = notification.values()
        previous_id = notification.id
        previous_snapshot = dict(notification._snapshot)
        try:
            with transaction(self.notifications.conn):
                notification.assign(attrs)
                self.update_subject(notification)
                if unarchive:
                    self.unarchive_if_updated(notification)
                return self.notifications.save(notification, touch=False)
        except BaseException:
            # the rows were rolled back; so is the in-memory record
            notification.assign(previous)
            notification.id = previous_id
            notification._snapshot = previous_snapshot
            raise

    def unarchive_if_updated(self, notification: Notification) -> None:
        """Unarchive when the pending ``updated_at`` is later than the stored one."""
        if not notification.archived:
            return
        change = notification.changes().get("updated_at")
        if not change:
            return
        previous, current = change
        if previous is None or current is None:
            return
        if current > previous:
            logger.info(f"Unarchiving notification {notification.github_id}: new activity at {current.isoformat()}")
            notification.archived = False

    def update_subject(self, notification: Notification) -> None:
        """Fetch and merge the subject of ``notification`` when needed."""
        if not self.fetch_subject:
            return
        subject = self.subjects.get(notification.subject_url)
        if subject is not None:
            self._merge_subject(notification, subject)
        else:
            self._create_subject(notification)

    def _recently_synced(self, notification: Notification, subject: Subject) -> bool:
        if notification.updated_at is None or subject.updated_at is None:
            return False
        return abs(notification.updated_at - subject.updated_at) < STALENESS_WINDOW

    def _merge_subject(self, notification: Notification, subject: Subject) -> None:
        if self._recently_synced(notification, subject):
            logger.debug(f"Subject {subject.url} synced with notification {notification.github_id}, skipping")
            return

        kind = notification.type.kind
        if kind is SubjectKind.TRACKABLE:
            remote = self._download_subject(notification)
            if not remote:
                return
            subject.state = _remote_state(remote)
            _, updated_at = _remote_times(remote)
            if updated_at is not None:
                subject.updated_at = updated_at
            self.subjects.save(subject)
        else:
            # authored and unsupported subjects are never refreshed
            return

    def _create_subject(self, notification: Notification) -> None:
        kind = notification.type.kind
        if kind is SubjectKind.TRACKABLE:
            remote = self._download_subject(notification)
            if not remote:
                return
            created_at, updated_at = _remote_times(remote)
            self.subjects.create(
                url=notification.subject_url,
                state=_remote_state(remote),
                author=dig(remote, ("user", "login")),
                html_url=remote.get("html_url"),
                created_at=created_at,
                updated_at=updated_at,
            )
        elif kind is SubjectKind.AUTHORED:
            remote = self._download_subject(notification)
            if not remote:
                return
            created_at, updated_at = _remote_times(remote)
            self.subjects.create(
                url=notification.subject_url,
                author=dig(remote, ("author", "login")),
                html_url=remote.get("html_url"),
                created_at=created_at,
                updated_at=updated_at,
            )
        else:
            logger.debug(f"No subject tracked for {notification.subject_type} notification {notification.github_id}")

    def _download_subject(self, notification: Notification) -> Optional[Dict[str, Any]]:
        if not notification.subject_url:
            return None
        try:
            return self.client.get(notification.subject_url)
        except (Forbidden, NotFound) as e:
            logger.warning(f"Could not fetch subject {notification.subject_url}: {e}")
            return None

    # -- user actions -------------------------------------------------------

    def mark_read(self, notification: Notification) -> None:
        notification.unread = False
        self.notifications.save(notification, touch=False)
        self.client.mark_thread_as_read(notification.github_id)

    def ignore_thread(self, notification: Notification) -> None:
        self.client.update_thread_subscription(notification.github_id, ignored=True)

    def mute(self, notification: Notification) -> None:
        """
        Mark read and ignore the thread remotely, then archive it locally.

        Every step runs even if an earlier remote call fails; nothing is rolled
        back. The first remote error is re-raised once the local write is done.
        """
        errors = []
        for step in (
            lambda: self.client.mark_thread_as_read(notification.github_id),
            lambda: self.ignore_thread(notification),
        ):
            try:
                step()
            except RemoteError as e:
                logger.error(f"Muting thread {notification.github_id} partially failed: {e}")
                errors.append(e)
        self.notifications.update_columns(notification, archived=True, unread=False)
        if errors:
            raise errors[0]

    def archive(self, notification: Notification) -> None:
        notification.archived = True
        self.notifications.save(notification)

    def unarchive(self, notification: Notification) -> None:
        notification.archived = False
        self.notifications.save(notification)

    def toggle_starred(self, notification: Notification) -> None:
        notification.starred = not notification.starred
        self.notifications.save(notification)

    # -- derived values -----------------------------------------------------

    def subject_for(self, notification: Notification) -> Optional[Subject]:
        return self.subjects.get(notification.subject_url)

    def state(self, notification: Notification) -> Optional[str]:
        if not self.fetch_subject:
            return None
        subject = self.subject_for(notification)
        return subject.state if subject else None

    def web_url(self, notification: Notification) -> Optional[str]:
        """Browsable URL, deep-linked to the latest comment when possible."""
        subject = self.subject_for(notification)
        # prefer the synced HTML URL over the API one
        url = (subject.html_url if subject else None) or notification.subject_url
        return SubjectUrlParser(
            url,
            latest_comment_url=notification.latest_comment_url,
            github_domain=self.github_domain,
        ).to_html_url()

    def repo_url(self, notification: Notification) -> str:
        return f"{self.github_domain}/{notification.repository_full_name}"
