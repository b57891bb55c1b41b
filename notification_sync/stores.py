"""Persistence for Notification and Subject projections."""

import logging
import re
import sqlite3
from typing import Iterable, List, Optional

from .db import parse_time, to_db_time, utcnow
from .models import SUBJECTABLE_TYPES, Notification, Subject

logger = logging.getLogger(__name__)

PER_PAGE = 20

_NOTIFICATION_COLUMNS = (
    "user_id", "github_id", "repository_id", "repository_full_name",
    "repository_owner_name", "subject_title", "subject_type", "subject_url",
    "latest_comment_url", "reason", "unread", "archived", "starred",
    "updated_at", "last_read_at", "url", "modified_at",
)
_NOTIFICATION_TIMES = ("updated_at", "last_read_at", "modified_at")
_NOTIFICATION_FLAGS = ("unread", "archived", "starred")

_SUBJECT_COLUMNS = ("url", "state", "author", "html_url", "created_at", "updated_at")
_SUBJECT_TIMES = ("created_at", "updated_at")


def _to_row(record, columns, times) -> dict:
    row = {}
    for name in columns:
        value = getattr(record, name)
        row[name] = to_db_time(value) if name in times else value
    return row


class SubjectStore:
    """Subjects keyed by their remote URL."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _from_row(self, row: sqlite3.Row) -> Subject:
        subject = Subject(
            id=row["id"],
            url=row["url"],
            state=row["state"],
            author=row["author"],
            html_url=row["html_url"],
            created_at=parse_time(row["created_at"]),
            updated_at=parse_time(row["updated_at"]),
        )
        subject.mark_clean()
        return subject

    def get(self, url: Optional[str]) -> Optional[Subject]:
        if not url:
            return None
        row = self.conn.execute("SELECT * FROM subjects WHERE url = ?", (url,)).fetchone()
        return self._from_row(row) if row else None

    def create(self, **attrs) -> Subject:
        subject = Subject(**attrs)
        self.save(subject)
        return subject

    def save(self, subject: Subject) -> bool:
        """
        Insert or update a subject.

        Returns:
            True if a write happened, False if nothing had changed.
        """
        if subject.persisted and not subject.changed:
            return False
        row = _to_row(subject, _SUBJECT_COLUMNS, _SUBJECT_TIMES)
        if subject.persisted:
            assignments = ", ".join(f"{name} = :{name}" for name in row)
            self.conn.execute(
                f"UPDATE subjects SET {assignments} WHERE id = :id",
                {**row, "id": subject.id},
            )
        else:
            placeholders = ", ".join(f":{name}" for name in row)
            cursor = self.conn.execute(
                f"INSERT INTO subjects ({', '.join(row)}) VALUES ({placeholders})",
                row,
            )
            subject.id = cursor.lastrowid
        subject.mark_clean()
        logger.debug(f"Saved subject {subject.url}")
        return True


class NotificationStore:
    """Notifications keyed by (user_id, github_id)."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _from_row(self, row: sqlite3.Row) -> Notification:
        attrs = {}
        for name in _NOTIFICATION_COLUMNS:
            value = row[name]
            if name in _NOTIFICATION_TIMES:
                value = parse_time(value)
            elif name in _NOTIFICATION_FLAGS and value is not None:
                value = bool(value)
            attrs[name] = value
        notification = Notification(id=row["id"], **attrs)
        notification.mark_clean()
        return notification

    def get(self, user_id: int, github_id: int) -> Optional[Notification]:
        row = self.conn.execute(
            "SELECT * FROM notifications WHERE user_id = ? AND github_id = ?",
            (user_id, github_id),
        ).fetchone()
        return self._from_row(row) if row else None

    def find_or_build(self, user_id: int, github_id: int) -> Notification:
        """Return the stored notification, or a new unsaved one."""
        return self.get(user_id, github_id) or Notification(github_id=github_id, user_id=user_id)

    def save(self, notification: Notification, touch: bool = True) -> bool:
        """
        Insert or update a notification.

        Args:
            notification: The record to persist.
            touch: Bump ``modified_at``. Automated syncs pass False so they can
                be told apart from user edits.

        Returns:
            True if a write happened, False if nothing had changed.
        """
        if notification.persisted and not notification.changed:
            return False
        if touch:
            notification.modified_at = utcnow()
        row = _to_row(notification, _NOTIFICATION_COLUMNS, _NOTIFICATION_TIMES)
        if notification.persisted:
            assignments = ", ".join(f"{name} = :{name}" for name in row)
            self.conn.execute(
                f"UPDATE notifications SET {assignments} WHERE id = :id",
                {**row, "id": notification.id},
            )
        else:
            placeholders = ", ".join(f":{name}" for name in row)
            cursor = self.conn.execute(
                f"INSERT INTO notifications ({', '.join(row)}) VALUES ({placeholders})",
                row,
            )
            notification.id = cursor.lastrowid
        notification.mark_clean()
        return True

    def update_columns(self, notification: Notification, **values) -> None:
        """Write the given columns in one statement, without touching ``modified_at``."""
        unknown = set(values) - set(_NOTIFICATION_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown notification columns: {', '.join(sorted(unknown))}")
        notification.assign(values)
        if not notification.persisted:
            self.save(notification, touch=False)
            return
        row = {name: (to_db_time(v) if name in _NOTIFICATION_TIMES else v) for name, v in values.items()}
        assignments = ", ".join(f"{name} = :{name}" for name in row)
        self.conn.execute(
            f"UPDATE notifications SET {assignments} WHERE id = :id",
            {**row, "id": notification.id},
        )
        notification.mark_clean(values)

    def query(
        self,
        user_id: int,
        archived: Optional[bool] = False,
        starred: Optional[bool] = None,
        repo: Optional[str] = None,
        subject_type: Optional[str] = None,
        reason: Optional[str] = None,
        unread: Optional[bool] = None,
        owner: Optional[str] = None,
        state: Optional[str] = None,
        subjectable: bool = False,
        without_subject: bool = False,
        page: int = 1,
        per_page: int = PER_PAGE,
    ) -> List[Notification]:
        """
        List notifications newest first.

        ``archived=False`` is the inbox, ``archived=True`` the archive and
        ``archived=None`` both. Filtering by ``state`` only matches notifications
        linked to a subject.
        """
        clauses = ["n.user_id = ?"]
        params: list = [user_id]
        for column, value in (
            ("n.archived", archived),
            ("n.starred", starred),
            ("n.unread", unread),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(int(value))
        for column, value in (
            ("n.repository_full_name", repo),
            ("n.subject_type", subject_type),
            ("n.reason", reason),
            ("n.repository_owner_name", owner),
            ("s.state", state),
        ):
            if value is not None:
                clauses.append(f"{column} = ?")
                params.append(value)
        if subjectable:
            clauses.append(f"n.subject_type IN ({', '.join('?' for _ in SUBJECTABLE_TYPES)})")
            params.extend(SUBJECTABLE_TYPES)
        if without_subject:
            clauses.append("s.url IS NULL")
        page = max(page, 1)
        params.extend([per_page, (page - 1) * per_page])
        rows = self.conn.execute(
            f"""
            SELECT n.* FROM notifications n
            LEFT JOIN subjects s ON s.url = n.subject_url
            WHERE {' AND '.join(clauses)}
            ORDER BY n.updated_at DESC, n.id DESC
            LIMIT ? OFFSET ?
            """,
            params,
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def search(self, user_id: int, text: str, limit: int = PER_PAGE) -> List[Notification]:
        """
        Prefix search over subject titles.

        Words starting with ``-`` or ``!`` exclude matches.
        """
        include, exclude = _split_terms(text)
        if not include and not exclude:
            return []
        if include:
            match = " AND ".join(include)
            if exclude:
                match = f"{match} NOT ({' OR '.join(exclude)})"
            rows = self.conn.execute(
                """
                SELECT n.* FROM notifications_fts
                JOIN notifications n ON n.id = notifications_fts.rowid
                WHERE notifications_fts MATCH ? AND n.user_id = ?
                ORDER BY bm25(notifications_fts), n.updated_at DESC
                LIMIT ?
                """,
                (match, user_id, limit),
            ).fetchall()
        else:
            rows = self.conn.execute(
                """
                SELECT n.* FROM notifications n
                WHERE n.user_id = ? AND n.id NOT IN (
                    SELECT rowid FROM notifications_fts WHERE notifications_fts MATCH ?
                )
                ORDER BY n.updated_at DESC
                LIMIT ?
                """,
                (user_id, " OR ".join(exclude), limit),
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def each(self, user_id: int, **filters) -> Iterable[Notification]:
        """Iterate over every matching notification, page by page."""
        page = 1
        while True:
            batch = self.query(user_id, page=page, **filters)
            if not batch:
                return
            yield from batch
            page += 1


def _split_terms(text: str):
    include, exclude = [], []
    for raw in text.split():
        negate = raw[0] in "-!"
        # "log-in" is indexed as the adjacent tokens "log" and "in"
        tokens = re.findall(r"\w+", raw)
        if not tokens:
            continue
        term = f'"{" ".join(tokens)}"*'
        (exclude if negate else include).append(term)
    return include, exclude
