"""SQLite database setup for the notification and subject projections."""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Initialize the database and create tables if they don't exist.

    The connection runs in autocommit mode; use ``transaction()`` to group
    several writes.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        A connection to the database.
    """
    conn = sqlite3.connect(db_path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.executescript("""
        CREATE TABLE IF NOT EXISTS subjects (
            id INTEGER PRIMARY KEY,
            url TEXT NOT NULL UNIQUE,
            state TEXT,
            author TEXT,
            html_url TEXT,
            created_at TEXT,
            updated_at TEXT
        );

        CREATE TABLE IF NOT EXISTS notifications (
            id INTEGER PRIMARY KEY,
            user_id INTEGER NOT NULL,
            github_id INTEGER NOT NULL,
            repository_id INTEGER,
            repository_full_name TEXT,
            repository_owner_name TEXT,
            subject_title TEXT,
            subject_type TEXT,
            subject_url TEXT,
            latest_comment_url TEXT,
            reason TEXT,
            unread INTEGER DEFAULT 1,
            archived INTEGER NOT NULL DEFAULT 0,
            starred INTEGER NOT NULL DEFAULT 0,
            updated_at TEXT,
            last_read_at TEXT,
            url TEXT,
            modified_at TEXT,
            UNIQUE (user_id, github_id)
        );
        CREATE INDEX IF NOT EXISTS idx_notifications_user_updated
            ON notifications(user_id, updated_at DESC);
        CREATE INDEX IF NOT EXISTS idx_notifications_subject_url
            ON notifications(subject_url);

        CREATE VIRTUAL TABLE IF NOT EXISTS notifications_fts USING fts5(
            subject_title,
            content='notifications',
            content_rowid='id'
        );

        CREATE TRIGGER IF NOT EXISTS notifications_ai AFTER INSERT ON notifications BEGIN
            INSERT INTO notifications_fts(rowid, subject_title)
            VALUES (new.id, new.subject_title);
        END;

        CREATE TRIGGER IF NOT EXISTS notifications_au
        AFTER UPDATE OF subject_title ON notifications BEGIN
            INSERT INTO notifications_fts(notifications_fts, rowid, subject_title)
            VALUES ('delete', old.id, old.subject_title);
            INSERT INTO notifications_fts(rowid, subject_title)
            VALUES (new.id, new.subject_title);
        END;

        CREATE TRIGGER IF NOT EXISTS notifications_ad AFTER DELETE ON notifications BEGIN
            INSERT INTO notifications_fts(notifications_fts, rowid, subject_title)
            VALUES ('delete', old.id, old.subject_title);
        END;
    """)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run the enclosed writes atomically.

    Nested use joins the outer transaction; only the outermost block commits
    or rolls back.
    """
    if conn.in_transaction:
        yield conn
        return
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(value: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as ISO8601 UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def parse_time(value) -> Optional[datetime]:
    """
    Parse an ISO8601 timestamp (API "Z" suffix accepted) into an aware UTC datetime.

    Returns None for empty values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
