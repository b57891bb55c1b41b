"""Main entry point for the notification sync tool."""

import argparse
import json
import logging
import os
import sys

from .config import AppConfig, load_config
from .db import init_db
from .github_client import GitHubClient
from .reconciliation import ReconciliationEngine
from .stores import NotificationStore, SubjectStore
from .sync import sync_notifications, sync_subjects

# Configure logging
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)

# commands that call the remote service and need GITHUB_TOKEN
REMOTE_COMMANDS = ("sync", "sync-subjects", "mark-read", "mute")


def _create_engine(config: AppConfig, conn) -> ReconciliationEngine:
    """Wire the engine to the configured client and stores."""
    return ReconciliationEngine(
        client=GitHubClient(config.github),
        notifications=NotificationStore(conn),
        subjects=SubjectStore(conn),
        fetch_subject=config.sync.fetch_subject,
        github_domain=config.github.domain,
    )


def _load_payloads(path: str) -> list:
    """Read a JSON array of notifications API payloads ("-" for stdin)."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    return data


def _print_notification(engine: ReconciliationEngine, notification) -> None:
    flags = "".join([
        "U" if notification.unread else "-",
        "A" if notification.archived else "-",
        "*" if notification.starred else "-",
    ])
    state = engine.state(notification) or ""
    print(
        f"{notification.github_id}\t{flags}\t{notification.repository_full_name}\t"
        f"{notification.subject_type}\t{state}\t{notification.subject_title}"
    )


def run(args) -> int:
    """Run one CLI command; returns the process exit code."""
    config = load_config(require_token=args.command in REMOTE_COMMANDS)
    logger.debug(f"Opening database at {config.db_path}...")
    conn = init_db(config.db_path)
    try:
        engine = _create_engine(config, conn)
        store = engine.notifications
        user_id = config.sync.user_id

        if args.command == "sync":
            payloads = _load_payloads(args.payload_file)
            result = sync_notifications(engine, store, payloads, user_id, unarchive=args.unarchive)
            return 1 if result.failed else 0

        if args.command == "sync-subjects":
            result = sync_subjects(engine, store, user_id)
            return 1 if result.failed else 0

        if args.command == "list":
            for notification in store.query(
                user_id,
                archived=args.archived,
                starred=True if args.starred else None,
                repo=args.repo,
                subject_type=args.type,
                reason=args.reason,
                owner=args.owner,
                state=args.state,
                page=args.page,
            ):
                _print_notification(engine, notification)
            return 0

        if args.command == "search":
            for notification in store.search(user_id, args.text):
                _print_notification(engine, notification)
            return 0

        notification = store.get(user_id, args.thread_id)
        if notification is None:
            logger.error(f"No notification with thread id {args.thread_id}")
            return 1

        if args.command == "mark-read":
            engine.mark_read(notification)
        elif args.command == "mute":
            engine.mute(notification)
        elif args.command == "archive":
            engine.archive(notification)
        elif args.command == "unarchive":
            engine.unarchive(notification)
        elif args.command == "star":
            engine.toggle_starred(notification)
        elif args.command == "url":
            print(engine.web_url(notification) or "")
        return 0
    finally:
        conn.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Keep a local copy of GitHub notifications in sync with their issues and pull requests"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync_parser = subparsers.add_parser("sync", help="Apply notifications API payloads from a JSON file")
    sync_parser.add_argument("payload_file", help="JSON file with a list of notifications ('-' for stdin)")
    sync_parser.add_argument(
        "--unarchive",
        action="store_true",
        help="Move archived threads back to the inbox when they have new activity"
    )

    subparsers.add_parser("sync-subjects", help="Fetch subjects for notifications that have none yet")

    list_parser = subparsers.add_parser("list", help="List notifications, newest first")
    list_parser.add_argument("--archived", action="store_true", help="Show archived instead of inbox")
    list_parser.add_argument("--starred", action="store_true", help="Only starred notifications")
    list_parser.add_argument("--repo", help="Repository full name, e.g. owner/name")
    list_parser.add_argument("--type", help="Subject type, e.g. Issue or PullRequest")
    list_parser.add_argument("--reason", help="Notification reason, e.g. mention")
    list_parser.add_argument("--owner", help="Repository owner login")
    list_parser.add_argument("--state", help="Subject state, e.g. open, closed or merged")
    list_parser.add_argument("--page", type=int, default=1)

    search_parser = subparsers.add_parser("search", help="Search subject titles")
    search_parser.add_argument("text")

    for name, help_text in (
        ("mark-read", "Mark a thread as read"),
        ("mute", "Mark read, ignore and archive a thread"),
        ("archive", "Archive a thread"),
        ("unarchive", "Move a thread back to the inbox"),
        ("star", "Toggle the star on a thread"),
        ("url", "Print the browsable URL of a thread"),
    ):
        action_parser = subparsers.add_parser(name, help=help_text)
        action_parser.add_argument("thread_id", type=int)

    return parser


def main():
    """Main entry point with command-line argument parsing."""
    args = build_parser().parse_args()
    try:
        sys.exit(run(args))
    except Exception as e:
        logger.error(f"Fatal error running {args.command}: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
