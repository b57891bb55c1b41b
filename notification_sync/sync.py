"""Batch sweeps applying notification payloads and refreshing subjects."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from .reconciliation import ReconciliationEngine
from .stores import NotificationStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Outcome of one sweep."""
    processed: int = 0
    written: int = 0
    failed: List[Any] = field(default_factory=list)  # thread ids that raised


def sync_notifications(
    engine: ReconciliationEngine,
    store: NotificationStore,
    payloads: Iterable[Dict[str, Any]],
    user_id: int,
    unarchive: bool = False,
) -> SyncResult:
    """
    Apply each payload to its notification, one thread at a time.

    A failure on one thread is logged and does not stop the sweep.
    """
    result = SyncResult()
    for payload in payloads:
        thread_id = payload.get("id")
        result.processed += 1
        try:
            if thread_id is None:
                raise ValueError("Payload has no thread id")
            notification = store.find_or_build(user_id, int(thread_id))
            if engine.update_from_api_response(notification, payload, unarchive=unarchive):
                result.written += 1
        except Exception as e:
            logger.error(f"Error syncing notification {thread_id}: {e}", exc_info=True)
            result.failed.append(thread_id)
            continue

    logger.info(
        f"Synced {result.processed} notifications: "
        f"{result.written} written, {len(result.failed)} failed"
    )
    return result


def sync_subjects(engine: ReconciliationEngine, store: NotificationStore, user_id: int) -> SyncResult:
    """Retry subject reconciliation for subjectable notifications that have no subject yet."""
    result = SyncResult()
    if not engine.fetch_subject:
        logger.info("Subject fetching disabled; nothing to sync")
        return result

    pending = list(store.each(user_id, archived=None, subjectable=True, without_subject=True))
    logger.info(f"Found {len(pending)} notifications without a subject")
    for notification in pending:
        result.processed += 1
        try:
            engine.update_subject(notification)
        except Exception as e:
            logger.error(f"Error syncing subject for {notification.github_id}: {e}", exc_info=True)
            result.failed.append(notification.github_id)
            continue
        if engine.subject_for(notification) is not None:
            result.written += 1
    return result
