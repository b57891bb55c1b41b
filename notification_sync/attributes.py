"""Mapping of notifications API payloads onto Notification attributes."""

import logging
from typing import Any, Dict, Optional, Sequence

from .db import parse_time
from .models import SubjectType

logger = logging.getLogger(__name__)

# local attribute -> path inside the API payload
API_ATTRIBUTE_MAP: Dict[str, Sequence[str]] = {
    "github_id": ("id",),
    "repository_id": ("repository", "id"),
    "repository_full_name": ("repository", "full_name"),
    "repository_owner_name": ("repository", "owner", "login"),
    "subject_title": ("subject", "title"),
    "subject_type": ("subject", "type"),
    "subject_url": ("subject", "url"),
    "latest_comment_url": ("subject", "latest_comment_url"),
    "reason": ("reason",),
    "unread": ("unread",),
    "updated_at": ("updated_at",),
    "last_read_at": ("last_read_at",),
    "url": ("url",),
}

_TIME_ATTRIBUTES = ("updated_at", "last_read_at")


def dig(payload: Any, path: Sequence[str]) -> Optional[Any]:
    """Follow ``path`` through nested dicts; None as soon as a key is missing."""
    value = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
        if value is None:
            return None
    return value


def _lenient(attr: str, value: Any, convert) -> Optional[Any]:
    try:
        return convert(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring unparseable {attr} in notification payload: {value!r}")
        return None


def attributes_from_api_response(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the flat Notification attributes from a notifications API payload.

    Repository invitations have no API subject URL; theirs is synthesized
    from the repository page instead. Timestamps and the thread id that do
    not parse are logged and mapped to None like absent fields.

    Args:
        payload: One decoded element of ``GET /notifications``.

    Returns:
        Attribute dict; absent payload fields map to None.
    """
    attrs = {attr: dig(payload, path) for attr, path in API_ATTRIBUTE_MAP.items()}
    for attr in _TIME_ATTRIBUTES:
        attrs[attr] = _lenient(attr, attrs[attr], parse_time)
    if attrs["github_id"] is not None:
        attrs["github_id"] = _lenient("github_id", attrs["github_id"], int)

    if SubjectType.parse(attrs["subject_type"]) is SubjectType.REPOSITORY_INVITATION:
        repo_html_url = dig(payload, ("repository", "html_url"))
        attrs["subject_url"] = f"{repo_html_url}/invitations" if repo_html_url else None
    return attrs
