"""Data models for notifications and their subjects."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SubjectKind(Enum):
    """How a subject type is reconciled against the remote service."""
    TRACKABLE = "trackable"      # state is merged from the remote entity
    AUTHORED = "authored"        # only author/url/timestamps are recorded
    UNSUPPORTED = "unsupported"  # never linked to a subject


class SubjectType(str, Enum):
    """Subject types reported by the notifications API."""
    ISSUE = "Issue"
    PULL_REQUEST = "PullRequest"
    COMMIT = "Commit"
    RELEASE = "Release"
    REPOSITORY_INVITATION = "RepositoryInvitation"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SubjectType":
        """Map a raw API type string onto the enum; unknown strings become OTHER."""
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER

    @property
    def kind(self) -> SubjectKind:
        if self in (SubjectType.ISSUE, SubjectType.PULL_REQUEST):
            return SubjectKind.TRACKABLE
        if self in (SubjectType.COMMIT, SubjectType.RELEASE):
            return SubjectKind.AUTHORED
        return SubjectKind.UNSUPPORTED


SUBJECTABLE_TYPES = tuple(
    t.value for t in SubjectType if t.kind is not SubjectKind.UNSUPPORTED
)


class ChangeTracking:
    """Dirty tracking against the last persisted snapshot."""

    _untracked = ("id", "_snapshot")

    def _tracked_names(self):
        return [f.name for f in fields(self) if f.name not in self._untracked]

    def mark_clean(self, names=None) -> None:
        """Record the current values (of ``names``, or of every field) as persisted."""
        if names is None:
            self._snapshot = {name: getattr(self, name) for name in self._tracked_names()}
        else:
            self._snapshot.update({name: getattr(self, name) for name in names})

    @property
    def persisted(self) -> bool:
        return self.id is not None

    def changes(self) -> Dict[str, Tuple[Any, Any]]:
        """Return {field: (old, new)} for every field that differs from the snapshot."""
        result = {}
        for name in self._tracked_names():
            old = self._snapshot.get(name)
            new = getattr(self, name)
            if old != new:
                result[name] = (old, new)
        return result

    @property
    def changed(self) -> bool:
        return bool(self.changes())

    def values(self) -> Dict[str, Any]:
        """Current value of every tracked field."""
        return {name: getattr(self, name) for name in self._tracked_names()}

    def assign(self, attrs: Dict[str, Any]) -> None:
        """Assign known attributes; unknown keys are ignored."""
        names = set(self._tracked_names())
        for key, value in attrs.items():
            if key in names:
                setattr(self, key, value)


@dataclass(eq=False)
class Subject(ChangeTracking):
    """Local projection of the remote issue, pull request, commit or release."""
    url: str
    state: Optional[str] = None    # "open", "closed", "merged", ...
    author: Optional[str] = None
    html_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None
    _snapshot: Dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(eq=False)
class Notification(ChangeTracking):
    """Local projection of one remote inbox thread."""
    github_id: int
    user_id: int
    repository_id: Optional[int] = None
    repository_full_name: Optional[str] = None
    repository_owner_name: Optional[str] = None
    subject_title: Optional[str] = None
    subject_type: Optional[str] = None
    subject_url: Optional[str] = None   # lookup key for the optional Subject
    latest_comment_url: Optional[str] = None
    reason: Optional[str] = None
    unread: bool = True
    archived: bool = False
    starred: bool = False
    updated_at: Optional[datetime] = None
    last_read_at: Optional[datetime] = None
    url: Optional[str] = None
    modified_at: Optional[datetime] = None  # bumped only by user-initiated saves
    id: Optional[int] = None
    _snapshot: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def type(self) -> SubjectType:
        return SubjectType.parse(self.subject_type)
