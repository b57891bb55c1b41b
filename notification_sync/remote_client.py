"""Abstract client interface for the remote tracking service."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class RemoteError(Exception):
    """A call to the remote service failed."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class Forbidden(RemoteError):
    """The token may no longer read the resource (HTTP 403)."""


class NotFound(RemoteError):
    """The resource was deleted or never existed (HTTP 404)."""


class RemoteClient(ABC):
    """Abstract base class for remote tracking service clients."""

    @abstractmethod
    def get(self, url: str) -> Optional[Dict[str, Any]]:
        """
        Fetch an API resource (issue, pull request, commit, release) by its URL.

        Returns:
            The decoded JSON document, or None if the service returned no body.

        Raises:
            Forbidden, NotFound: Expected absence of the resource.
            RemoteError: Any other failure.
        """
        pass

    @abstractmethod
    def mark_thread_as_read(self, thread_id: int) -> None:
        """Mark a notification thread as read on the remote service."""
        pass

    @abstractmethod
    def update_thread_subscription(self, thread_id: int, ignored: bool) -> None:
        """Set the ignore flag of the user's subscription to a thread."""
        pass
