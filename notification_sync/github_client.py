"""GitHub REST implementation of the remote client."""

import logging
from typing import Any, Dict, Optional

import requests

from .config import GitHubConfig
from .remote_client import Forbidden, NotFound, RemoteClient, RemoteError

logger = logging.getLogger(__name__)


class GitHubClient(RemoteClient):
    """Thin HTTP client for the GitHub notifications and subject endpoints."""

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None):
        """
        Initialize the GitHub client.

        Args:
            config: GitHub configuration.
            session: Optional pre-built session (used by tests).
        """
        self.config = config
        self.base_url = config.api_url
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if config.token:
            self.session.headers["Authorization"] = f"token {config.token}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        if not url.startswith("http"):
            url = f"{self.base_url}/{url.lstrip('/')}"
        try:
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error(f"GitHub API request failed: {method} {url}: {e}")
            raise RemoteError(str(e)) from e

        if response.status_code == 403:
            raise Forbidden(f"403 Forbidden: {method} {url}", status=403)
        if response.status_code == 404:
            raise NotFound(f"404 Not Found: {method} {url}", status=404)
        if response.status_code >= 400:
            logger.error(f"GitHub API error {response.status_code}: {method} {url}")
            raise RemoteError(
                f"{response.status_code} error: {method} {url}",
                status=response.status_code,
            )
        return response

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        response = self._request("GET", url)
        if not response.content:
            return None
        return response.json()

    def mark_thread_as_read(self, thread_id: int) -> None:
        self._request("PATCH", f"notifications/threads/{thread_id}")
        logger.info(f"Marked thread {thread_id} as read")

    def update_thread_subscription(self, thread_id: int, ignored: bool) -> None:
        self._request(
            "PUT",
            f"notifications/threads/{thread_id}/subscription",
            json={"ignored": ignored},
        )
        logger.info(f"Set thread {thread_id} subscription ignored={ignored}")
