"""Convert API subject URLs into browsable web URLs."""

import re
from typing import Optional

_API_REPOS = re.compile(r"^https?://[^/]+(?:/api/v3)?/repos/")
_COMMENT_ID = re.compile(r"/comments/(\d+)$")


class SubjectUrlParser:
    """
    Rewrite ``<api>/repos/owner/repo/...`` into ``<domain>/owner/repo/...``.

    When the latest comment URL points at a comment, the result links
    straight to it.
    """

    def __init__(
        self,
        url: Optional[str],
        latest_comment_url: Optional[str] = None,
        github_domain: str = "https://github.com",
    ):
        self.url = url
        self.latest_comment_url = latest_comment_url
        self.github_domain = github_domain.rstrip("/")

    def to_html_url(self) -> Optional[str]:
        if not self.url:
            return None
        url = self.url
        if _API_REPOS.match(url):
            path = _API_REPOS.sub("", url)
            path = path.replace("/pulls/", "/pull/").replace("/commits/", "/commit/")
            path = re.sub(r"/releases/\d+$", "/releases", path)
            url = f"{self.github_domain}/{path}"
        if "#" in url:
            return url
        return f"{url}{self._comment_anchor()}"

    def _comment_anchor(self) -> str:
        if not self.latest_comment_url or self.latest_comment_url == self.url:
            return ""
        match = _COMMENT_ID.search(self.latest_comment_url)
        if not match:
            return ""
        if "/pulls/comments/" in self.latest_comment_url:
            return f"#discussion_r{match.group(1)}"
        if "/issues/comments/" in self.latest_comment_url:
            return f"#issuecomment-{match.group(1)}"
        return ""
