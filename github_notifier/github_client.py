"""GitHub REST API client for notification threads and comments."""

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import GitHubConfig
from .constants import CommentType

logger = logging.getLogger(__name__)

# Comment endpoints per comment type, relative to /repos/{owner}/{repo}
_COMMENT_PATHS = {
    CommentType.COMMIT: "comments/{id}",
    CommentType.PULL_REQUEST: "pulls/comments/{id}",
    CommentType.ISSUES: "issues/comments/{id}",
}


class GitHubAPIError(Exception):
    """
    Raised when the GitHub API cannot be reached or returns an error.

    ``str(err)`` is the raw response body when there is one, so callers can
    try to parse the structured ``message`` field out of it.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GitHubClient:
    """Thin wrapper around the endpoints the notifier needs."""

    def __init__(self, config: GitHubConfig, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: GitHub configuration.
            session: Optional session, mainly for tests.
        """
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/vnd.github+json",
            "User-Agent": "github-notifier",
        })

    def authenticate(self, token: str) -> None:
        """Use ``token`` for all subsequent requests."""
        self.session.headers["Authorization"] = f"token {token}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        if path.startswith(("http://", "https://")):
            url = path
        else:
            url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(
                method, url, timeout=self.config.timeout_seconds, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"GitHub request {method} {url} failed: {e}")
            raise GitHubAPIError(str(e))

        if response.status_code >= 400:
            logger.error(f"GitHub API error {response.status_code} for {method} {url}")
            raise GitHubAPIError(response.text, status_code=response.status_code)
        return response

    def list_notifications(self, since: str, participating: bool = False) -> List[Dict[str, Any]]:
        """
        List notification threads updated after ``since``.

        Follows ``Link`` pagination until every page has been read.

        Args:
            since: ISO-8601 timestamp.
            participating: Only threads the user directly participates in.

        Returns:
            Raw notification thread objects.
        """
        params: Dict[str, Any] = {"since": since, "per_page": 50}
        if participating:
            params["participating"] = "true"

        threads: List[Dict[str, Any]] = []
        response = self._request("GET", "notifications", params=params)
        threads.extend(response.json())
        next_page = response.links.get("next", {}).get("url")
        while next_page:
            # Next links are absolute and already carry the query string
            response = self._request("GET", next_page)
            threads.extend(response.json())
            next_page = response.links.get("next", {}).get("url")

        logger.debug(f"Fetched {len(threads)} notification threads since {since}")
        return threads

    def get_comment(self, kind: str, owner: str, repo: str, comment_id: str) -> Dict[str, Any]:
        """
        Fetch one comment.

        Args:
            kind: A ``CommentType`` value.
            owner: Repository owner login.
            repo: Repository name.
            comment_id: Comment id.

        Returns:
            ``{"body": str, "user_login": str}``.

        Raises:
            ValueError: If ``kind`` is not a known comment type.
            GitHubAPIError: If the request fails.
        """
        if kind not in _COMMENT_PATHS:
            raise ValueError(f"Unknown comment type: {kind}")
        path = f"repos/{owner}/{repo}/" + _COMMENT_PATHS[kind].format(id=comment_id)
        data = self._request("GET", path).json()
        return {
            "body": data.get("body") or "",
            "user_login": (data.get("user") or {}).get("login"),
        }

    def mark_thread_read(self, thread_id: str) -> None:
        """Mark a notification thread as read."""
        self._request("PATCH", f"notifications/threads/{thread_id}")
        logger.info(f"Marked notification thread {thread_id} as read")
