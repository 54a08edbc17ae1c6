"""
GitHub API client for listing and looking up repositories.

Provides a lazy, thread-safe pager over the organization and user
repository listings and single repository lookups.
"""

import threading
from collections import deque
from enum import Enum
from typing import Any, Deque, Dict, Optional

import httpx

from ..config.config import GitHubConfig
from ..logger.logger import get_logger
from ..models import Repository

API_VERSION = "application/vnd.github.v3+json"
USER_AGENT = "ghsync/1.0"
PER_PAGE = 100  # GitHub max


class GitHubAPIError(Exception):
    """Non-2xx response from the GitHub API."""

    def __init__(self, url: str, status_code: int, body: str):
        self.url = url
        self.status_code = status_code
        self.body = body
        super().__init__(f"{url} ({status_code}) - {body}")

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class RepoKind(str, Enum):
    """Which listing endpoint an owner is read from."""

    ORG = "orgs"
    USER = "users"

    def path(self, owner: str) -> str:
        return f"/{self.value}/{owner}/repos"


class GitHubClient:
    """Client for interacting with GitHub API."""

    def __init__(self, config: GitHubConfig, log_config=None, transport: Optional[httpx.BaseTransport] = None):
        """Initialize GitHub client.

        Args:
            config: GitHubConfig instance
            log_config: Optional LogConfig for logging
            transport: Optional httpx transport, used by tests
        """
        self.config = config
        self.logger = get_logger("github_client", log_config)

        headers = {
            "Accept": API_VERSION,
            "User-Agent": USER_AGENT,
        }
        client_kwargs: Dict[str, Any] = {
            "base_url": config.api_url,
            "headers": headers,
            "timeout": config.timeout,
        }

        if config.user:
            client_kwargs["auth"] = httpx.BasicAuth(config.user, config.token or "")
        elif config.token:
            headers["Authorization"] = f"token {config.token}"

        if transport is not None:
            client_kwargs["transport"] = transport

        self.session = httpx.Client(**client_kwargs)

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Perform a GET request and check its status.

        Args:
            path: API path relative to the base URL
            params: Optional query parameters

        Returns:
            The successful response

        Raises:
            GitHubAPIError: If the API answers with a non-2xx status
            httpx.RequestError: If the request could not be sent
        """
        response = self.session.get(path, params=params)
        if not response.is_success:
            raise GitHubAPIError(str(response.url), response.status_code, response.text)
        return response

    def get_repository(self, owner: str, repo: str) -> Repository:
        """Get repository information.

        Args:
            owner: Repository owner username
            repo: Repository name

        Returns:
            Repository descriptor

        Raises:
            GitHubAPIError: If the repository is not found or the API call fails
        """
        try:
            response = self.get(f"/repos/{owner}/{repo}")
        except GitHubAPIError as e:
            if e.not_found:
                self.logger.warning(f"Repository not found: {owner}/{repo}")
            raise
        self.logger.debug(f"Retrieved repository {owner}/{repo}")
        return Repository.model_validate(response.json())

    def list_repositories(self, owner: str, kind: RepoKind) -> "RepositoryPager":
        """List the public repositories of an organization or user.

        Args:
            owner: Organization or user name
            kind: Which listing endpoint to read

        Returns:
            A lazy pager; nothing is fetched until it is iterated
        """
        return RepositoryPager(self, owner, kind)

    def list_org_repositories(self, org: str) -> "RepositoryPager":
        return self.list_repositories(org, RepoKind.ORG)

    def list_user_repositories(self, user: str) -> "RepositoryPager":
        return self.list_repositories(user, RepoKind.USER)

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
        self.logger.debug("GitHub client session closed")


class RepositoryPager:
    """Iterator over one owner's repository listing, one page at a time.

    Pages are fetched only when the buffer of the current page is empty. The
    page count is taken from the ``rel="last"`` link of each response; a
    response without one is the last page.

    A failed page fetch raises ``GitHubAPIError`` once and then ends the
    iteration, so a broken endpoint is never requested in a loop. ``next`` is
    serialized by a lock, so several threads may share one pager.
    """

    def __init__(self, client: GitHubClient, owner: str, kind: RepoKind, per_page: int = PER_PAGE):
        self.client = client
        self.owner = owner
        self.kind = kind
        self.per_page = per_page
        self.page = 0
        self.last = 0
        self.pages_fetched = 0
        self._buffer: Deque[Repository] = deque()
        self._done = False
        self._lock = threading.Lock()

    @property
    def label(self) -> str:
        return f"{self.kind.value}/{self.owner}"

    def __iter__(self) -> "RepositoryPager":
        return self

    def __next__(self) -> Repository:
        with self._lock:
            while not self._buffer:
                if self._done or (self.page > 0 and self.page >= self.last):
                    self._done = True
                    raise StopIteration
                try:
                    self._fetch(self.page + 1)
                except Exception:
                    self._done = True
                    raise
            return self._buffer.popleft()

    def _fetch(self, page: int) -> None:
        params = {"type": "public", "per_page": self.per_page, "page": page}
        response = self.client.get(self.kind.path(self.owner), params=params)
        self.pages_fetched += 1
        self.page = page
        self.last = self._last_page(response, page)

        repos = [Repository.model_validate(item) for item in response.json()]
        self._buffer.extend(repos)
        self.client.logger.debug(
            f"Retrieved {len(repos)} repositories for {self.label} "
            f"(page {page} of {self.last})"
        )

    @staticmethod
    def _last_page(response: httpx.Response, page: int) -> int:
        """Read the last page number from the Link header."""
        last = response.links.get("last")
        if not last:
            return page
        value = httpx.URL(last["url"]).params.get("page")
        return int(value) if value and value.isdigit() else page
