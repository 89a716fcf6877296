"""GitHub REST API branch source with rate limiting and retry logic."""

import time
import logging
import os
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Dict, Any
from urllib.parse import quote

import requests

from branch_janitor.domain.branch import BranchRecord
from branch_janitor.domain.ports import BranchSource, BranchSourceError

logger = logging.getLogger(__name__)


class GitHubAPIError(BranchSourceError):
    """Raised when a GitHub API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(GitHubAPIError):
    """Raised when GitHub API rate limit is exceeded."""
    pass


def parse_github_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp as returned by the GitHub API."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GitHubRestClient(BranchSource):
    """Branch source backed by the GitHub REST API."""

    # Authenticated requests get 5,000 calls per hour. A run costs one call per
    # listing page plus one commit lookup and at most one delete per candidate.

    DEFAULT_API_URL = "https://api.github.com"
    PER_PAGE = 100
    MAX_RETRIES = 5
    RETRY_DELAY_SECONDS = 1
    MAX_RATE_LIMIT_WAIT_SECONDS = 900
    REQUEST_TIMEOUT_SECONDS = 30

    def __init__(
        self,
        repository: str,
        token: Optional[str] = None,
        api_url: Optional[str] = None,
    ):
        """
        Initialize GitHub REST client.

        Args:
            repository: Repository in ``owner/repo`` form
            token: GitHub token. If None, uses GITHUB_TOKEN env var.
            api_url: API root. If None, uses GITHUB_API_URL or api.github.com.
        """
        if "/" not in repository:
            raise ValueError(f"Repository must be in 'owner/repo' form, got {repository!r}")
        self.owner, self.repo = repository.split("/", 1)

        if token is None:
            token = os.getenv("GITHUB_TOKEN")
        if api_url is None:
            api_url = os.getenv("GITHUB_API_URL", self.DEFAULT_API_URL)

        self.token = token
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

        # Add authorization header if token is available
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"

    def _repo_path(self, suffix: str = "") -> str:
        return f"/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}{suffix}"

    def _rate_limit_wait(self, response: requests.Response) -> Optional[int]:
        """Seconds to wait before retrying, or None if this is not a rate limit response."""
        if response.status_code not in (403, 429):
            return None
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            wait_time = self._parse_retry_after(retry_after)
            if wait_time is not None:
                return wait_time
        if response.headers.get("X-RateLimit-Remaining") == "0":
            try:
                reset_time = int(response.headers.get("X-RateLimit-Reset", 0))
            except ValueError:
                reset_time = 0
            return max(reset_time - int(time.time()), 0) + 10
        if retry_after is not None:
            # Unparseable Retry-After on a 403/429 is still a rate limit
            return self.RETRY_DELAY_SECONDS
        return None

    @staticmethod
    def _parse_retry_after(value: str) -> Optional[int]:
        """Retry-After is either delay seconds or an HTTP date."""
        try:
            return max(int(value), 0)
        except ValueError:
            pass
        try:
            retry_at = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if retry_at is None:
            return None
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=timezone.utc)
        return max(int(retry_at.timestamp() - time.time()), 0)

    def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Execute a REST call with retry logic.

        Args:
            method: HTTP method
            path: Path below the API root
            params: Query string parameters

        Returns:
            The successful response

        Raises:
            RateLimitExceeded: If rate limit is exceeded
            GitHubAPIError: If the API answers with an error or the request
                fails after retries
        """
        url = f"{self.api_url}{path}"

        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.request(
                    method,
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=self.REQUEST_TIMEOUT_SECONDS,
                )
            except requests.exceptions.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)  # Exponential backoff
                    logger.warning(f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. Retrying in {delay}s...")
                    time.sleep(delay)
                    continue
                raise GitHubAPIError(f"{method} {path} failed after {self.MAX_RETRIES} attempts: {e}") from e

            if response.ok:
                return response

            wait_time = self._rate_limit_wait(response)
            if wait_time is not None:
                if attempt < self.MAX_RETRIES - 1 and wait_time <= self.MAX_RATE_LIMIT_WAIT_SECONDS:
                    logger.warning(f"Rate limit exceeded. Waiting {wait_time} seconds...")
                    time.sleep(wait_time)
                    continue
                raise RateLimitExceeded("Rate limit exceeded", status_code=response.status_code)

            if response.status_code == 401:
                raise GitHubAPIError("Authentication failed. Check your GitHub token.", status_code=401)

            if response.status_code >= 500 and attempt < self.MAX_RETRIES - 1:
                delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)
                logger.warning(f"Server error {response.status_code} (attempt {attempt + 1}/{self.MAX_RETRIES}). Retrying in {delay}s...")
                time.sleep(delay)
                continue

            raise GitHubAPIError(
                f"{method} {path} returned {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        raise GitHubAPIError(f"{method} {path}: max retries exceeded")

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get("message", response.text)
        except ValueError:
            return response.text

    def get_default_branch_name(self) -> str:
        try:
            data = self._request("GET", self._repo_path()).json()
        except GitHubAPIError as e:
            raise GitHubAPIError(f"Failed to get default branch: {e}", status_code=e.status_code) from e
        return data["default_branch"]

    def list_all_branches(self) -> List[BranchRecord]:
        """
        Fetch every branch of the repository.

        Pages are requested until an empty page or a page shorter than
        PER_PAGE comes back.
        """
        branches: List[BranchRecord] = []
        page = 1

        while True:
            try:
                response = self._request(
                    "GET",
                    self._repo_path("/branches"),
                    params={"per_page": self.PER_PAGE, "page": page},
                )
            except GitHubAPIError as e:
                raise GitHubAPIError(f"Failed to fetch branches: {e}", status_code=e.status_code) from e

            data = response.json()
            if not data:
                break

            branches.extend(BranchRecord(name=item["name"]) for item in data)
            logger.debug(f"Fetched branch page {page} ({len(data)} branches)")

            if len(data) < self.PER_PAGE:
                break
            page += 1

        return branches

    def get_last_commit_timestamp(self, branch_name: str) -> datetime:
        try:
            data = self._request("GET", self._repo_path(f"/branches/{quote(branch_name, safe='')}")).json()
        except GitHubAPIError as e:
            raise GitHubAPIError(
                f"Failed to get last commit date for branch {branch_name}: {e}",
                status_code=e.status_code,
            ) from e

        try:
            return parse_github_timestamp(data["commit"]["commit"]["author"]["date"])
        except (KeyError, TypeError, ValueError) as e:
            raise GitHubAPIError(f"Unexpected branch payload for {branch_name}: {e}") from e

    def delete_branch(self, branch_name: str) -> bool:
        try:
            self._request("DELETE", self._repo_path(f"/git/refs/heads/{quote(branch_name, safe='/')}"))
            return True
        except GitHubAPIError as e:
            logger.error(f"Failed to delete branch {branch_name}: {e}")
            return False
