"""GitHub REST API client for repository search and per-repository resources."""

import asyncio
import base64
import binascii
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

import httpx

from gasingest import __version__
from gasingest.config import DEFAULT_GAS_TAGS, IngestSettings, SearchConfig, SearchSort
from gasingest.exceptions import (
    GitHubApiError,
    InvalidRepositoryUrlError,
    QueryRejectedError,
    RateLimitError,
)
from gasingest.logging import get_logger
from gasingest.models.repository import RepositoryRef
from gasingest.models.result import TagSearchResult


MAX_QUERY_TAGS = 5
MAX_PER_PAGE = 100
# GitHub search never returns more than 1000 results per query
MAX_SEARCH_RESULTS = 1000
FALLBACK_TAG = DEFAULT_GAS_TAGS[0]
MAX_RETRY_DELAY_SECONDS = 60.0


def parse_github_url(url: str) -> tuple[str, str]:
    """
    Parse owner and repository name from a github.com URL.

    Raises:
        InvalidRepositoryUrlError: If the host is not github.com or the path
            has fewer than two segments
    """
    parsed = urlparse((url or "").strip())
    if parsed.hostname not in ("github.com", "www.github.com"):
        raise InvalidRepositoryUrlError(f"Invalid GitHub URL: {url}")
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise InvalidRepositoryUrlError(f"Invalid GitHub repository path: {url}")
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    return owner, repo


def build_search_query(tags: list[str]) -> str:
    """OR-combine up to MAX_QUERY_TAGS tags into one topic search query."""
    cleaned = [tag.strip() for tag in tags if tag and tag.strip()][:MAX_QUERY_TAGS]
    if not cleaned:
        cleaned = [FALLBACK_TAG]
    return f"{' OR '.join(cleaned)} in:topics"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class GitHubClient:
    """
    Async GitHub API client.

    Example:
        async with GitHubClient(settings) as client:
            repo = await client.fetch_repository_info("owner", "repo")
    """

    def __init__(
        self,
        settings: IngestSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the client.

        Args:
            settings: IngestSettings instance, uses defaults if None
            http_client: Preconfigured httpx client, the caller keeps ownership
        """
        self.settings = settings or IngestSettings()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.settings.github_api_base,
            headers=self._headers(),
            timeout=httpx.Timeout(self.settings.http_timeout_seconds),
        )
        self._log = get_logger("github")

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"gasingest/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    def _retry_delay(self, attempt: int, response: httpx.Response | None = None) -> float:
        """Seconds to wait before retry number attempt + 1."""
        if response is not None:
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                return min(float(retry_after), MAX_RETRY_DELAY_SECONDS)
        delay = self.settings.retry_backoff_base_ms / 1000 * (2 ** attempt)
        return min(delay, MAX_RETRY_DELAY_SECONDS)

    def _can_retry(self, attempt: int) -> bool:
        return self.settings.retry_enabled and attempt < self.settings.max_retries

    async def _request(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET path, retrying transport errors, 429 and 5xx responses."""
        attempt = 0
        while True:
            try:
                response = await self._client.get(path, params=params)
            except httpx.TransportError as e:
                if not self._can_retry(attempt):
                    raise GitHubApiError(f"Request to {path} failed: {e}") from e
                delay = self._retry_delay(attempt)
                self._log.warning("request_retry", path=path, attempt=attempt + 1, error=str(e))
            except httpx.HTTPError as e:
                # Redirect loops and decoding failures, no retry
                raise GitHubApiError(f"Request to {path} failed: {e}") from e
            else:
                retryable = response.status_code == 429 or response.status_code >= 500
                if not retryable or not self._can_retry(attempt):
                    return response
                delay = self._retry_delay(attempt, response)
                self._log.warning(
                    "request_retry",
                    path=path,
                    attempt=attempt + 1,
                    status_code=response.status_code,
                )
            await asyncio.sleep(delay)
            attempt += 1

    @staticmethod
    def _raise_for_status(response: httpx.Response, path: str) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        try:
            detail = response.json().get("message", "")
        except ValueError:
            detail = response.text[:200]
        message = f"GitHub API error {status} for {path}: {detail}".rstrip(": ")
        if status == 422:
            raise QueryRejectedError(message, status_code=status)
        if status in (403, 429):
            raise RateLimitError(message, status_code=status)
        raise GitHubApiError(message, status_code=status)

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._request(path, params)
        self._raise_for_status(response, path)
        try:
            return response.json()
        except ValueError as e:
            raise GitHubApiError(
                f"Invalid JSON from {path}: {e}", status_code=response.status_code
            ) from e

    async def fetch_repository_info(self, owner: str, repo: str) -> RepositoryRef:
        """
        Fetch repository metadata.

        Raises:
            GitHubApiError: On any non-2xx response
        """
        payload = await self._get_json(f"/repos/{owner}/{repo}")
        return RepositoryRef.from_api(payload)

    async def fetch_readme(self, owner: str, repo: str) -> str | None:
        """Fetch and decode the README, None if missing or undecodable."""
        path = f"/repos/{owner}/{repo}/readme"
        try:
            response = await self._request(path)
        except GitHubApiError as e:
            self._log.warning("readme_fetch_failed", repository=f"{owner}/{repo}", error=str(e))
            return None
        if not response.is_success:
            return None

        try:
            payload = response.json()
            content = payload.get("content") or ""
            if payload.get("encoding", "base64") != "base64":
                return content
            return base64.b64decode(content.replace("\n", "")).decode("utf-8")
        except (ValueError, binascii.Error, UnicodeDecodeError, AttributeError):
            self._log.warning("readme_decode_failed", repository=f"{owner}/{repo}")
            return None

    async def fetch_last_commit_date(self, owner: str, repo: str) -> datetime | None:
        """Committer date of the latest commit on the default branch."""
        path = f"/repos/{owner}/{repo}/commits"
        try:
            commits = await self._get_json(path, {"per_page": 1})
        except GitHubApiError as e:
            self._log.warning("commit_fetch_failed", repository=f"{owner}/{repo}", error=str(e))
            return None
        if not isinstance(commits, list) or not commits:
            return None
        try:
            return _parse_timestamp(commits[0]["commit"]["committer"]["date"])
        except (KeyError, TypeError):
            return None

    async def _search_page(
        self,
        query: str,
        page: int,
        per_page: int,
        sort: SearchSort,
    ) -> tuple[list[RepositoryRef], int]:
        payload = await self._get_json(
            "/search/repositories",
            {
                "q": query,
                "sort": sort.value,
                "order": sort.order,
                "per_page": per_page,
                "page": page,
            },
        )
        if not isinstance(payload, dict):
            raise GitHubApiError(f"Unexpected search payload on page {page}: {type(payload).__name__}")
        try:
            items = [RepositoryRef.from_api(item) for item in payload.get("items") or []]
            total_count = int(payload.get("total_count") or 0)
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            raise GitHubApiError(f"Malformed search item on page {page}: {e!r}") from e
        return items, total_count

    async def _collect_range(
        self,
        query: str,
        start_page: int,
        end_page: int,
        per_page: int,
        sort: SearchSort,
        delay_ms: int,
    ) -> TagSearchResult:
        repositories: list[RepositoryRef] = []
        total_found = 0
        for page in range(start_page, end_page + 1):
            items, total_count = await self._search_page(query, page, per_page, sort)
            if page == start_page:
                total_found = total_count
            if not items:
                break
            repositories.extend(items)
            if page < end_page and delay_ms > 0:
                await asyncio.sleep(delay_ms / 1000)
        return TagSearchResult(
            success=True,
            repositories=repositories,
            total_found=total_found,
            processed_count=len(repositories),
        )

    async def search_by_page_range(
        self,
        config: SearchConfig,
        start_page: int,
        end_page: int,
        per_page: int,
        sort: SearchSort | None = None,
    ) -> TagSearchResult:
        """
        Search one request per page over [start_page, end_page].

        Stops at the first empty page. Never raises for upstream errors.
        """
        sort = sort or SearchSort.UPDATED
        per_page = max(1, min(per_page, MAX_PER_PAGE))
        query = build_search_query(config.tag_list)
        try:
            try:
                return await self._collect_range(
                    query, start_page, end_page, per_page, sort, config.page_delay_ms
                )
            except QueryRejectedError as e:
                fallback = build_search_query([FALLBACK_TAG])
                self._log.warning("search_query_rejected", query=query, fallback=fallback, error=str(e))
                return await self._collect_range(
                    fallback, start_page, end_page, per_page, sort, config.page_delay_ms
                )
        except (GitHubApiError, ValueError) as e:
            self._log.error("search_failed", query=query, start_page=start_page, error=str(e))
            return TagSearchResult(success=False, error=str(e))

    async def search_by_tags(
        self,
        config: SearchConfig,
        max_results: int = 10,
        sort: SearchSort | None = None,
    ) -> TagSearchResult:
        """Paginate until max_results repositories are collected or results run out."""
        max_results = max(1, min(max_results, MAX_SEARCH_RESULTS))
        per_page = min(max_results, MAX_PER_PAGE)
        end_page = -(-max_results // per_page)
        result = await self.search_by_page_range(config, 1, end_page, per_page, sort)
        if not result.success:
            return result
        repositories = result.repositories[:max_results]
        return TagSearchResult(
            success=True,
            repositories=repositories,
            total_found=result.total_found,
            processed_count=len(repositories),
        )
