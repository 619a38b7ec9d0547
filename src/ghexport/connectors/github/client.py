"""GitHub REST/GraphQL client for exports.

Provides an async httpx-based client exposing exactly the read-only
endpoints an export needs. Implements Link header pagination restricted to
the configured API origin, rate-limit header parsing and a REST-then-GraphQL
strategy for review-thread resolution.

Every method takes an optional AbortSignal. Each HTTP call is raced against
the signal: when the signal fires first, the in-flight request is cancelled
and AbortError is raised.

Reference: https://docs.github.com/en/rest
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar
from urllib.parse import urljoin, urlsplit

import httpx

from ...__version__ import __version__
from ...cancellation import AbortError, AbortSignal, is_abort_error
from ...metrics import github_requests_total
from .errors import (
    GitHubApiError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNetworkError,
    UntrustedPaginationError,
    parse_rate_limit,
)
from .review_threads import (
    REVIEW_THREAD_RESOLUTION_QUERY,
    PullReviewThreadResolution,
    collect_graphql_thread_page,
    collect_rest_threads,
)

logger = logging.getLogger("ghexport.github.client")

__all__ = ["DEFAULT_API_ROOT", "GitHubClient"]

DEFAULT_API_ROOT = "https://api.github.com"

T = TypeVar("T")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _origin(url: str) -> tuple[str, str, Optional[int]]:
    """Return (scheme, host, port) with the default port filled in.

    Raises:
        ValueError: If the URL cannot be parsed.
    """
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    port = parts.port or _DEFAULT_PORTS.get(scheme)
    return scheme, host, port


def _format_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{(parts.netloc.rsplit('@', 1)[-1]).lower()}"


def _extract_error_message(response: httpx.Response) -> str:
    """Prefer the JSON ``message`` field, falling back to the raw body."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message.strip():
            return message

    return (response.text or "").strip()


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


class GitHubClient:
    """Read-only GitHub API client using httpx.

    Uses one long-lived httpx.AsyncClient with connection pooling. There
    are no automatic retries: a 403/429 is surfaced immediately so the
    caller can report it.

    Example:
        >>> async with GitHubClient(token="ghp_token") as client:
        ...     pr = await client.get_pull_request(owner="octocat", repo="hello", number=1)
    """

    # Timeout configuration
    CONNECT_TIMEOUT = 5.0  # seconds
    WRITE_TIMEOUT = 5.0  # seconds
    POOL_TIMEOUT = 5.0  # seconds

    # Pagination
    DEFAULT_PER_PAGE = 100

    def __init__(
        self,
        token: Optional[str] = None,
        api_root: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            token: Personal access token. Empty or None sends no Authorization header.
            api_root: API root (default: https://api.github.com)
            http_client: Pre-built httpx client (the caller keeps ownership)
            timeout: Read timeout in seconds
        """
        self.api_root = (api_root or DEFAULT_API_ROOT).rstrip("/")
        self._trusted_origin = _origin(self.api_root)
        self.trusted_origin = _format_origin(self.api_root)

        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": f"ghexport/{__version__}",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._headers = headers

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=self.CONNECT_TIMEOUT,
                read=timeout,
                write=self.WRITE_TIMEOUT,
                pool=self.POOL_TIMEOUT,
            ),
        )

    async def __aenter__(self) -> "GitHubClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit -- close httpx client."""
        await self.close()

    async def close(self) -> None:
        """Close the httpx client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    # --- Issues ---

    async def get_issue(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/issues/{number}", signal)

    async def get_issue_comments(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/issues/{number}/comments", signal)

    # --- Pull requests ---

    async def get_pull_request(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/pulls/{number}", signal)

    async def get_pull_files(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/files", signal)

    async def get_pull_commits(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/commits", signal)

    async def get_commit(
        self, *, owner: str, repo: str, sha: str, signal: Optional[AbortSignal] = None
    ) -> dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/commits/{sha}", signal)

    async def get_pull_reviews(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/reviews", signal)

    async def get_pull_review_comments(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        return await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/comments", signal)

    async def get_pull_review_thread_resolution(
        self, *, owner: str, repo: str, number: int, signal: Optional[AbortSignal] = None
    ) -> PullReviewThreadResolution:
        """Map review comment ids to their thread's resolved state.

        Tries the REST threads endpoint first and falls back to GraphQL on
        any failure other than cancellation. Cancellation in either phase
        is re-raised as is.

        Raises:
            AbortError: If the signal fires.
            GitHubClientError: If both REST and GraphQL fail.
        """
        try:
            return await self._thread_resolution_from_rest(owner, repo, number, signal)
        except Exception as rest_error:
            if is_abort_error(rest_error):
                raise
            logger.info(
                "review_threads_rest_failed",
                extra={"owner": owner, "repo": repo, "number": number, "error": str(rest_error)},
            )

            try:
                return await self._thread_resolution_from_graphql(owner, repo, number, signal)
            except Exception as graphql_error:
                if is_abort_error(graphql_error):
                    raise
                raise GitHubClientError(
                    "Failed to load review thread resolution via REST and GraphQL. "
                    f"REST: {rest_error}. GraphQL: {graphql_error}"
                ) from graphql_error

    async def _thread_resolution_from_rest(
        self, owner: str, repo: str, number: int, signal: Optional[AbortSignal]
    ) -> PullReviewThreadResolution:
        threads = await self._paginate(f"/repos/{owner}/{repo}/pulls/{number}/threads", signal)
        return collect_rest_threads(threads)

    async def _thread_resolution_from_graphql(
        self, owner: str, repo: str, number: int, signal: Optional[AbortSignal]
    ) -> PullReviewThreadResolution:
        result = PullReviewThreadResolution()
        after: Optional[str] = None

        while True:
            data = await self._graphql(
                REVIEW_THREAD_RESOLUTION_QUERY,
                {"owner": owner, "repo": repo, "number": number, "after": after},
                signal,
            )
            repository = data.get("repository") or {}
            pull_request = repository.get("pullRequest") or {}
            connection = pull_request.get("reviewThreads")
            if not isinstance(connection, dict):
                break

            collect_graphql_thread_page(connection, result)

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        return result

    # --- Actions ---

    async def get_actions_run(
        self, *, owner: str, repo: str, run_id: int, signal: Optional[AbortSignal] = None
    ) -> dict[str, Any]:
        return await self._get_json(f"/repos/{owner}/{repo}/actions/runs/{run_id}", signal)

    async def get_actions_run_jobs(
        self, *, owner: str, repo: str, run_id: int, signal: Optional[AbortSignal] = None
    ) -> list[dict[str, Any]]:
        """List the jobs of a run. Pages are shaped ``{"jobs": [...]}``."""

        def extract_jobs(data: Any) -> list[dict[str, Any]]:
            jobs = data.get("jobs") if isinstance(data, dict) else None
            return jobs if isinstance(jobs, list) else []

        return await self._paginate(
            f"/repos/{owner}/{repo}/actions/runs/{run_id}/jobs", signal, extract=extract_jobs
        )

    async def get_actions_job_logs(
        self, *, owner: str, repo: str, job_id: int, signal: Optional[AbortSignal] = None
    ) -> str:
        """Download a job's plain-text log (GitHub answers with a redirect)."""
        response = await self._request(
            "GET",
            f"{self.api_root}/repos/{owner}/{repo}/actions/jobs/{job_id}/logs",
            signal,
            follow_redirects=True,
        )
        return response.text

    # --- Transport ---

    async def _with_signal(self, awaitable: Awaitable[T], signal: Optional[AbortSignal]) -> T:
        """Await *awaitable*, abandoning it as soon as *signal* fires."""
        if signal is None:
            return await awaitable

        request_task = asyncio.ensure_future(awaitable)
        abort_task = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (request_task, abort_task):
                if not task.done():
                    task.cancel()

        if request_task in done:
            return request_task.result()
        raise AbortError()

    async def _request(
        self,
        method: str,
        url: str,
        signal: Optional[AbortSignal],
        *,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        follow_redirects: bool = False,
        check_status: bool = True,
    ) -> httpx.Response:
        """Send one request.

        Raises:
            AbortError: If the signal fires before the response arrives.
            GitHubApiError: On a non-2xx status (when check_status is set).
            GitHubNetworkError: On transport failure.
        """
        if signal is not None:
            signal.throw_if_aborted()

        request_headers = {**self._headers, **headers} if headers else self._headers
        try:
            response = await self._with_signal(
                self._client.request(
                    method,
                    url,
                    headers=request_headers,
                    json=json,
                    follow_redirects=follow_redirects,
                ),
                signal,
            )
        except httpx.TransportError as e:
            github_requests_total.labels(method=method, status="error").inc()
            logger.warning(
                "github_transport_error",
                extra={"method": method, "path": urlsplit(url).path, "error": str(e)},
            )
            raise GitHubNetworkError(f"Network error while requesting {url}: {e}", e) from e

        github_requests_total.labels(method=method, status=str(response.status_code)).inc()
        rate_limit = parse_rate_limit(response)
        logger.debug(
            "github_request",
            extra={
                "method": method,
                "path": urlsplit(url).path,
                "status": response.status_code,
                "rate_limit_remaining": rate_limit.remaining,
            },
        )

        if check_status and not _is_success(response):
            error = GitHubApiError(
                status=response.status_code,
                status_text=response.reason_phrase or "",
                message=_extract_error_message(response),
                rate_limit=rate_limit,
            )
            logger.warning(
                "github_api_error",
                extra={"status": error.status, "path": urlsplit(url).path},
            )
            raise error

        return response

    async def _get_json(self, path: str, signal: Optional[AbortSignal]) -> Any:
        response = await self._request("GET", f"{self.api_root}{path}", signal)
        return response.json()

    async def _paginate(
        self,
        path: str,
        signal: Optional[AbortSignal],
        extract: Optional[Callable[[Any], list[Any]]] = None,
    ) -> list[Any]:
        """Fetch all pages of a list endpoint by following Link headers.

        Pages whose body is not a list (after *extract*, if given)
        contribute nothing.

        Returns:
            Concatenated items of every page, in page order
        """
        items: list[Any] = []
        next_url: Optional[str] = f"{self.api_root}{path}?per_page={self.DEFAULT_PER_PAGE}"
        page = 0

        while next_url:
            response = await self._request("GET", next_url, signal)
            data = response.json()
            page_items = extract(data) if extract is not None else data
            if isinstance(page_items, list):
                items.extend(page_items)

            next_url = self._parse_next_link(response.headers.get("link"))
            page += 1
            if next_url:
                logger.debug("Paginating: page %d, %d items so far", page, len(items))

        return items

    def _parse_next_link(self, link_header: Optional[str]) -> Optional[str]:
        """Extract the trusted ``rel="next"`` URL from a Link header.

        Format: <https://api.github.com/...?page=2>; rel="next", <...>; rel="last"

        Relative URLs resolve against the API root. A next URL must share
        the API root's scheme, host and port and carry no credentials.

        Raises:
            GitHubClientError: If the next URL cannot be parsed.
            UntrustedPaginationError: If the next URL leaves the trusted origin.
        """
        if not link_header:
            return None

        for part in link_header.split(","):
            segments = [segment.strip() for segment in part.split(";")]
            if len(segments) < 2 or segments[1] != 'rel="next"':
                continue

            candidate = segments[0]
            if candidate.startswith("<") and candidate.endswith(">"):
                candidate = candidate[1:-1]

            try:
                resolved = urljoin(f"{self.api_root}/", candidate)
                parts = urlsplit(resolved)
                origin = _origin(resolved)
            except ValueError as e:
                raise GitHubClientError(
                    "GitHub API error: Invalid pagination URL in Link header."
                ) from e

            if not parts.scheme or not parts.hostname:
                raise GitHubClientError("GitHub API error: Invalid pagination URL in Link header.")

            if origin != self._trusted_origin or parts.username or parts.password:
                logger.warning(
                    "untrusted_pagination_url",
                    extra={"trusted_origin": self.trusted_origin, "url": resolved[:100]},
                )
                raise UntrustedPaginationError(self.trusted_origin)

            return resolved

        return None

    async def _graphql(
        self, query: str, variables: dict[str, Any], signal: Optional[AbortSignal]
    ) -> dict[str, Any]:
        """POST a GraphQL query and return its ``data`` object.

        Raises:
            GitHubApiError: On a non-2xx status (message joins GraphQL errors).
            GitHubGraphQLError: On a 2xx body with errors or without data.
        """
        response = await self._request(
            "POST",
            f"{self.api_root}/graphql",
            signal,
            json={"query": query, "variables": variables},
            headers={"Content-Type": "application/json"},
            check_status=False,
        )

        try:
            body = response.json()
        except ValueError:
            body = None

        errors = body.get("errors") if isinstance(body, dict) else None
        messages = (
            [e["message"] for e in errors if isinstance(e, dict) and e.get("message")]
            if isinstance(errors, list)
            else []
        )

        if not _is_success(response):
            raise GitHubApiError(
                status=response.status_code,
                status_text=response.reason_phrase or "",
                message="; ".join(messages),
                rate_limit=parse_rate_limit(response),
            )

        if isinstance(errors, list) and errors:
            raise GitHubGraphQLError("; ".join(messages) or "GraphQL query failed.")

        data = body.get("data") if isinstance(body, dict) else None
        if not data:
            raise GitHubGraphQLError("Missing GraphQL response data.")

        return data
