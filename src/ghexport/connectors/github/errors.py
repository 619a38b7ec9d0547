"""GitHub client exceptions.

Every non-2xx REST or GraphQL response becomes a GitHubApiError carrying
the HTTP status and the rate-limit headers, so callers can classify the
failure without re-reading the response.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

__all__ = [
    "GitHubApiError",
    "GitHubClientError",
    "GitHubGraphQLError",
    "GitHubNetworkError",
    "RateLimitMetadata",
    "UntrustedPaginationError",
    "parse_rate_limit",
]


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class RateLimitMetadata:
    """Rate-limit headers of one response; None when absent or non-numeric."""

    remaining: Optional[int] = None
    reset: Optional[int] = None
    retry_after: Optional[int] = None


def parse_rate_limit(response: httpx.Response) -> RateLimitMetadata:
    return RateLimitMetadata(
        remaining=_parse_int(response.headers.get("x-ratelimit-remaining")),
        reset=_parse_int(response.headers.get("x-ratelimit-reset")),
        retry_after=_parse_int(response.headers.get("retry-after")),
    )


class GitHubClientError(Exception):
    """Base class for GitHub client failures."""


class GitHubApiError(GitHubClientError):
    """Raised for a non-2xx GitHub response."""

    def __init__(
        self,
        status: int,
        status_text: str,
        message: str = "",
        rate_limit: Optional[RateLimitMetadata] = None,
    ):
        self.status = status
        self.status_text = status_text
        self.api_message = message
        self.rate_limit = rate_limit or RateLimitMetadata()
        suffix = f" - {message}" if message else ""
        super().__init__(f"GitHub API error: {status} {status_text}{suffix}")

    @property
    def message(self) -> str:
        return str(self)


class UntrustedPaginationError(GitHubClientError):
    """Raised when a Link header points outside the configured API origin."""

    def __init__(self, trusted_origin: str):
        self.trusted_origin = trusted_origin
        super().__init__(
            f"GitHub API error: Refusing pagination URL outside trusted origin ({trusted_origin})."
        )


class GitHubGraphQLError(GitHubClientError):
    """Raised for a 2xx GraphQL response that carries errors or no data."""

    def __init__(self, detail: str):
        super().__init__(f"GitHub API error: {detail}")


class GitHubNetworkError(TypeError):
    """Transport-level failure (DNS, connect, TLS, timeout).

    Subclasses TypeError so generic error mapping treats it as a network
    failure.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
