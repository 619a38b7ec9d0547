"""GitHub connector: REST/GraphQL client, errors and URL parsing."""

from .client import DEFAULT_API_ROOT, GitHubClient
from .errors import (
    GitHubApiError,
    GitHubClientError,
    GitHubGraphQLError,
    GitHubNetworkError,
    RateLimitMetadata,
    UntrustedPaginationError,
)
from .parsing import marker_from_anchor, parse_target, parse_target_url
from .review_threads import PullReviewThreadResolution

__all__ = [
    "DEFAULT_API_ROOT",
    "GitHubApiError",
    "GitHubClient",
    "GitHubClientError",
    "GitHubGraphQLError",
    "GitHubNetworkError",
    "PullReviewThreadResolution",
    "RateLimitMetadata",
    "UntrustedPaginationError",
    "marker_from_anchor",
    "parse_target",
    "parse_target_url",
]
