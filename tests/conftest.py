"""Shared pytest fixtures for ghexport tests.

Fixture Organization:
    - Environment isolation: config singleton reset, GitHub env vars cleared,
      ghexport logger handlers restored
    - HTTP fixtures: mock httpx.Response factory for client tests
    - Client fixtures: AsyncMock GitHubClient for pipeline/service tests
"""

import logging
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from ghexport.config import reset_config
from ghexport.connectors.github.client import GitHubClient
from ghexport.connectors.github.review_threads import PullReviewThreadResolution

# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's environment and .env file."""
    for name in (
        "GITHUB_TOKEN",
        "GITHUB_API_ROOT",
        "EXPORT_CONCURRENCY",
        "EXPORT_CACHE_TTL_MS",
        "HTTP_TIMEOUT_SECONDS",
        "STATE_DIR",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "GHEXPORT_LOG_LEVEL",
        "GHEXPORT_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    reset_config()
    logger = logging.getLogger("ghexport")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    yield
    reset_config()
    logger.setLevel(saved[0])
    logger.handlers = saved[1]
    logger.propagate = saved[2]


# =============================================================================
# HTTP fixtures
# =============================================================================


def _mock_response(
    status_code: int = 200,
    json_data: Any = None,
    headers: dict[str, str] | None = None,
    text: str | None = None,
    reason_phrase: str = "OK",
) -> Mock:
    """Create a mock httpx.Response with given attributes."""
    resp = Mock(spec=httpx.Response)
    resp.status_code = status_code
    resp.reason_phrase = reason_phrase
    if json_data is None and text is not None:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = json_data if json_data is not None else {}
    resp.text = text if text is not None else ""
    resp.headers = httpx.Headers(headers or {})
    return resp


@pytest.fixture
def make_response() -> Callable[..., Mock]:
    return _mock_response


# =============================================================================
# Client fixtures
# =============================================================================


@pytest.fixture
def fake_client() -> AsyncMock:
    """GitHubClient double whose endpoints return empty-but-valid data."""
    client = AsyncMock(spec=GitHubClient)
    client.get_issue.return_value = {"number": 1, "title": "Issue", "body": "Body"}
    client.get_issue_comments.return_value = []
    client.get_pull_request.return_value = {"number": 1, "title": "PR", "body": "Body"}
    client.get_pull_files.return_value = []
    client.get_pull_commits.return_value = []
    client.get_commit.return_value = {}
    client.get_pull_reviews.return_value = []
    client.get_pull_review_comments.return_value = []
    client.get_pull_review_thread_resolution.return_value = PullReviewThreadResolution()
    client.get_actions_run.return_value = {"id": 7, "name": "CI", "status": "completed"}
    client.get_actions_run_jobs.return_value = []
    client.get_actions_job_logs.return_value = ""
    return client
