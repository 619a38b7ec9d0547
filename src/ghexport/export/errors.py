"""Export error taxonomy and the mapping from raised exceptions to it.

``map_github_error`` is the single place where an exception becomes a
user-facing ``(code, message)`` pair. Rules are checked in order and the
first match wins.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from ..cancellation import is_abort_error
from ..connectors.github.errors import GitHubApiError, GitHubNetworkError
from ..models.request import ExportErrorCode

logger = logging.getLogger("ghexport.export.errors")

__all__ = [
    "ABORTED_MESSAGE",
    "ExportErrorCode",
    "ExportPipelineError",
    "InvalidSelectionError",
    "MappedExportError",
    "map_github_error",
]

ABORTED_MESSAGE = "Export was canceled."
UNAUTHORIZED_MESSAGE = "GitHub token is invalid or missing required permissions."
NOT_FOUND_MESSAGE = "Requested GitHub resource was not found."
NETWORK_MESSAGE = "Network error while contacting GitHub API."
UNEXPECTED_MESSAGE = "Unexpected export error."

# Lower-cased fragments of TypeError messages raised by HTTP stacks when a
# request never produced a response.
_NETWORK_MESSAGE_HINTS = (
    "fetch failed",
    "failed to fetch",
    "networkerror",
    "network error",
    "load failed",
    "connection",
)


class ExportPipelineError(Exception):
    """Raised by the pipeline for a request it cannot serve as asked."""

    def __init__(self, code: ExportErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


class InvalidSelectionError(ExportPipelineError):
    """Raised when a marker range cannot be applied to the fetched items."""

    def __init__(self, message: str):
        super().__init__(ExportErrorCode.INVALID_SELECTION, message)


@dataclass(frozen=True)
class MappedExportError:
    code: ExportErrorCode
    message: str


def _format_reset(reset: int) -> str:
    reset_at = datetime.fromtimestamp(reset, tz=timezone.utc)
    return reset_at.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _rate_limit_message(error: GitHubApiError) -> str:
    retry_after = error.rate_limit.retry_after
    if retry_after is not None and retry_after > 0:
        return f"GitHub rate limit reached. Retry after {retry_after} second(s)."

    reset = error.rate_limit.reset
    if reset is not None and reset > 0:
        return f"GitHub rate limit reached. Reset at {_format_reset(reset)}."

    return "GitHub rate limit reached. Add a token in Options to increase rate limits."


def _is_network_error(error: BaseException) -> bool:
    """Best-effort guess that *error* came from the transport layer.

    Transport errors we raise ourselves are certain. A bare TypeError is
    only counted when its message reads like a failed fetch.
    """
    if isinstance(error, (GitHubNetworkError, httpx.TransportError)):
        return True
    if isinstance(error, TypeError):
        text = str(error).lower()
        return any(hint in text for hint in _NETWORK_MESSAGE_HINTS)
    return False


def map_github_error(error: object) -> MappedExportError:
    """Classify *error* into the closed export error taxonomy."""
    if isinstance(error, ExportPipelineError):
        return MappedExportError(error.code, error.message)

    if is_abort_error(error):
        return MappedExportError(ExportErrorCode.ABORTED, ABORTED_MESSAGE)

    if isinstance(error, GitHubApiError):
        if error.status == 401:
            return MappedExportError(ExportErrorCode.UNAUTHORIZED, UNAUTHORIZED_MESSAGE)
        if error.status == 404:
            return MappedExportError(ExportErrorCode.NOT_FOUND, NOT_FOUND_MESSAGE)

        exhausted = error.rate_limit.remaining == 0 or (error.rate_limit.retry_after or 0) > 0
        if error.status == 429 or (error.status == 403 and exhausted):
            return MappedExportError(ExportErrorCode.RATE_LIMITED, _rate_limit_message(error))

        return MappedExportError(ExportErrorCode.UNKNOWN, error.message)

    if isinstance(error, BaseException) and _is_network_error(error):
        return MappedExportError(ExportErrorCode.NETWORK, NETWORK_MESSAGE)

    if isinstance(error, Exception):
        message = str(error)
        if message:
            return MappedExportError(ExportErrorCode.UNKNOWN, message)

    logger.debug("unmapped_export_error", extra={"error_type": type(error).__name__})
    return MappedExportError(ExportErrorCode.UNKNOWN, UNEXPECTED_MESSAGE)
