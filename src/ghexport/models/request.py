"""Export request and result types."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .profile import ExportProfile
from .selection import Selection
from .target import Target

__all__ = ["ExportErrorCode", "ExportRequest", "ExportResult"]


class ExportErrorCode(str, Enum):
    """Closed set of failure codes an export can report."""

    ABORTED = "aborted"
    RATE_LIMITED = "rateLimited"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "notFound"
    NETWORK = "network"
    INVALID_SELECTION = "invalidSelection"
    INVALID_REQUEST = "invalidRequest"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExportRequest:
    """One export job.

    ``request_id`` is supplied by the caller and only used to correlate
    cancellation; the pipeline itself never reads it.
    """

    request_id: str
    target: Target
    selection: Optional[Selection] = None
    profile: Optional[ExportProfile] = None


@dataclass(frozen=True)
class ExportResult:
    """Either markdown (``ok=True``) or a coded failure, never both."""

    ok: bool
    markdown: Optional[str] = None
    warning: Optional[str] = None
    code: Optional[ExportErrorCode] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, markdown: str, warning: Optional[str] = None) -> "ExportResult":
        return cls(ok=True, markdown=markdown, warning=warning or None)

    @classmethod
    def failure(cls, code: ExportErrorCode, message: str) -> "ExportResult":
        return cls(ok=False, code=code, message=message)

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            result: dict[str, Any] = {"ok": True, "markdown": self.markdown}
            if self.warning:
                result["warning"] = self.warning
            return result
        return {
            "ok": False,
            "code": self.code.value if self.code else ExportErrorCode.UNKNOWN.value,
            "message": self.message,
        }
