"""Single entry point that turns any export outcome into an ExportResult.

Nothing escapes ``run_export``: pipeline errors, GitHub errors, network
failures and cancellation all become ``ExportResult.failure`` with a
code from the closed taxonomy.
"""

import logging
import time
from typing import Any, Callable, Optional

from ..cancellation import AbortSignal
from ..connectors.github.client import GitHubClient
from ..metrics import export_duration_seconds, export_warnings_total, exports_total
from ..models.request import ExportErrorCode, ExportRequest, ExportResult
from .cache import TtlCache
from .errors import map_github_error
from .pipeline import run_export_pipeline

logger = logging.getLogger("ghexport.export.runner")

__all__ = ["run_export"]


async def run_export(
    request: ExportRequest,
    client: GitHubClient,
    signal: Optional[AbortSignal] = None,
    concurrency: Optional[float] = None,
    cache: Optional[TtlCache[Any]] = None,
    cache_ttl_ms: Optional[float] = None,
    auth_scope_key: Optional[str] = None,
    now: Optional[Callable[[], float]] = None,
) -> ExportResult:
    """Run one export and report success or a mapped failure.

    Returns:
        ExportResult with markdown (and maybe a warning), or a code and
        user-facing message.
    """
    kind = request.target.kind.value
    start = time.perf_counter()

    try:
        output = await run_export_pipeline(
            request,
            client,
            signal=signal,
            concurrency=concurrency,
            cache=cache,
            cache_ttl_ms=cache_ttl_ms,
            auth_scope_key=auth_scope_key,
            now=now,
        )
    except Exception as e:
        mapped = map_github_error(e)
        exports_total.labels(kind=kind, status=mapped.code.value).inc()
        log = logger.info if mapped.code is ExportErrorCode.ABORTED else logger.warning
        log(
            "export_failed",
            extra={
                "request_id": request.request_id,
                "kind": kind,
                "code": mapped.code.value,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return ExportResult.failure(mapped.code, mapped.message)
    finally:
        export_duration_seconds.labels(kind=kind).observe(time.perf_counter() - start)

    exports_total.labels(kind=kind, status="ok").inc()
    if output.warning:
        export_warnings_total.labels(kind=kind).inc()

    logger.info(
        "export_completed",
        extra={
            "request_id": request.request_id,
            "kind": kind,
            "markdown_chars": len(output.markdown),
            "has_warning": bool(output.warning),
        },
    )
    return ExportResult.success(output.markdown, output.warning)
