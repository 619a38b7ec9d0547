"""
Prometheus metrics definitions for the exporter.

Defines Counter and Histogram metrics for monitoring export outcomes,
per-kind latency, partial-failure warnings and GitHub API traffic.

Naming conventions: snake_case, ghexport_ prefix.
"""

from prometheus_client import Counter, Histogram

# ==============================================================================
# COUNTERS - Monotonically increasing values
# ==============================================================================

exports_total = Counter(
    "ghexport_exports_total",
    "Total export requests by target kind and outcome",
    ["kind", "status"],
    # kind: pull, issue, actionsRun
    # status: ok, or an error code (aborted, rateLimited, notFound, ...)
)

export_warnings_total = Counter(
    "ghexport_export_warnings_total",
    "Successful exports that carried a degradation warning",
    ["kind"],
)

github_requests_total = Counter(
    "ghexport_github_requests_total",
    "GitHub API requests by HTTP method and response status",
    ["method", "status"],
    # status: HTTP status code as string, or "error" for transport failures
)

# ==============================================================================
# HISTOGRAMS - Distribution of values
# ==============================================================================

export_duration_seconds = Histogram(
    "ghexport_export_duration_seconds",
    "Wall-clock duration of one export request",
    ["kind"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
)
