"""Export orchestration: planning, fetching, slicing and error mapping.

The pipeline and runner live in ``ghexport.export.pipeline`` and
``ghexport.export.runner``; they are not imported here because the
Markdown renderers depend on ``ghexport.export.timeline``.
"""

from .cache import TtlCache, create_cache_key, read_through_cache
from .errors import ExportPipelineError, InvalidSelectionError, MappedExportError, map_github_error
from .executor import DEFAULT_CONCURRENCY, execute_tasks, normalize_concurrency

__all__ = [
    "DEFAULT_CONCURRENCY",
    "ExportPipelineError",
    "InvalidSelectionError",
    "MappedExportError",
    "TtlCache",
    "create_cache_key",
    "execute_tasks",
    "map_github_error",
    "normalize_concurrency",
    "read_through_cache",
]
