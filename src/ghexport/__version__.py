"""Version information for the GitHub Markdown exporter.

Single source of truth for version number.
Follows PEP 440 and semantic versioning principles.
"""

__version__ = "1.2.0"
__version_info__ = tuple(int(part) for part in __version__.split("."))

# Version history:
# 1.2.0 - Marker range selection, resolved-thread filtering with GraphQL fallback
# 1.1.0 - Actions run export with per-job step logs
# 1.0.0 - Initial release (issue and pull request export)
