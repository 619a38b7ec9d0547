"""Range slicing by start/end markers.

Both slicers share one algorithm: locate each marker by exact match
(a missing start means the first item, a missing end the last), swap the
bounds with a warning when they are reversed, and return the inclusive
slice. A marker that cannot be found is an error, never an empty result.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar

from ..models.target import Marker, MarkerRange, MarkerType
from .errors import InvalidSelectionError
from .timeline import TimelineEvent

__all__ = [
    "SWAPPED_WARNING",
    "SliceResult",
    "slice_issue_comments",
    "slice_pull_timeline",
]

T = TypeVar("T")

SWAPPED_WARNING = "Markers were reversed, so the export range was swapped."


@dataclass(frozen=True)
class SliceResult(Generic[T]):
    items: list[T]
    warning: Optional[str] = None


def _find_index(items: Sequence[T], marker: Marker, matches: Callable[[T, Marker], bool]) -> int:
    for index, item in enumerate(items):
        if matches(item, marker):
            return index
    return -1


def _slice(
    items: Sequence[T],
    marker_range: MarkerRange,
    matches: Callable[[T, Marker], bool],
    missing_error: str,
) -> SliceResult[T]:
    start = _find_index(items, marker_range.start, matches) if marker_range.start else 0
    end = _find_index(items, marker_range.end, matches) if marker_range.end else len(items) - 1
    if start == -1 or end == -1:
        raise InvalidSelectionError(missing_error)

    warning = None
    if start > end:
        start, end = end, start
        warning = SWAPPED_WARNING

    return SliceResult(list(items[start : end + 1]), warning)


def _event_matches(event: TimelineEvent, marker: Marker) -> bool:
    return event.id is not None and event.type.value == marker.type.value and event.id == marker.id


def slice_pull_timeline(
    events: Sequence[TimelineEvent], marker_range: Optional[MarkerRange] = None
) -> SliceResult[TimelineEvent]:
    """Select the inclusive timeline range between two markers.

    Raises:
        InvalidSelectionError: If the timeline is empty or a marker is missing.
    """
    if marker_range is None or marker_range.is_empty:
        return SliceResult(list(events))
    if not events:
        raise InvalidSelectionError("No timeline events were found for this PR.")

    return _slice(
        events,
        marker_range,
        _event_matches,
        "Selected marker could not be found in the PR timeline.",
    )


def _comment_matches(comment: dict[str, Any], marker: Marker) -> bool:
    return comment.get("id") == marker.id


def slice_issue_comments(
    comments: Sequence[dict[str, Any]], marker_range: Optional[MarkerRange] = None
) -> SliceResult[dict[str, Any]]:
    """Select the inclusive comment range between two issue-comment markers.

    Issue pages have a single comment stream, so markers of any other
    type are rejected.

    Raises:
        InvalidSelectionError: If there are no comments, a marker has the
            wrong type or a marker is missing.
    """
    if marker_range is None or marker_range.is_empty:
        return SliceResult(list(comments))
    if not comments:
        raise InvalidSelectionError("No issue comments were found for this issue.")

    if marker_range.start and marker_range.start.type is not MarkerType.ISSUE_COMMENT:
        raise InvalidSelectionError("Start marker must be an issue comment.")
    if marker_range.end and marker_range.end.type is not MarkerType.ISSUE_COMMENT:
        raise InvalidSelectionError("End marker must be an issue comment.")

    return _slice(
        comments,
        marker_range,
        _comment_matches,
        "Selected marker could not be found in the issue comments.",
    )
