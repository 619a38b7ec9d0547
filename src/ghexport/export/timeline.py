"""Merge pull request activity into one chronological timeline."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

__all__ = ["EventType", "TimelineEvent", "build_timeline_events", "parse_timestamp"]


class EventType(str, Enum):
    COMMIT = "commit"
    ISSUE_COMMENT = "issue-comment"
    REVIEW_COMMENT = "review-comment"
    REVIEW = "review"


@dataclass(frozen=True)
class TimelineEvent:
    """One timeline entry wrapping the original GitHub payload.

    ``id`` is None for commits, which are never selection markers.
    """

    type: EventType
    date: Optional[str]
    payload: dict[str, Any]
    id: Optional[int] = None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp; naive values are taken as UTC."""
    if not isinstance(value, str) or not value:
        return None
    text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _commit_date(commit: dict[str, Any]) -> Optional[str]:
    detail = commit.get("commit") or {}
    author = detail.get("author") or {}
    committer = detail.get("committer") or {}
    return author.get("date") or committer.get("date")


def _sort_key(event: TimelineEvent) -> tuple[int, float]:
    parsed = parse_timestamp(event.date)
    # undated events go last, keeping their relative order
    if parsed is None:
        return (1, 0.0)
    return (0, parsed.timestamp())


def build_timeline_events(
    commits: Optional[list[dict[str, Any]]] = None,
    issue_comments: Optional[list[dict[str, Any]]] = None,
    review_comments: Optional[list[dict[str, Any]]] = None,
    reviews: Optional[list[dict[str, Any]]] = None,
) -> list[TimelineEvent]:
    """Build the merged timeline of every collection given.

    Commit dates prefer the author date over the committer date; review
    dates prefer ``submitted_at`` over ``created_at``. The sort is stable,
    so events with equal timestamps keep their input order (commits, then
    issue comments, then review comments, then reviews).
    """
    events: list[TimelineEvent] = []

    for commit in commits or []:
        events.append(TimelineEvent(EventType.COMMIT, _commit_date(commit), commit))

    for comment in issue_comments or []:
        events.append(
            TimelineEvent(
                EventType.ISSUE_COMMENT, comment.get("created_at"), comment, comment.get("id")
            )
        )

    for comment in review_comments or []:
        events.append(
            TimelineEvent(
                EventType.REVIEW_COMMENT, comment.get("created_at"), comment, comment.get("id")
            )
        )

    for review in reviews or []:
        events.append(
            TimelineEvent(
                EventType.REVIEW,
                review.get("submitted_at") or review.get("created_at"),
                review,
                review.get("id"),
            )
        )

    return sorted(events, key=_sort_key)
