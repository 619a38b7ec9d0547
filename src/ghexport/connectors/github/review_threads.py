"""Review-thread resolution payload parsing.

The REST ``/pulls/{n}/threads`` payload has been seen with more than one
field name for the same value, so each value is read by an ordered list of
extraction strategies: the first strategy yielding the right type wins.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, TypeVar

__all__ = [
    "COMMENT_ID_STRATEGIES",
    "REVIEW_THREAD_RESOLUTION_QUERY",
    "THREAD_STATE_STRATEGIES",
    "PullReviewThreadResolution",
    "collect_graphql_thread_page",
    "collect_rest_threads",
]

T = TypeVar("T")

REVIEW_THREAD_RESOLUTION_QUERY = """
query PullReviewThreadResolution($owner: String!, $repo: String!, $number: Int!, $after: String) {
  repository(owner: $owner, name: $repo) {
    pullRequest(number: $number) {
      reviewThreads(first: 100, after: $after) {
        pageInfo {
          hasNextPage
          endCursor
        }
        nodes {
          isResolved
          comments(first: 100) {
            pageInfo {
              hasNextPage
            }
            nodes {
              databaseId
            }
          }
        }
      }
    }
  }
}
"""


@dataclass
class PullReviewThreadResolution:
    """Resolved state per review comment id.

    ``incomplete`` is set when some thread could not be fully read, so a
    comment missing from ``comment_resolution`` has unknown state.
    """

    comment_resolution: dict[int, bool] = field(default_factory=dict)
    incomplete: bool = False


def _typed_field(name: str, kind: type) -> Callable[[dict[str, Any]], Any]:
    def extract(record: dict[str, Any]) -> Any:
        value = record.get(name)
        # bool is an int subclass; never accept it as an id
        if kind is int and isinstance(value, bool):
            return None
        return value if isinstance(value, kind) else None

    return extract


THREAD_STATE_STRATEGIES: tuple[Callable[[dict[str, Any]], Optional[bool]], ...] = (
    _typed_field("resolved", bool),
    _typed_field("isResolved", bool),
)

COMMENT_ID_STRATEGIES: tuple[Callable[[dict[str, Any]], Optional[int]], ...] = (
    _typed_field("id", int),
    _typed_field("databaseId", int),
    _typed_field("database_id", int),
)


def _first_match(
    record: Any, strategies: Iterable[Callable[[dict[str, Any]], Optional[T]]]
) -> Optional[T]:
    if not isinstance(record, dict):
        return None
    for strategy in strategies:
        value = strategy(record)
        if value is not None:
            return value
    return None


def collect_rest_threads(threads: list[Any]) -> PullReviewThreadResolution:
    """Build the comment-resolution map from REST thread objects."""
    result = PullReviewThreadResolution()

    for thread in threads:
        is_resolved = _first_match(thread, THREAD_STATE_STRATEGIES)
        comments = thread.get("comments") if isinstance(thread, dict) else None
        if is_resolved is None or not isinstance(comments, list):
            result.incomplete = True
            continue

        for comment in comments:
            comment_id = _first_match(comment, COMMENT_ID_STRATEGIES)
            if comment_id is None:
                result.incomplete = True
                continue
            result.comment_resolution[comment_id] = is_resolved

    return result


def collect_graphql_thread_page(
    connection: dict[str, Any], result: PullReviewThreadResolution
) -> None:
    """Fold one ``reviewThreads`` connection page into *result*."""
    for thread in connection.get("nodes") or []:
        if not isinstance(thread, dict):
            continue
        comments = thread.get("comments")
        if not isinstance(comments, dict):
            continue

        if (comments.get("pageInfo") or {}).get("hasNextPage"):
            result.incomplete = True

        is_resolved = thread.get("isResolved") is True
        for node in comments.get("nodes") or []:
            comment_id = _first_match(node, (_typed_field("databaseId", int),))
            if comment_id is not None:
                result.comment_resolution[comment_id] = is_resolved
