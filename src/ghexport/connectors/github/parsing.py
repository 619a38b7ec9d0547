"""Parse GitHub page URLs and comment anchors into targets and markers."""

import re
from typing import Optional
from urllib.parse import urlsplit

from ...models.target import (
    ActionsRunTarget,
    IssueTarget,
    Marker,
    MarkerType,
    PullTarget,
    Target,
)

__all__ = ["marker_from_anchor", "parse_target", "parse_target_url"]

_OWNER_REPO = r"([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)"
_ISSUE_PATH = re.compile(rf"^/{_OWNER_REPO}/issues/(\d+)", re.IGNORECASE)
_PULL_PATH = re.compile(rf"^/{_OWNER_REPO}/pull/(\d+)", re.IGNORECASE)
_ACTIONS_RUN_PATH = re.compile(rf"^/{_OWNER_REPO}/actions/runs/(\d+)", re.IGNORECASE)

_ANCHORS = (
    (re.compile(r"issuecomment-(\d+)", re.IGNORECASE), MarkerType.ISSUE_COMMENT),
    (re.compile(r"discussion_r(\d+)", re.IGNORECASE), MarkerType.REVIEW_COMMENT),
    (re.compile(r"pullrequestreview-(\d+)", re.IGNORECASE), MarkerType.REVIEW),
)


def parse_target(pathname: str) -> Optional[Target]:
    """Parse a github.com path such as ``/octocat/hello/pull/12``.

    Trailing segments (``/files``, ``/attempts/3``) are ignored.
    Returns None for paths that are not exportable pages.
    """
    match = _ISSUE_PATH.match(pathname)
    if match:
        owner, repo, number = match.groups()
        return IssueTarget(owner=owner, repo=repo, number=int(number))

    match = _PULL_PATH.match(pathname)
    if match:
        owner, repo, number = match.groups()
        return PullTarget(owner=owner, repo=repo, number=int(number))

    match = _ACTIONS_RUN_PATH.match(pathname)
    if match:
        owner, repo, run_id = match.groups()
        return ActionsRunTarget(owner=owner, repo=repo, run_id=int(run_id))

    return None


def parse_target_url(url: str) -> Optional[Target]:
    """Parse a full page URL; a bare path is accepted too."""
    return parse_target(urlsplit(url.strip()).path or "/")


def marker_from_anchor(anchor: str) -> Optional[Marker]:
    """Map a comment anchor (``#issuecomment-123``) to a Marker."""
    for pattern, marker_type in _ANCHORS:
        match = pattern.search(anchor)
        if match:
            return Marker(type=marker_type, id=int(match.group(1)))
    return None
