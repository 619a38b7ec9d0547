"""Render a pull request export as Markdown.

Sections appear only when their include flag is on. In timeline mode all
conversation items share one chronological ``## Timeline`` section;
otherwise each collection gets its own section. ``## Files`` always comes
last.
"""

from typing import Any, Optional

from ..export.timeline import EventType, TimelineEvent, build_timeline_events
from ..models.invariants import enforce_pull_invariants
from ..models.profile import PullExportOptions
from .format import fenced, format_date, format_user, text_or_placeholder

__all__ = ["pr_to_markdown"]


def _metadata(pr: dict[str, Any]) -> list[str]:
    state = "merged" if pr.get("merged") or pr.get("merged_at") else pr.get("state", "unknown")
    base = (pr.get("base") or {}).get("ref", "unknown")
    head = (pr.get("head") or {}).get("ref", "unknown")

    lines = [
        f"- URL: {pr.get('html_url', '')}",
        f"- State: {state}",
        f"- Author: {format_user(pr.get('user'))}",
        f"- Branch: {base} <- {head}",
        f"- Created: {format_date(pr.get('created_at'))}",
        f"- Updated: {format_date(pr.get('updated_at'))}",
    ]
    if pr.get("merged_at"):
        lines.append(f"- Merged: {format_date(pr['merged_at'])}")
    elif pr.get("closed_at"):
        lines.append(f"- Closed: {format_date(pr['closed_at'])}")

    if pr.get("changed_files") is not None:
        lines.append(
            f"- Changes: {pr.get('changed_files', 0)} file(s), "
            f"+{pr.get('additions', 0)} -{pr.get('deletions', 0)}"
        )
    labels = ", ".join(l["name"] for l in pr.get("labels") or [] if l.get("name"))
    if labels:
        lines.append(f"- Labels: {labels}")
    return lines


def _commit_lines(commit: dict[str, Any], include_diffs: bool) -> list[str]:
    detail = commit.get("commit") or {}
    author = commit.get("author")
    if not author and (detail.get("author") or {}).get("name"):
        author_text = detail["author"]["name"]
    else:
        author_text = format_user(author)
    date = (detail.get("author") or {}).get("date") or (detail.get("committer") or {}).get("date")
    sha = (commit.get("sha") or "")[:7] or "unknown"

    lines = [
        f"### Commit `{sha}` by {author_text} - {format_date(date)}",
        "",
        text_or_placeholder(detail.get("message"), "_No message._"),
    ]

    if include_diffs:
        for file_entry in commit.get("files") or []:
            lines += ["", f"#### {file_entry.get('filename', 'unknown')}"]
            if file_entry.get("patch"):
                lines += ["", fenced(file_entry["patch"], "diff")]
    return lines


def _issue_comment_lines(comment: dict[str, Any]) -> list[str]:
    return [
        f"### Comment by {format_user(comment.get('user'))} - {format_date(comment.get('created_at'))}",
        "",
        text_or_placeholder(comment.get("body"), "_No content._"),
    ]


def _review_comment_lines(comment: dict[str, Any]) -> list[str]:
    location = comment.get("path") or ""
    if location and comment.get("line") is not None:
        location = f"{location}:{comment['line']}"
    where = f" on `{location}`" if location else ""

    lines = [
        f"### Review comment by {format_user(comment.get('user'))}{where}"
        f" - {format_date(comment.get('created_at'))}",
    ]
    if comment.get("diff_hunk"):
        lines += ["", fenced(comment["diff_hunk"], "diff")]
    lines += ["", text_or_placeholder(comment.get("body"), "_No content._")]
    return lines


def _review_lines(review: dict[str, Any]) -> list[str]:
    state = review.get("state") or "COMMENTED"
    date = review.get("submitted_at") or review.get("created_at")
    return [
        f"### Review by {format_user(review.get('user'))} ({state}) - {format_date(date)}",
        "",
        text_or_placeholder(review.get("body"), "_No summary._"),
    ]


def _event_lines(event: TimelineEvent, include_commit_diffs: bool) -> list[str]:
    if event.type is EventType.COMMIT:
        return _commit_lines(event.payload, include_commit_diffs)
    if event.type is EventType.ISSUE_COMMENT:
        return _issue_comment_lines(event.payload)
    if event.type is EventType.REVIEW_COMMENT:
        return _review_comment_lines(event.payload)
    return _review_lines(event.payload)


def _section(title: str, blocks: list[list[str]]) -> list[str]:
    lines = ["", f"## {title} ({len(blocks)})"]
    if not blocks:
        lines += ["", "_None._"]
    for block in blocks:
        lines += ["", *block]
    return lines


def _file_lines(file_entry: dict[str, Any]) -> list[str]:
    lines = [
        f"### {file_entry.get('filename', 'unknown')} "
        f"({file_entry.get('status', 'modified')}, "
        f"+{file_entry.get('additions', 0)} -{file_entry.get('deletions', 0)})"
    ]
    if file_entry.get("patch"):
        lines += ["", fenced(file_entry["patch"], "diff")]
    return lines


def pr_to_markdown(
    pr: dict[str, Any],
    options: PullExportOptions,
    commits: Optional[list[dict[str, Any]]] = None,
    files: Optional[list[dict[str, Any]]] = None,
    issue_comments: Optional[list[dict[str, Any]]] = None,
    review_comments: Optional[list[dict[str, Any]]] = None,
    reviews: Optional[list[dict[str, Any]]] = None,
) -> str:
    """Compose a pull request export.

    Args:
        pr: GitHub Pulls API response dict
        options: Export options (invariants are re-applied here)
        commits: Commits, with ``files`` when commit diffs were fetched
        files: PR-level changed files
        issue_comments: Conversation comments
        review_comments: Inline review comments
        reviews: Review submissions

    Returns:
        Markdown document
    """
    options = enforce_pull_invariants(options)

    parts = [f"# Pull Request: {pr.get('title', 'Untitled')}", "", *_metadata(pr)]
    parts += ["", "## Description", "", text_or_placeholder(pr.get("body"))]

    wants_conversation = (
        options.include_commits
        or options.include_issue_comments
        or options.include_review_comments
        or options.include_reviews
    )

    if options.timeline_mode and wants_conversation:
        events = build_timeline_events(
            commits=commits if options.include_commits else None,
            issue_comments=issue_comments if options.include_issue_comments else None,
            review_comments=review_comments if options.include_review_comments else None,
            reviews=reviews if options.include_reviews else None,
        )
        parts += _section(
            "Timeline", [_event_lines(event, options.include_commit_diffs) for event in events]
        )
    else:
        if options.include_commits:
            parts += _section(
                "Commits",
                [_commit_lines(c, options.include_commit_diffs) for c in commits or []],
            )
        if options.include_issue_comments:
            parts += _section(
                "Issue Comments", [_issue_comment_lines(c) for c in issue_comments or []]
            )
        if options.include_review_comments:
            parts += _section(
                "Review Comments", [_review_comment_lines(c) for c in review_comments or []]
            )
        if options.include_reviews:
            parts += _section("Reviews", [_review_lines(r) for r in reviews or []])

    if options.include_file_diffs:
        parts += _section("Files", [_file_lines(f) for f in files or []])

    return "\n".join(parts) + "\n"
