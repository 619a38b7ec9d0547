"""Render an issue and its comments as Markdown."""

from typing import Any, Optional

from .format import format_date, format_user, text_or_placeholder

__all__ = ["issue_to_markdown"]


def _metadata(issue: dict[str, Any]) -> list[str]:
    lines = [
        f"- URL: {issue.get('html_url', '')}",
        f"- State: {issue.get('state', 'unknown')}",
        f"- Author: {format_user(issue.get('user'))}",
        f"- Created: {format_date(issue.get('created_at'))}",
        f"- Updated: {format_date(issue.get('updated_at'))}",
    ]
    if issue.get("closed_at"):
        lines.append(f"- Closed: {format_date(issue['closed_at'])}")

    labels = ", ".join(l["name"] for l in issue.get("labels") or [] if l.get("name"))
    if labels:
        lines.append(f"- Labels: {labels}")
    assignees = ", ".join(format_user(a) for a in issue.get("assignees") or [])
    if assignees:
        lines.append(f"- Assignees: {assignees}")
    milestone = (issue.get("milestone") or {}).get("title")
    if milestone:
        lines.append(f"- Milestone: {milestone}")
    return lines


def issue_to_markdown(
    issue: dict[str, Any],
    comments: Optional[list[dict[str, Any]]] = None,
    historical_mode: bool = True,
) -> str:
    """Compose an issue export.

    Args:
        issue: GitHub Issues API response dict
        comments: Issue comments, in API (oldest-first) order
        historical_mode: Render comments in the given order; when False
            they are rendered newest-first (reverse of the given order)

    Returns:
        Markdown document
    """
    comments = list(comments or [])
    if not historical_mode:
        comments.reverse()

    parts = [f"# Issue: {issue.get('title', 'Untitled')}", "", *_metadata(issue)]
    parts += ["", "## Description", "", text_or_placeholder(issue.get("body"))]
    parts += ["", f"## Comments ({len(comments)})"]

    if not comments:
        parts += ["", "_No comments._"]

    for comment in comments:
        parts += [
            "",
            f"### {format_user(comment.get('user'))} - {format_date(comment.get('created_at'))}",
            "",
            text_or_placeholder(comment.get("body"), "_No content._"),
        ]

    return "\n".join(parts) + "\n"
