"""Small formatting helpers shared by the Markdown renderers."""

import re
from datetime import timezone
from typing import Any, Optional

from ..export.timeline import parse_timestamp

__all__ = ["fenced", "format_date", "format_user", "pluralize", "text_or_placeholder"]

_BACKTICK_RUN = re.compile(r"`+")


def format_date(value: Optional[str]) -> str:
    """Normalize an ISO timestamp to ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Missing values render as ``Unknown``; unparseable ones verbatim.
    """
    if not value:
        return "Unknown"
    parsed = parse_timestamp(value)
    if parsed is None:
        return str(value)
    utc = parsed.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_user(user: Optional[dict[str, Any]]) -> str:
    if not user or not user.get("login"):
        return "Unknown"
    return f"@{user['login']}"


def pluralize(count: int, singular: str, plural: Optional[str] = None) -> str:
    return singular if count == 1 else (plural or f"{singular}s")


def text_or_placeholder(text: Optional[str], placeholder: str = "_No description provided._") -> str:
    stripped = (text or "").strip()
    return stripped or placeholder


def fenced(content: str, language: str = "") -> str:
    """Wrap *content* in a code fence longer than any backtick run inside it."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(content)), default=0)
    fence = "`" * max(3, longest + 1)
    return f"{fence}{language}\n{content.rstrip()}\n{fence}"
