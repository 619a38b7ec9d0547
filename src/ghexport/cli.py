"""Command-line export of a GitHub page to Markdown.

Usage:
    gh-export https://github.com/octocat/hello/pull/12
    gh-export https://github.com/octocat/hello/pull/12 --preset with-diffs -o pr.md
    gh-export https://github.com/octocat/hello/issues/7 --start issuecomment-10 --end issuecomment-42
    gh-export https://github.com/octocat/hello/actions/runs/99 --preset failure-step

Ctrl-C cancels the running export cleanly.
"""

import argparse
import asyncio
import os
import signal
import sys
import uuid
from pathlib import Path
from typing import Any, Optional

from .__version__ import __version__
from .config import get_config
from .connectors.github.parsing import marker_from_anchor, parse_target_url
from .logging_config import configure_logging
from .models.profile import (
    ActionsRunPreset,
    ActionsRunProfile,
    ExportProfile,
    IssueProfile,
    PullPreset,
    PullProfile,
    infer_actions_run_preset,
    infer_pull_preset,
    parse_actions_run_preset,
    parse_pull_preset,
    resolve_actions_run_preset,
    resolve_pull_preset,
)
from .models.request import ExportRequest, ExportResult
from .models.selection import Selection
from .models.target import Marker, MarkerRange, Target, TargetKind
from .service import ExportService

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def parse_option(value: str) -> tuple[str, bool]:
    """Parse ``key=bool`` (e.g. ``includeCommits=true``)."""
    key, sep, raw = value.partition("=")
    flag = raw.strip().lower()
    if not sep or not key.strip() or flag not in _TRUE | _FALSE:
        raise argparse.ArgumentTypeError(f"expected key=true|false, got {value!r}")
    return key.strip(), flag in _TRUE


def parse_marker(value: str) -> Marker:
    """Parse ``type:id`` or a GitHub comment anchor such as ``issuecomment-123``."""
    try:
        return Marker.parse(value)
    except ValueError:
        marker = marker_from_anchor(value)
        if marker is None:
            raise argparse.ArgumentTypeError(f"not a marker: {value!r}") from None
        return marker


def build_request_profile(
    target: Target,
    preset: Optional[str] = None,
    options: Optional[dict[str, bool]] = None,
    timeline: Optional[bool] = None,
) -> Optional[ExportProfile]:
    """Turn CLI flags into a request profile; None when no flag was given.

    For pull requests, option overrides on top of a built-in preset yield
    the matching built-in again or a ``custom`` profile.

    Raises:
        ValueError: If *preset* is not a preset of the target's kind.
    """
    overrides: dict[str, Any] = dict(options or {})

    if target.kind is TargetKind.ISSUE:
        if timeline is None:
            return None
        return IssueProfile(timeline_mode=timeline)

    if timeline is not None:
        overrides["timelineMode"] = timeline
    if preset is None and not overrides:
        return None

    if target.kind is TargetKind.PULL:
        pull_preset = parse_pull_preset(preset) if preset else PullPreset.CUSTOM
        if pull_preset is None:
            raise ValueError(f"Unknown pull request preset: {preset}")
        if not overrides:
            return PullProfile(preset=pull_preset, options=resolve_pull_preset(pull_preset))
        merged = {**resolve_pull_preset(pull_preset).to_dict(), **overrides}
        pull_options = resolve_pull_preset(PullPreset.CUSTOM, merged)
        return PullProfile(preset=infer_pull_preset(pull_options), options=pull_options)

    actions_preset = parse_actions_run_preset(preset) if preset else None
    if preset and actions_preset is None:
        raise ValueError(f"Unknown Actions run preset: {preset}")
    base = actions_preset or ActionsRunPreset.EXPORT_ALL
    actions_options = resolve_actions_run_preset(base, overrides)
    return ActionsRunProfile(
        preset=infer_actions_run_preset(actions_options) or base, options=actions_options
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-export",
        description="Export a GitHub pull request, issue or Actions run as Markdown",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://github.com/o/r/pull/12 --preset review-comments-only
  %(prog)s https://github.com/o/r/pull/12 --option includeCommits=true --no-timeline
  %(prog)s https://github.com/o/r/issues/7 --start issue-comment:10 -o issue.md

Configuration:
  GITHUB_TOKEN        token used for GitHub API requests (optional)
  GITHUB_API_ROOT     API root for GitHub Enterprise Server
  GHEXPORT_LOG_LEVEL  log level (default: WARNING for the CLI)
        """,
    )
    parser.add_argument("url", help="GitHub pull request, issue or Actions run URL")
    parser.add_argument(
        "--preset",
        help="pull: full-conversation, with-diffs, review-comments-only, commit-log, custom; "
        "actions: only-summary, export-all, failure-job, failure-step",
    )
    parser.add_argument(
        "--option",
        dest="options",
        action="append",
        type=parse_option,
        default=[],
        metavar="KEY=BOOL",
        help="override one export option, e.g. includeCommits=true (repeatable)",
    )
    parser.add_argument(
        "--timeline",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="merge conversation into one chronological timeline",
    )
    parser.add_argument("--start", type=parse_marker, help="first marker, TYPE:ID or anchor")
    parser.add_argument("--end", type=parse_marker, help="last marker, TYPE:ID or anchor")
    parser.add_argument("-o", "--output", type=Path, help="write Markdown to FILE")
    parser.add_argument("--concurrency", type=int, help="max concurrent per-item fetches")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


async def _run(service: ExportService, request: ExportRequest) -> ExportResult:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, service.cancel, request.request_id)
    except NotImplementedError:
        # Windows event loops; Ctrl-C then interrupts without a clean abort.
        pass

    try:
        return await service.run(request)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point. Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    target = parse_target_url(args.url)
    if target is None:
        parser.error(f"not an exportable GitHub URL: {args.url}")

    try:
        profile = build_request_profile(target, args.preset, dict(args.options), args.timeline)
    except ValueError as e:
        parser.error(str(e))

    config = get_config()
    configure_logging(
        level=os.getenv("GHEXPORT_LOG_LEVEL", config.log_level),
        log_format=os.getenv("GHEXPORT_LOG_FORMAT", config.log_format),
    )

    selection = None
    if args.start or args.end:
        selection = Selection.from_range(MarkerRange(start=args.start, end=args.end))

    request = ExportRequest(
        request_id=uuid.uuid4().hex,
        target=target,
        selection=selection,
        profile=profile,
    )

    service = ExportService.from_config(config)
    if args.concurrency is not None:
        service.concurrency = args.concurrency

    result = asyncio.run(_run(service, request))

    if not result.ok:
        code = result.code.value if result.code else "unknown"
        print(f"{code}: {result.message}", file=sys.stderr)
        return 1

    if args.output:
        args.output.write_text(result.markdown or "", encoding="utf-8")
        print(f"Wrote {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(result.markdown or "")
        if result.markdown and not result.markdown.endswith("\n"):
            sys.stdout.write("\n")

    if result.warning:
        print(f"warning: {result.warning}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
