"""Export pipeline orchestration.

One call runs one export request end to end:

    resolve profile -> build fetch plan -> fetch (parallel, cached, bounded)
    -> slice by marker range -> filter (smart diff, resolved threads)
    -> render Markdown

Per-item failures (one job log, one commit detail, the thread-resolution
lookup) degrade to a fallback or a warning. Failures of the primary
resource propagate. A cancellation always propagates, even from a step
that would otherwise degrade.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from ..cancellation import AbortSignal, is_abort_error
from ..config import DEFAULT_CACHE_TTL_MS
from ..connectors.github.client import GitHubClient
from ..markdown.actions_run import actions_run_to_markdown
from ..markdown.issue import issue_to_markdown
from ..markdown.job_logs import attach_job_step_logs, is_failure_conclusion
from ..markdown.pull import pr_to_markdown
from ..models.profile import (
    ActionsRunProfile,
    IssueProfile,
    PullProfile,
    create_default_profiles,
)
from ..models.request import ExportErrorCode, ExportRequest
from ..models.resolve import resolve_effective_profile
from ..models.selection import normalize_selection
from ..models.target import ActionsRunTarget, IssueTarget, MarkerRange, PullTarget
from .cache import TtlCache, create_cache_key, read_through_cache
from .errors import ExportPipelineError
from .executor import DEFAULT_CONCURRENCY, execute_tasks
from .planner import build_actions_fetch_plan, build_issue_fetch_plan, build_pull_fetch_plan
from .selection import slice_issue_comments, slice_pull_timeline
from .timeline import EventType, build_timeline_events

logger = logging.getLogger("ghexport.export.pipeline")

__all__ = [
    "DEFAULT_AUTH_SCOPE",
    "DEFAULT_CACHE_TTL_MS",
    "PipelineOutput",
    "run_export_pipeline",
]

DEFAULT_AUTH_SCOPE = "anon"

THREADS_INCOMPLETE_WARNING = (
    "Resolved-thread filtering may be incomplete because some review threads "
    "exceeded comment pagination limits."
)
THREADS_UNAVAILABLE_WARNING = (
    "Unable to determine resolved review threads; exported review comments "
    "without resolved filtering."
)


@dataclass(frozen=True)
class PipelineOutput:
    markdown: str
    warning: Optional[str] = None


@dataclass
class _Context:
    client: GitHubClient
    signal: Optional[AbortSignal]
    concurrency: float
    cache: TtlCache[Any]
    auth_scope_key: str


def combine_warnings(*warnings: Optional[str]) -> Optional[str]:
    """Join non-empty warnings with a space; None when there are none."""
    parts = [w.strip() for w in warnings if w and w.strip()]
    return " ".join(parts) if parts else None


async def _empty_list() -> list[Any]:
    return []


def _maybe(condition: bool, fetch: Callable[[], Awaitable[list[Any]]]) -> Awaitable[list[Any]]:
    return fetch() if condition else _empty_list()


def _selection_range(request: ExportRequest) -> Optional[MarkerRange]:
    return normalize_selection(request.selection).requested_range


def apply_smart_diff_mode(
    commits: list[dict[str, Any]], files: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Narrow each commit's files to those in the PR's final file list.

    Commits are kept even when no file survives. A commit whose file list
    is unchanged (or absent) is returned as the same object.
    """
    if not commits:
        return commits

    file_set = {f.get("filename") for f in files if f.get("filename")}
    narrowed = []
    for commit in commits:
        commit_files = commit.get("files")
        if not commit_files:
            narrowed.append(commit)
            continue

        kept = [f for f in commit_files if f and f.get("filename") in file_set]
        narrowed.append(commit if len(kept) == len(commit_files) else {**commit, "files": kept})
    return narrowed


def filter_resolved_review_comments(
    review_comments: list[dict[str, Any]], comment_resolution: Optional[dict[int, bool]]
) -> tuple[list[dict[str, Any]], Optional[str]]:
    """Drop comments whose thread is resolved.

    Comments with unknown state are kept and counted in the warning.
    """
    if comment_resolution is None:
        return review_comments, None

    unknown = 0
    kept = []
    for comment in review_comments:
        is_resolved = comment_resolution.get(comment.get("id"))  # type: ignore[arg-type]
        if is_resolved is True:
            continue
        if is_resolved is None:
            unknown += 1
        kept.append(comment)

    if not unknown:
        return kept, None
    return kept, (
        f"{unknown} review comment(s) were kept because thread resolution state was unavailable."
    )


# =============================================================================
# Actions runs
# =============================================================================


async def _export_actions_run(
    target: ActionsRunTarget, profile: ActionsRunProfile, ctx: _Context
) -> PipelineOutput:
    plan = build_actions_fetch_plan(profile)
    ids = {"owner": target.owner, "repo": target.repo}

    run, jobs = await asyncio.gather(
        ctx.client.get_actions_run(**ids, run_id=target.run_id, signal=ctx.signal),
        _maybe(
            plan.should_fetch_jobs,
            lambda: ctx.client.get_actions_run_jobs(**ids, run_id=target.run_id, signal=ctx.signal),
        ),
    )

    warning = None
    jobs_with_logs = jobs

    if plan.should_fetch_logs and jobs:
        log_jobs = (
            [j for j in jobs if is_failure_conclusion(j.get("conclusion"))]
            if plan.only_failure_jobs
            else jobs
        )

        def make_task(job_id: int) -> Callable[[], Awaitable[Optional[tuple[int, str]]]]:
            async def fetch_log() -> Optional[tuple[int, str]]:
                key = create_cache_key(
                    ["actionsJobLog", ctx.auth_scope_key, target.owner, target.repo, job_id]
                )
                try:
                    raw_log = await read_through_cache(
                        ctx.cache,
                        key,
                        lambda: ctx.client.get_actions_job_logs(
                            **ids, job_id=job_id, signal=ctx.signal
                        ),
                    )
                except Exception as e:
                    if is_abort_error(e):
                        raise
                    logger.warning(
                        "job_log_fetch_failed",
                        extra={"job_id": job_id, "run_id": target.run_id, "error": str(e)},
                    )
                    return None
                return job_id, raw_log

            return fetch_log

        results = await execute_tasks(
            [make_task(job["id"]) for job in log_jobs],
            concurrency=ctx.concurrency,
            signal=ctx.signal,
        )

        log_by_job_id = {}
        failed = 0
        for result in results:
            if result is None:
                failed += 1
                continue
            job_id, raw_log = result
            log_by_job_id[job_id] = raw_log

        jobs_with_logs = [
            attach_job_step_logs(job, log_by_job_id[job["id"]])
            if log_by_job_id.get(job.get("id"))
            else job
            for job in jobs
        ]

        if failed:
            warning = (
                f"{failed} job log(s) could not be downloaded, so some step logs may be missing."
            )

    return PipelineOutput(
        markdown=actions_run_to_markdown(run, jobs_with_logs, plan.options),
        warning=warning,
    )


# =============================================================================
# Issues
# =============================================================================


async def _export_issue(
    request: ExportRequest, target: IssueTarget, profile: IssueProfile, ctx: _Context
) -> PipelineOutput:
    plan = build_issue_fetch_plan(profile)
    ids = {"owner": target.owner, "repo": target.repo, "number": target.number}

    issue, comments = await asyncio.gather(
        ctx.client.get_issue(**ids, signal=ctx.signal),
        _maybe(
            plan.should_fetch_comments,
            lambda: ctx.client.get_issue_comments(**ids, signal=ctx.signal),
        ),
    )

    selected = slice_issue_comments(comments, _selection_range(request))
    return PipelineOutput(
        markdown=issue_to_markdown(issue, selected.items, historical_mode=plan.historical_mode),
        warning=selected.warning,
    )


# =============================================================================
# Pull requests
# =============================================================================


async def _fetch_commit_details(
    target: PullTarget, commits: list[dict[str, Any]], ctx: _Context
) -> list[dict[str, Any]]:
    """Replace summary commits with full commits (including files).

    A commit whose detail cannot be loaded falls back to its summary.
    """

    def make_task(commit: dict[str, Any]) -> Callable[[], Awaitable[dict[str, Any]]]:
        async def fetch_detail() -> dict[str, Any]:
            sha = commit.get("sha")
            if not sha:
                return commit
            key = create_cache_key(["commit", ctx.auth_scope_key, target.owner, target.repo, sha])
            try:
                return await read_through_cache(
                    ctx.cache,
                    key,
                    lambda: ctx.client.get_commit(
                        owner=target.owner, repo=target.repo, sha=sha, signal=ctx.signal
                    ),
                )
            except Exception as e:
                if is_abort_error(e):
                    raise
                logger.warning(
                    "commit_detail_fallback",
                    extra={"sha": sha, "number": target.number, "error": str(e)},
                )
                return commit

        return fetch_detail

    return await execute_tasks(
        [make_task(commit) for commit in commits],
        concurrency=ctx.concurrency,
        signal=ctx.signal,
    )


async def _export_pull(
    request: ExportRequest, target: PullTarget, profile: PullProfile, ctx: _Context
) -> PipelineOutput:
    plan = build_pull_fetch_plan(profile)
    ids = {"owner": target.owner, "repo": target.repo, "number": target.number}
    client, signal = ctx.client, ctx.signal

    pr, issue_comments, review_comments, reviews, files, commits = await asyncio.gather(
        client.get_pull_request(**ids, signal=signal),
        _maybe(
            plan.should_fetch_issue_comments,
            lambda: client.get_issue_comments(**ids, signal=signal),
        ),
        _maybe(
            plan.should_fetch_review_comments,
            lambda: client.get_pull_review_comments(**ids, signal=signal),
        ),
        _maybe(plan.should_fetch_reviews, lambda: client.get_pull_reviews(**ids, signal=signal)),
        _maybe(plan.should_fetch_files, lambda: client.get_pull_files(**ids, signal=signal)),
        _maybe(plan.should_fetch_commits, lambda: client.get_pull_commits(**ids, signal=signal)),
    )

    detailed_commits = commits
    if plan.should_fetch_commits and plan.include_commit_diffs and commits:
        detailed_commits = await _fetch_commit_details(target, commits, ctx)

    final_commits = (
        apply_smart_diff_mode(detailed_commits, files)
        if plan.include_commit_diffs and plan.smart_diff_mode
        else detailed_commits
    )

    resolution_warning = None
    comment_resolution = None
    if plan.should_fetch_review_thread_resolution:
        try:
            resolution = await client.get_pull_review_thread_resolution(**ids, signal=signal)
        except Exception as e:
            if is_abort_error(e):
                raise
            logger.warning(
                "thread_resolution_unavailable",
                extra={"number": target.number, "error": str(e)},
            )
            resolution_warning = THREADS_UNAVAILABLE_WARNING
        else:
            comment_resolution = resolution.comment_resolution
            if resolution.incomplete:
                resolution_warning = THREADS_INCOMPLETE_WARNING

    slice_warning = None
    marker_range = _selection_range(request)
    if marker_range is not None:
        events = build_timeline_events(
            commits=final_commits if plan.include_commits else None,
            issue_comments=issue_comments if plan.include_issue_comments else None,
            review_comments=review_comments if plan.include_review_comments else None,
            reviews=reviews if plan.include_reviews else None,
        )
        selected = slice_pull_timeline(events, marker_range)
        slice_warning = selected.warning

        def of_type(event_type: EventType) -> list[dict[str, Any]]:
            return [e.payload for e in selected.items if e.type is event_type]

        final_commits = of_type(EventType.COMMIT)
        issue_comments = of_type(EventType.ISSUE_COMMENT)
        review_comments = of_type(EventType.REVIEW_COMMENT)
        reviews = of_type(EventType.REVIEW)

    filter_warning = None
    if plan.include_review_comments:
        review_comments, filter_warning = filter_resolved_review_comments(
            review_comments, comment_resolution
        )

    markdown = pr_to_markdown(
        pr,
        plan.options,
        commits=final_commits if plan.include_commits else None,
        files=files if plan.include_file_diffs else None,
        issue_comments=issue_comments if plan.include_issue_comments else None,
        review_comments=review_comments if plan.include_review_comments else None,
        reviews=reviews if plan.include_reviews else None,
    )
    return PipelineOutput(
        markdown=markdown,
        warning=combine_warnings(slice_warning, resolution_warning, filter_warning),
    )


async def run_export_pipeline(
    request: ExportRequest,
    client: GitHubClient,
    signal: Optional[AbortSignal] = None,
    concurrency: Optional[float] = None,
    cache: Optional[TtlCache[Any]] = None,
    cache_ttl_ms: Optional[float] = None,
    auth_scope_key: Optional[str] = None,
    now: Optional[Callable[[], float]] = None,
) -> PipelineOutput:
    """Run one export and return its Markdown and combined warning.

    Raises:
        ExportPipelineError: For an invalid request or selection.
        AbortError: If *signal* fires.
        GitHubApiError: If a required resource cannot be fetched.
    """
    ctx = _Context(
        client=client,
        signal=signal,
        concurrency=DEFAULT_CONCURRENCY if concurrency is None else concurrency,
        cache=cache
        if cache is not None
        else TtlCache(DEFAULT_CACHE_TTL_MS if cache_ttl_ms is None else cache_ttl_ms, now),
        auth_scope_key=auth_scope_key or DEFAULT_AUTH_SCOPE,
    )

    target = request.target
    profile, source = resolve_effective_profile(
        target.kind, create_default_profiles(), request_profile=request.profile
    )
    logger.debug(
        "export_profile_resolved",
        extra={"kind": target.kind.value, "profile_source": source.value},
    )

    if isinstance(target, ActionsRunTarget):
        if not isinstance(profile, ActionsRunProfile):
            raise ExportPipelineError(
                ExportErrorCode.INVALID_REQUEST, "Actions exports require an actions profile."
            )
        return await _export_actions_run(target, profile, ctx)

    if isinstance(target, IssueTarget):
        if not isinstance(profile, IssueProfile):
            raise ExportPipelineError(
                ExportErrorCode.INVALID_REQUEST, "Issue exports require an issue profile."
            )
        return await _export_issue(request, target, profile, ctx)

    if not isinstance(profile, PullProfile):
        raise ExportPipelineError(
            ExportErrorCode.INVALID_REQUEST, "Pull request exports require a pull profile."
        )
    return await _export_pull(request, target, profile, ctx)
