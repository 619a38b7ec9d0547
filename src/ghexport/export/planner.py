"""Fetch planners: resolved profile in, minimal set of API calls out.

Plans are derived fresh for every request and never stored.
"""

from dataclasses import dataclass
from typing import Union

from ..models.invariants import enforce_actions_run_invariants, enforce_pull_invariants
from ..models.profile import (
    ActionsRunExportOptions,
    ActionsRunProfile,
    IssueProfile,
    PullExportOptions,
    PullProfile,
)

__all__ = [
    "ActionsFetchPlan",
    "FetchPlan",
    "IssueFetchPlan",
    "PullFetchPlan",
    "build_actions_fetch_plan",
    "build_fetch_plan",
    "build_issue_fetch_plan",
    "build_pull_fetch_plan",
]


@dataclass(frozen=True)
class PullFetchPlan:
    profile: PullProfile
    options: PullExportOptions
    include_issue_comments: bool
    include_review_comments: bool
    include_reviews: bool
    include_commits: bool
    include_file_diffs: bool
    include_commit_diffs: bool
    smart_diff_mode: bool
    timeline_mode: bool
    ignore_resolved_comments: bool
    should_fetch_issue_comments: bool
    should_fetch_review_comments: bool
    should_fetch_reviews: bool
    should_fetch_commits: bool
    should_fetch_files: bool
    should_fetch_review_thread_resolution: bool


@dataclass(frozen=True)
class IssueFetchPlan:
    profile: IssueProfile
    should_fetch_comments: bool
    historical_mode: bool


@dataclass(frozen=True)
class ActionsFetchPlan:
    profile: ActionsRunProfile
    options: ActionsRunExportOptions
    should_fetch_jobs: bool
    should_fetch_logs: bool
    only_failure_jobs: bool


FetchPlan = Union[PullFetchPlan, IssueFetchPlan, ActionsFetchPlan]


def build_pull_fetch_plan(profile: PullProfile) -> PullFetchPlan:
    """Plan a pull request export.

    Files are fetched when they are displayed, and also when smart diff
    mode needs them to narrow commit diffs even though they are not shown.
    """
    options = enforce_pull_invariants(profile.options)
    include_commits = options.include_commits
    include_commit_diffs = include_commits and options.include_commit_diffs
    smart_diff_mode = include_commit_diffs and options.smart_diff_mode
    ignore_resolved = options.include_review_comments and options.ignore_resolved_comments

    return PullFetchPlan(
        profile=profile,
        options=options,
        include_issue_comments=options.include_issue_comments,
        include_review_comments=options.include_review_comments,
        include_reviews=options.include_reviews,
        include_commits=include_commits,
        include_file_diffs=options.include_file_diffs,
        include_commit_diffs=include_commit_diffs,
        smart_diff_mode=smart_diff_mode,
        timeline_mode=options.timeline_mode,
        ignore_resolved_comments=ignore_resolved,
        should_fetch_issue_comments=options.include_issue_comments,
        should_fetch_review_comments=options.include_review_comments,
        should_fetch_reviews=options.include_reviews,
        should_fetch_commits=include_commits,
        should_fetch_files=options.include_file_diffs or (include_commit_diffs and smart_diff_mode),
        should_fetch_review_thread_resolution=ignore_resolved,
    )


def build_issue_fetch_plan(profile: IssueProfile) -> IssueFetchPlan:
    return IssueFetchPlan(
        profile=profile,
        should_fetch_comments=True,
        historical_mode=profile.timeline_mode,
    )


def build_actions_fetch_plan(profile: ActionsRunProfile) -> ActionsFetchPlan:
    """Plan an Actions run export.

    Logs are only needed when steps are rendered; in failure-only mode the
    pipeline downloads logs for failing jobs alone.
    """
    options = enforce_actions_run_invariants(profile.options)
    return ActionsFetchPlan(
        profile=profile,
        options=options,
        should_fetch_jobs=options.include_jobs,
        should_fetch_logs=options.include_jobs and options.include_steps,
        only_failure_jobs=options.only_failure_jobs,
    )


def build_fetch_plan(profile: Union[PullProfile, IssueProfile, ActionsRunProfile]) -> FetchPlan:
    if isinstance(profile, PullProfile):
        return build_pull_fetch_plan(profile)
    if isinstance(profile, IssueProfile):
        return build_issue_fetch_plan(profile)
    return build_actions_fetch_plan(profile)
