"""Dependent-flag rules for export options.

A dependent option is forced off whenever its prerequisite is off. These
functions must be the last step before options are used to plan fetches;
stored or patched options are never assumed to satisfy them already.
"""

from dataclasses import replace
from typing import Union, overload

from .profile import (
    ActionsRunExportOptions,
    ActionsRunProfile,
    PullExportOptions,
    PullProfile,
)

__all__ = [
    "enforce_actions_run_invariants",
    "enforce_invariants",
    "enforce_pull_invariants",
    "normalize_actions_run_profile",
    "normalize_pull_profile",
]


def enforce_pull_invariants(options: PullExportOptions) -> PullExportOptions:
    include_commit_diffs = options.include_commit_diffs and options.include_commits
    return replace(
        options,
        include_commit_diffs=include_commit_diffs,
        smart_diff_mode=options.smart_diff_mode and include_commit_diffs,
        ignore_resolved_comments=(
            options.ignore_resolved_comments and options.include_review_comments
        ),
    )


def enforce_actions_run_invariants(options: ActionsRunExportOptions) -> ActionsRunExportOptions:
    if not options.include_jobs:
        return replace(
            options,
            include_steps=False,
            only_failure_jobs=False,
            only_failure_steps=False,
        )

    return replace(
        options,
        only_failure_steps=(
            options.only_failure_steps and options.include_steps and options.only_failure_jobs
        ),
    )


@overload
def enforce_invariants(options: PullExportOptions) -> PullExportOptions: ...


@overload
def enforce_invariants(options: ActionsRunExportOptions) -> ActionsRunExportOptions: ...


def enforce_invariants(
    options: Union[PullExportOptions, ActionsRunExportOptions],
) -> Union[PullExportOptions, ActionsRunExportOptions]:
    """Apply the rules matching the option record's kind."""
    if isinstance(options, PullExportOptions):
        return enforce_pull_invariants(options)
    if isinstance(options, ActionsRunExportOptions):
        return enforce_actions_run_invariants(options)
    raise TypeError(f"Unsupported options type: {type(options).__name__}")


def normalize_pull_profile(profile: PullProfile) -> PullProfile:
    return PullProfile(preset=profile.preset, options=enforce_pull_invariants(profile.options))


def normalize_actions_run_profile(profile: ActionsRunProfile) -> ActionsRunProfile:
    return ActionsRunProfile(
        preset=profile.preset, options=enforce_actions_run_invariants(profile.options)
    )
