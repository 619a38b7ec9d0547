"""Pick the effective export profile for a target.

Precedence is request profile, then remembered profile, then the
configured default. Only a profile whose kind matches the target counts.
Whatever wins is re-resolved through its preset and invariant-enforced, so
callers always get a fresh, valid profile.
"""

from enum import Enum
from typing import Optional

from .invariants import normalize_actions_run_profile, normalize_pull_profile
from .profile import (
    ActionsRunProfile,
    ExportProfile,
    IssueProfile,
    ProfileDefaults,
    PullProfile,
    resolve_actions_run_preset,
    resolve_pull_preset,
)
from .target import TargetKind

__all__ = [
    "ProfileSource",
    "is_profile_for_kind",
    "normalize_profile",
    "resolve_effective_profile",
]


class ProfileSource(str, Enum):
    REQUEST = "request"
    LAST = "last"
    DEFAULT = "default"


def is_profile_for_kind(profile: object, kind: TargetKind) -> bool:
    return isinstance(profile, (PullProfile, IssueProfile, ActionsRunProfile)) and (
        profile.kind is kind
    )


def normalize_profile(profile: ExportProfile) -> ExportProfile:
    if isinstance(profile, PullProfile):
        return normalize_pull_profile(
            PullProfile(
                preset=profile.preset,
                options=resolve_pull_preset(profile.preset, profile.options),
            )
        )
    if isinstance(profile, IssueProfile):
        return IssueProfile(timeline_mode=profile.timeline_mode)
    return normalize_actions_run_profile(
        ActionsRunProfile(
            preset=profile.preset,
            options=resolve_actions_run_preset(profile.preset, profile.options),
        )
    )


def resolve_effective_profile(
    target_kind: TargetKind,
    defaults: ProfileDefaults,
    request_profile: Optional[ExportProfile] = None,
    remembered_profile: Optional[ExportProfile] = None,
) -> tuple[ExportProfile, ProfileSource]:
    """Return ``(profile, source)`` for *target_kind*."""
    if is_profile_for_kind(request_profile, target_kind):
        return normalize_profile(request_profile), ProfileSource.REQUEST  # type: ignore[arg-type]

    if is_profile_for_kind(remembered_profile, target_kind):
        return normalize_profile(remembered_profile), ProfileSource.LAST  # type: ignore[arg-type]

    return normalize_profile(defaults.for_kind(target_kind)), ProfileSource.DEFAULT
