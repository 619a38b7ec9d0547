"""Domain models: targets, profiles, presets, settings, requests."""

from .invariants import (
    enforce_actions_run_invariants,
    enforce_invariants,
    enforce_pull_invariants,
)
from .profile import (
    BUILTIN_ACTIONS_RUN_PRESETS,
    BUILTIN_PULL_PRESETS,
    ActionsRunExportOptions,
    ActionsRunPreset,
    ActionsRunProfile,
    ExportProfile,
    IssueProfile,
    ProfileDefaults,
    PullExportOptions,
    PullPreset,
    PullProfile,
    create_default_profiles,
    infer_actions_run_preset,
    infer_pull_preset,
    profile_from_dict,
    profile_to_dict,
    resolve_actions_run_preset,
    resolve_pull_preset,
)
from .request import ExportErrorCode, ExportRequest, ExportResult
from .resolve import ProfileSource, resolve_effective_profile
from .selection import ALL_SELECTION, Selection, SelectionMode
from .settings import (
    RememberScope,
    SettingsV1,
    apply_settings_patch,
    coerce_settings,
    create_default_settings,
)
from .target import (
    ActionsRunTarget,
    IssueTarget,
    Marker,
    MarkerRange,
    MarkerType,
    PullTarget,
    Target,
    TargetKind,
)

__all__ = [
    "ALL_SELECTION",
    "BUILTIN_ACTIONS_RUN_PRESETS",
    "BUILTIN_PULL_PRESETS",
    "ActionsRunExportOptions",
    "ActionsRunPreset",
    "ActionsRunProfile",
    "ActionsRunTarget",
    "ExportErrorCode",
    "ExportProfile",
    "ExportRequest",
    "ExportResult",
    "IssueProfile",
    "IssueTarget",
    "Marker",
    "MarkerRange",
    "MarkerType",
    "ProfileDefaults",
    "ProfileSource",
    "PullExportOptions",
    "PullPreset",
    "PullProfile",
    "PullTarget",
    "RememberScope",
    "Selection",
    "SelectionMode",
    "SettingsV1",
    "Target",
    "TargetKind",
    "apply_settings_patch",
    "coerce_settings",
    "create_default_profiles",
    "create_default_settings",
    "enforce_actions_run_invariants",
    "enforce_invariants",
    "enforce_pull_invariants",
    "infer_actions_run_preset",
    "infer_pull_preset",
    "profile_from_dict",
    "profile_to_dict",
    "resolve_actions_run_preset",
    "resolve_effective_profile",
    "resolve_pull_preset",
]
