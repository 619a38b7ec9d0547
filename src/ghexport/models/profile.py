"""Export profiles and named presets.

A profile is the fully specified option set for one target kind. Presets
are named shortcuts that resolve to canonical option sets. Everything in
this module is pure: resolution always returns fresh values and never
mutates its inputs.

Stored or patched option data is untrusted, so overrides are sanitized:
unknown keys and non-bool values are dropped silently.
"""

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .target import TargetKind

__all__ = [
    "BUILTIN_ACTIONS_RUN_PRESETS",
    "BUILTIN_PULL_PRESETS",
    "ActionsRunExportOptions",
    "ActionsRunPreset",
    "ActionsRunProfile",
    "ExportProfile",
    "IssueProfile",
    "ProfileDefaults",
    "PullExportOptions",
    "PullPreset",
    "PullProfile",
    "create_default_actions_run_options",
    "create_default_profiles",
    "create_default_pull_options",
    "infer_actions_run_preset",
    "infer_pull_preset",
    "parse_actions_run_preset",
    "parse_pull_preset",
    "profile_from_dict",
    "profile_to_dict",
    "resolve_actions_run_preset",
    "resolve_pull_preset",
    "sanitize_option_overrides",
]


def _snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class _OptionRecord:
    """Shared helpers for the boolean option dataclasses."""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))  # type: ignore[arg-type]

    @classmethod
    def from_mapping(cls, value: Any, base: Any = None) -> Any:
        """Build a record from stored data, layered over *base* (or defaults)."""
        if base is None:
            base = cls()
        return replace(base, **sanitize_option_overrides(cls, value))

    def to_dict(self) -> dict[str, bool]:
        return {_snake_to_camel(k): v for k, v in asdict(self).items()}  # type: ignore[call-overload]


@dataclass(frozen=True)
class PullExportOptions(_OptionRecord):
    include_issue_comments: bool = True
    include_review_comments: bool = True
    include_reviews: bool = True
    include_commits: bool = False
    include_file_diffs: bool = False
    include_commit_diffs: bool = False
    smart_diff_mode: bool = False
    timeline_mode: bool = True
    ignore_resolved_comments: bool = False


@dataclass(frozen=True)
class ActionsRunExportOptions(_OptionRecord):
    include_summary: bool = True
    include_jobs: bool = True
    include_steps: bool = True
    only_failure_jobs: bool = False
    only_failure_steps: bool = False


def sanitize_option_overrides(
    record_type: type, value: Union[Mapping[str, Any], _OptionRecord, None]
) -> dict[str, bool]:
    """Keep only recognized, bool-typed override keys.

    Accepts snake_case (``include_commits``) or camelCase
    (``includeCommits``) keys. ``1``/``"true"`` are not bools and are dropped.
    """
    if value is None:
        return {}
    if isinstance(value, _OptionRecord):
        return asdict(value)  # type: ignore[call-overload]
    if not isinstance(value, Mapping):
        return {}

    sanitized: dict[str, bool] = {}
    for name in record_type.field_names():
        for key in (name, _snake_to_camel(name)):
            candidate = value.get(key)
            if isinstance(candidate, bool):
                sanitized[name] = candidate
                break
    return sanitized


# =============================================================================
# Pull request presets
# =============================================================================


class PullPreset(str, Enum):
    FULL_CONVERSATION = "full-conversation"
    WITH_DIFFS = "with-diffs"
    REVIEW_COMMENTS_ONLY = "review-comments-only"
    COMMIT_LOG = "commit-log"
    CUSTOM = "custom"


_PULL_PRESET_OPTIONS: dict[PullPreset, PullExportOptions] = {
    PullPreset.FULL_CONVERSATION: PullExportOptions(
        include_issue_comments=True,
        include_review_comments=True,
        include_reviews=True,
        include_commits=False,
        include_file_diffs=False,
        include_commit_diffs=False,
        smart_diff_mode=False,
        timeline_mode=True,
        ignore_resolved_comments=False,
    ),
    PullPreset.WITH_DIFFS: PullExportOptions(
        include_issue_comments=True,
        include_review_comments=True,
        include_reviews=True,
        include_commits=True,
        include_file_diffs=True,
        include_commit_diffs=True,
        smart_diff_mode=True,
        timeline_mode=True,
        ignore_resolved_comments=False,
    ),
    PullPreset.REVIEW_COMMENTS_ONLY: PullExportOptions(
        include_issue_comments=False,
        include_review_comments=True,
        include_reviews=False,
        include_commits=False,
        include_file_diffs=False,
        include_commit_diffs=False,
        smart_diff_mode=False,
        timeline_mode=False,
        ignore_resolved_comments=False,
    ),
    PullPreset.COMMIT_LOG: PullExportOptions(
        include_issue_comments=False,
        include_review_comments=False,
        include_reviews=False,
        include_commits=True,
        include_file_diffs=False,
        include_commit_diffs=True,
        smart_diff_mode=False,
        timeline_mode=False,
        ignore_resolved_comments=False,
    ),
}

BUILTIN_PULL_PRESETS: tuple[PullPreset, ...] = tuple(_PULL_PRESET_OPTIONS)


def parse_pull_preset(value: Any) -> Optional[PullPreset]:
    """Return the PullPreset named by *value*, or None."""
    try:
        return PullPreset(value)
    except ValueError:
        return None


def create_default_pull_options() -> PullExportOptions:
    return _PULL_PRESET_OPTIONS[PullPreset.FULL_CONVERSATION]


def resolve_pull_preset(
    preset: PullPreset,
    overrides: Union[Mapping[str, Any], PullExportOptions, None] = None,
) -> PullExportOptions:
    """Resolve a pull preset to its full option record.

    Built-in presets ignore *overrides* and return their canonical options.
    ``custom`` starts from the defaults and layers the sanitized overrides.
    """
    preset = PullPreset(preset)
    if preset is not PullPreset.CUSTOM:
        return _PULL_PRESET_OPTIONS[preset]

    return PullExportOptions.from_mapping(overrides, base=create_default_pull_options())


def infer_pull_preset(options: PullExportOptions) -> PullPreset:
    """Return the built-in preset matching *options* exactly, else ``custom``."""
    for preset in BUILTIN_PULL_PRESETS:
        if _PULL_PRESET_OPTIONS[preset] == options:
            return preset
    return PullPreset.CUSTOM


# =============================================================================
# Actions run presets
# =============================================================================


class ActionsRunPreset(str, Enum):
    ONLY_SUMMARY = "only-summary"
    EXPORT_ALL = "export-all"
    FAILURE_JOB = "failure-job"
    FAILURE_STEP = "failure-step"


_ACTIONS_RUN_PRESET_OPTIONS: dict[ActionsRunPreset, ActionsRunExportOptions] = {
    ActionsRunPreset.ONLY_SUMMARY: ActionsRunExportOptions(
        include_summary=True,
        include_jobs=False,
        include_steps=False,
        only_failure_jobs=False,
        only_failure_steps=False,
    ),
    ActionsRunPreset.EXPORT_ALL: ActionsRunExportOptions(
        include_summary=True,
        include_jobs=True,
        include_steps=True,
        only_failure_jobs=False,
        only_failure_steps=False,
    ),
    ActionsRunPreset.FAILURE_JOB: ActionsRunExportOptions(
        include_summary=True,
        include_jobs=True,
        include_steps=True,
        only_failure_jobs=True,
        only_failure_steps=False,
    ),
    ActionsRunPreset.FAILURE_STEP: ActionsRunExportOptions(
        include_summary=True,
        include_jobs=True,
        include_steps=True,
        only_failure_jobs=True,
        only_failure_steps=True,
    ),
}

BUILTIN_ACTIONS_RUN_PRESETS: tuple[ActionsRunPreset, ...] = tuple(_ACTIONS_RUN_PRESET_OPTIONS)


def parse_actions_run_preset(value: Any) -> Optional[ActionsRunPreset]:
    """Return the ActionsRunPreset named by *value*, or None."""
    try:
        return ActionsRunPreset(value)
    except ValueError:
        return None


def create_default_actions_run_options() -> ActionsRunExportOptions:
    return _ACTIONS_RUN_PRESET_OPTIONS[ActionsRunPreset.EXPORT_ALL]


def resolve_actions_run_preset(
    preset: ActionsRunPreset,
    overrides: Union[Mapping[str, Any], ActionsRunExportOptions, None] = None,
) -> ActionsRunExportOptions:
    """Resolve an Actions preset, layering sanitized overrides on top.

    There is no ``custom`` Actions preset, so overrides always apply.
    """
    base = _ACTIONS_RUN_PRESET_OPTIONS[ActionsRunPreset(preset)]
    return ActionsRunExportOptions.from_mapping(overrides, base=base)


def infer_actions_run_preset(options: ActionsRunExportOptions) -> Optional[ActionsRunPreset]:
    """Return the preset matching *options* exactly, or None when none does."""
    for preset in BUILTIN_ACTIONS_RUN_PRESETS:
        if _ACTIONS_RUN_PRESET_OPTIONS[preset] == options:
            return preset
    return None


# =============================================================================
# Profiles
# =============================================================================


class _ProfileRecord:
    def to_dict(self) -> dict[str, Any]:
        return profile_to_dict(self)  # type: ignore[arg-type]


@dataclass(frozen=True)
class PullProfile(_ProfileRecord):
    preset: PullPreset = PullPreset.FULL_CONVERSATION
    options: PullExportOptions = field(default_factory=create_default_pull_options)
    kind: TargetKind = field(default=TargetKind.PULL, init=False)


@dataclass(frozen=True)
class IssueProfile(_ProfileRecord):
    timeline_mode: bool = True
    kind: TargetKind = field(default=TargetKind.ISSUE, init=False)


@dataclass(frozen=True)
class ActionsRunProfile(_ProfileRecord):
    preset: ActionsRunPreset = ActionsRunPreset.EXPORT_ALL
    options: ActionsRunExportOptions = field(default_factory=create_default_actions_run_options)
    kind: TargetKind = field(default=TargetKind.ACTIONS_RUN, init=False)


ExportProfile = Union[PullProfile, IssueProfile, ActionsRunProfile]


@dataclass(frozen=True)
class ProfileDefaults:
    """Default profile per target kind."""

    pull: PullProfile = field(default_factory=PullProfile)
    issue: IssueProfile = field(default_factory=IssueProfile)
    actions_run: ActionsRunProfile = field(default_factory=ActionsRunProfile)

    def for_kind(self, kind: TargetKind) -> ExportProfile:
        if kind is TargetKind.PULL:
            return self.pull
        if kind is TargetKind.ISSUE:
            return self.issue
        return self.actions_run


def create_default_profiles() -> ProfileDefaults:
    return ProfileDefaults()


def profile_to_dict(profile: ExportProfile) -> dict[str, Any]:
    """Serialize a profile to its JSON storage form."""
    if isinstance(profile, IssueProfile):
        return {"kind": profile.kind.value, "timelineMode": profile.timeline_mode}
    return {
        "kind": profile.kind.value,
        "preset": profile.preset.value,
        "options": profile.options.to_dict(),
    }


def profile_from_dict(value: Any) -> Optional[ExportProfile]:
    """Parse a stored profile dict, or return None when it is unusable.

    Options are re-resolved through the preset so a stored built-in preset
    always yields its canonical options. Invariants are NOT enforced here;
    callers run the result through the invariants module before use.
    """
    if not isinstance(value, Mapping):
        return None

    kind = value.get("kind")
    if kind == TargetKind.PULL.value:
        preset = parse_pull_preset(value.get("preset"))
        if preset is None:
            return None
        return PullProfile(preset=preset, options=resolve_pull_preset(preset, value.get("options")))

    if kind == TargetKind.ISSUE.value:
        timeline_mode = value.get("timelineMode", value.get("timeline_mode"))
        if not isinstance(timeline_mode, bool):
            return None
        return IssueProfile(timeline_mode=timeline_mode)

    if kind == TargetKind.ACTIONS_RUN.value:
        preset = parse_actions_run_preset(value.get("preset"))
        if preset is None:
            return None
        return ActionsRunProfile(
            preset=preset, options=resolve_actions_run_preset(preset, value.get("options"))
        )

    return None
