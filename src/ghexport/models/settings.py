"""Versioned user settings: behavior flags, enabled kinds, default profiles.

Stored settings are untrusted. ``coerce_settings`` parses them leniently,
falling back field by field to the defaults, and every stored profile is
re-resolved and invariant-enforced at read time.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping

from .invariants import enforce_actions_run_invariants, enforce_pull_invariants
from .profile import (
    ActionsRunExportOptions,
    ActionsRunProfile,
    IssueProfile,
    ProfileDefaults,
    PullExportOptions,
    PullPreset,
    PullProfile,
    create_default_profiles,
    parse_actions_run_preset,
    parse_pull_preset,
    profile_to_dict,
    resolve_actions_run_preset,
    resolve_pull_preset,
    sanitize_option_overrides,
)
from .target import TargetKind

__all__ = [
    "SETTINGS_VERSION",
    "RememberScope",
    "SettingsBehavior",
    "SettingsEnabled",
    "SettingsV1",
    "apply_settings_patch",
    "coerce_settings",
    "create_default_settings",
    "is_settings",
    "settings_to_dict",
]

SETTINGS_VERSION = 1


class RememberScope(str, Enum):
    GLOBAL = "global"
    REPO = "repo"


@dataclass(frozen=True)
class SettingsBehavior:
    remember_last_used: bool = True
    remember_scope: RememberScope = RememberScope.GLOBAL


@dataclass(frozen=True)
class SettingsEnabled:
    pull: bool = True
    issue: bool = True
    actions_run: bool = True

    def for_kind(self, kind: TargetKind) -> bool:
        if kind is TargetKind.PULL:
            return self.pull
        if kind is TargetKind.ISSUE:
            return self.issue
        return self.actions_run


@dataclass(frozen=True)
class SettingsV1:
    behavior: SettingsBehavior = field(default_factory=SettingsBehavior)
    enabled: SettingsEnabled = field(default_factory=SettingsEnabled)
    defaults: ProfileDefaults = field(default_factory=create_default_profiles)
    version: int = SETTINGS_VERSION


def create_default_settings() -> SettingsV1:
    return SettingsV1()


def _section(value: Mapping[str, Any], *keys: str) -> Mapping[str, Any]:
    for key in keys:
        candidate = value.get(key)
        if isinstance(candidate, Mapping):
            return candidate
    return {}


def _read_bool(value: Mapping[str, Any], keys: tuple[str, ...], fallback: bool) -> bool:
    for key in keys:
        candidate = value.get(key)
        if isinstance(candidate, bool):
            return candidate
    return fallback


def _read_scope(value: Any, fallback: RememberScope) -> RememberScope:
    try:
        return RememberScope(value)
    except ValueError:
        return fallback


def _coerce_pull_profile(value: Any, fallback: PullProfile) -> PullProfile:
    if not isinstance(value, Mapping):
        return fallback
    preset = parse_pull_preset(value.get("preset")) or fallback.preset
    options_source = value.get("options")
    if not isinstance(options_source, Mapping):
        options_source = fallback.options
    return PullProfile(
        preset=preset,
        options=enforce_pull_invariants(resolve_pull_preset(preset, options_source)),
    )


def _coerce_issue_profile(value: Any, fallback: IssueProfile) -> IssueProfile:
    if not isinstance(value, Mapping):
        return fallback
    return IssueProfile(
        timeline_mode=_read_bool(value, ("timelineMode", "timeline_mode"), fallback.timeline_mode)
    )


def _coerce_actions_run_profile(value: Any, fallback: ActionsRunProfile) -> ActionsRunProfile:
    if not isinstance(value, Mapping):
        return fallback
    preset = parse_actions_run_preset(value.get("preset")) or fallback.preset
    options_source = value.get("options")
    if not isinstance(options_source, Mapping):
        options_source = fallback.options
    return ActionsRunProfile(
        preset=preset,
        options=enforce_actions_run_invariants(
            resolve_actions_run_preset(preset, options_source)
        ),
    )


def coerce_settings(value: Any) -> SettingsV1:
    """Parse stored settings, replacing anything malformed with defaults."""
    base = create_default_settings()
    if not isinstance(value, Mapping):
        return base

    behavior = _section(value, "behavior")
    enabled = _section(value, "enabled")
    defaults = _section(value, "defaults")

    return SettingsV1(
        behavior=SettingsBehavior(
            remember_last_used=_read_bool(
                behavior,
                ("rememberLastUsed", "remember_last_used"),
                base.behavior.remember_last_used,
            ),
            remember_scope=_read_scope(
                behavior.get("rememberScope", behavior.get("remember_scope")),
                base.behavior.remember_scope,
            ),
        ),
        enabled=SettingsEnabled(
            pull=_read_bool(enabled, ("pull",), base.enabled.pull),
            issue=_read_bool(enabled, ("issue",), base.enabled.issue),
            actions_run=_read_bool(
                enabled, ("actionsRun", "actions_run"), base.enabled.actions_run
            ),
        ),
        defaults=ProfileDefaults(
            pull=_coerce_pull_profile(defaults.get("pull"), base.defaults.pull),
            issue=_coerce_issue_profile(defaults.get("issue"), base.defaults.issue),
            actions_run=_coerce_actions_run_profile(
                defaults.get("actionsRun", defaults.get("actions_run")),
                base.defaults.actions_run,
            ),
        ),
    )


def is_settings(value: Any) -> bool:
    """True when *value* is a fully well-formed stored settings dict."""
    if not isinstance(value, Mapping) or value.get("version") != SETTINGS_VERSION:
        return False

    behavior = value.get("behavior")
    enabled = value.get("enabled")
    defaults = value.get("defaults")
    if not all(isinstance(part, Mapping) for part in (behavior, enabled, defaults)):
        return False

    if not isinstance(behavior.get("rememberLastUsed"), bool):
        return False
    if behavior.get("rememberScope") not in (RememberScope.GLOBAL.value, RememberScope.REPO.value):
        return False
    if not all(isinstance(enabled.get(key), bool) for key in ("pull", "issue", "actionsRun")):
        return False

    pull, issue, actions = defaults.get("pull"), defaults.get("issue"), defaults.get("actionsRun")
    if not all(isinstance(part, Mapping) for part in (pull, issue, actions)):
        return False

    return (
        pull.get("kind") == TargetKind.PULL.value
        and parse_pull_preset(pull.get("preset")) is not None
        and isinstance(pull.get("options"), Mapping)
        and issue.get("kind") == TargetKind.ISSUE.value
        and isinstance(issue.get("timelineMode"), bool)
        and actions.get("kind") == TargetKind.ACTIONS_RUN.value
        and parse_actions_run_preset(actions.get("preset")) is not None
        and isinstance(actions.get("options"), Mapping)
    )


def settings_to_dict(settings: SettingsV1) -> dict[str, Any]:
    return {
        "version": settings.version,
        "behavior": {
            "rememberLastUsed": settings.behavior.remember_last_used,
            "rememberScope": settings.behavior.remember_scope.value,
        },
        "enabled": {
            "pull": settings.enabled.pull,
            "issue": settings.enabled.issue,
            "actionsRun": settings.enabled.actions_run,
        },
        "defaults": {
            "pull": profile_to_dict(settings.defaults.pull),
            "issue": profile_to_dict(settings.defaults.issue),
            "actionsRun": profile_to_dict(settings.defaults.actions_run),
        },
    }


def apply_settings_patch(current: SettingsV1, patch: Mapping[str, Any]) -> SettingsV1:
    """Return new settings with *patch* applied; *current* is not modified.

    Unrecognized or mistyped patch values are ignored. For the pull
    ``custom`` preset the patch options layer over the current options;
    Actions patches always layer over the current options. Invariants are
    enforced on every patched profile.
    """
    behavior = current.behavior
    enabled = current.enabled
    defaults = current.defaults

    behavior_patch = _section(patch, "behavior")
    if behavior_patch:
        behavior = SettingsBehavior(
            remember_last_used=_read_bool(
                behavior_patch,
                ("rememberLastUsed", "remember_last_used"),
                behavior.remember_last_used,
            ),
            remember_scope=_read_scope(
                behavior_patch.get("rememberScope", behavior_patch.get("remember_scope")),
                behavior.remember_scope,
            ),
        )

    enabled_patch = _section(patch, "enabled")
    if enabled_patch:
        enabled = SettingsEnabled(
            pull=_read_bool(enabled_patch, ("pull",), enabled.pull),
            issue=_read_bool(enabled_patch, ("issue",), enabled.issue),
            actions_run=_read_bool(
                enabled_patch, ("actionsRun", "actions_run"), enabled.actions_run
            ),
        )

    defaults_patch = _section(patch, "defaults")

    pull_patch = _section(defaults_patch, "pull")
    if pull_patch:
        preset = parse_pull_preset(pull_patch.get("preset")) or defaults.pull.preset
        seed: Any = pull_patch.get("options")
        if preset is PullPreset.CUSTOM:
            seed = {
                **sanitize_option_overrides(PullExportOptions, defaults.pull.options),
                **sanitize_option_overrides(PullExportOptions, seed),
            }
        defaults = replace(
            defaults,
            pull=PullProfile(
                preset=preset,
                options=enforce_pull_invariants(resolve_pull_preset(preset, seed)),
            ),
        )

    issue_patch = _section(defaults_patch, "issue")
    timeline_mode = issue_patch.get("timelineMode", issue_patch.get("timeline_mode"))
    if isinstance(timeline_mode, bool):
        defaults = replace(defaults, issue=IssueProfile(timeline_mode=timeline_mode))

    actions_patch = _section(defaults_patch, "actionsRun", "actions_run")
    if actions_patch:
        preset = parse_actions_run_preset(actions_patch.get("preset")) or defaults.actions_run.preset
        seed = {
            **sanitize_option_overrides(ActionsRunExportOptions, defaults.actions_run.options),
            **sanitize_option_overrides(ActionsRunExportOptions, actions_patch.get("options")),
        }
        defaults = replace(
            defaults,
            actions_run=ActionsRunProfile(
                preset=preset,
                options=enforce_actions_run_invariants(resolve_actions_run_preset(preset, seed)),
            ),
        )

    return SettingsV1(behavior=behavior, enabled=enabled, defaults=defaults)
