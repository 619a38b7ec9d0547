"""Tests for stored settings coercion and patching."""

from ghexport.models.profile import (
    ActionsRunPreset,
    PullPreset,
    resolve_actions_run_preset,
    resolve_pull_preset,
)
from ghexport.models.settings import (
    RememberScope,
    apply_settings_patch,
    coerce_settings,
    create_default_settings,
    is_settings,
    settings_to_dict,
)
from ghexport.models.target import TargetKind


class TestCoerceSettings:
    def test_non_mapping_yields_defaults(self):
        assert coerce_settings(None) == create_default_settings()
        assert coerce_settings("garbage") == create_default_settings()

    def test_round_trip_through_dict(self):
        settings = create_default_settings()
        data = settings_to_dict(settings)
        assert is_settings(data)
        assert coerce_settings(data) == settings

    def test_field_level_fallback(self):
        settings = coerce_settings(
            {
                "behavior": {"rememberLastUsed": "yes", "rememberScope": "repo"},
                "enabled": {"pull": False, "issue": 0},
            }
        )
        assert settings.behavior.remember_last_used is True
        assert settings.behavior.remember_scope is RememberScope.REPO
        assert settings.enabled.pull is False
        assert settings.enabled.issue is True
        assert settings.enabled.for_kind(TargetKind.ACTIONS_RUN) is True

    def test_stored_profiles_are_invariant_enforced(self):
        settings = coerce_settings(
            {
                "defaults": {
                    "pull": {
                        "kind": "pull",
                        "preset": "custom",
                        "options": {"includeCommits": False, "includeCommitDiffs": True},
                    },
                    "actionsRun": {
                        "kind": "actionsRun",
                        "preset": "export-all",
                        "options": {"includeJobs": False, "includeSteps": True},
                    },
                }
            }
        )
        assert settings.defaults.pull.options.include_commit_diffs is False
        assert settings.defaults.actions_run.options.include_steps is False

    def test_unknown_preset_keeps_default_preset(self):
        settings = coerce_settings({"defaults": {"pull": {"preset": "mystery"}}})
        assert settings.defaults.pull.preset is PullPreset.FULL_CONVERSATION


class TestIsSettings:
    def test_rejects_wrong_version(self):
        data = settings_to_dict(create_default_settings())
        data["version"] = 2
        assert not is_settings(data)

    def test_rejects_missing_sections(self):
        assert not is_settings({"version": 1})


class TestApplySettingsPatch:
    def test_does_not_mutate_current(self):
        current = create_default_settings()
        patched = apply_settings_patch(current, {"behavior": {"rememberLastUsed": False}})
        assert current.behavior.remember_last_used is True
        assert patched.behavior.remember_last_used is False

    def test_custom_pull_layers_over_current_options(self):
        current = apply_settings_patch(
            create_default_settings(),
            {"defaults": {"pull": {"preset": "custom", "options": {"includeCommits": True}}}},
        )
        patched = apply_settings_patch(
            current, {"defaults": {"pull": {"options": {"includeFileDiffs": True}}}}
        )
        assert patched.defaults.pull.preset is PullPreset.CUSTOM
        assert patched.defaults.pull.options.include_commits is True
        assert patched.defaults.pull.options.include_file_diffs is True

    def test_builtin_pull_preset_is_canonical(self):
        patched = apply_settings_patch(
            create_default_settings(),
            {"defaults": {"pull": {"preset": "commit-log", "options": {"includeReviews": True}}}},
        )
        assert patched.defaults.pull.options == resolve_pull_preset(PullPreset.COMMIT_LOG)

    def test_actions_patch_layers_and_enforces(self):
        patched = apply_settings_patch(
            create_default_settings(),
            {
                "defaults": {
                    "actionsRun": {
                        "options": {"onlyFailureJobs": True, "onlyFailureSteps": True},
                    }
                }
            },
        )
        assert patched.defaults.actions_run.preset is ActionsRunPreset.EXPORT_ALL
        assert patched.defaults.actions_run.options.only_failure_steps is True

        # current options layer over a newly selected preset
        switched = apply_settings_patch(
            patched, {"defaults": {"actionsRun": {"preset": "only-summary"}}}
        )
        assert switched.defaults.actions_run.preset is ActionsRunPreset.ONLY_SUMMARY
        assert switched.defaults.actions_run.options.include_jobs is True

        patched = apply_settings_patch(
            patched, {"defaults": {"actionsRun": {"options": {"includeJobs": False}}}}
        )
        options = patched.defaults.actions_run.options
        assert options.include_jobs is False
        assert not (options.include_steps or options.only_failure_jobs or options.only_failure_steps)

    def test_issue_timeline_patch(self):
        patched = apply_settings_patch(
            create_default_settings(), {"defaults": {"issue": {"timelineMode": False}}}
        )
        assert patched.defaults.issue.timeline_mode is False

    def test_mistyped_values_ignored(self):
        current = create_default_settings()
        patched = apply_settings_patch(
            current,
            {
                "behavior": {"rememberScope": "planet"},
                "enabled": {"pull": "no"},
                "defaults": {"issue": {"timelineMode": 1}},
            },
        )
        assert patched == current

    def test_default_actions_options(self):
        settings = create_default_settings()
        assert settings.defaults.actions_run.options == resolve_actions_run_preset(
            ActionsRunPreset.EXPORT_ALL
        )
