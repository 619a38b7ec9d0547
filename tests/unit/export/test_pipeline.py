"""End-to-end tests for the export pipeline and runner with a mocked client.

Covers:
- Profile-driven fetch selection per target kind
- Degradation to warnings (job logs, commit details, thread resolution)
- Cancellation priority over degradation
- Range selection on pull timelines and issue comments
- Error mapping at the runner boundary
"""

import pytest
from prometheus_client import REGISTRY

from ghexport.cancellation import AbortController, AbortError
from ghexport.connectors.github.errors import GitHubApiError
from ghexport.connectors.github.review_threads import PullReviewThreadResolution
from ghexport.export.cache import TtlCache
from ghexport.export.pipeline import (
    THREADS_INCOMPLETE_WARNING,
    THREADS_UNAVAILABLE_WARNING,
    apply_smart_diff_mode,
    combine_warnings,
    filter_resolved_review_comments,
    run_export_pipeline,
)
from ghexport.export.runner import run_export
from ghexport.export.selection import SWAPPED_WARNING
from ghexport.models.profile import (
    ActionsRunPreset,
    ActionsRunProfile,
    IssueProfile,
    PullExportOptions,
    PullPreset,
    PullProfile,
    resolve_actions_run_preset,
    resolve_pull_preset,
)
from ghexport.models.request import ExportErrorCode, ExportRequest
from ghexport.models.selection import Selection
from ghexport.models.target import (
    ActionsRunTarget,
    IssueTarget,
    Marker,
    MarkerRange,
    MarkerType,
    PullTarget,
)

PULL = PullTarget(owner="octocat", repo="hello", number=12)
ISSUE = IssueTarget(owner="octocat", repo="hello", number=7)
RUN = ActionsRunTarget(owner="octocat", repo="hello", run_id=99)


def _pull_profile(preset=PullPreset.CUSTOM, **options):
    if preset is PullPreset.CUSTOM:
        return PullProfile(preset=preset, options=resolve_pull_preset(preset, options))
    return PullProfile(preset=preset, options=resolve_pull_preset(preset))


def _actions_profile(preset):
    return ActionsRunProfile(preset=preset, options=resolve_actions_run_preset(preset))


def _review_comment(comment_id, body, created_at="2024-01-01T00:00:00Z"):
    return {
        "id": comment_id,
        "body": body,
        "path": "app.py",
        "line": 3,
        "user": {"login": "reviewer"},
        "created_at": created_at,
    }


def _commit(sha, files=None, date="2024-01-01T00:00:00Z"):
    commit = {"sha": sha, "commit": {"message": f"commit {sha}", "author": {"date": date}}}
    if files is not None:
        commit["files"] = [{"filename": name, "patch": f"+{name}"} for name in files]
    return commit


# =============================================================================
# Pure helpers
# =============================================================================


class TestHelpers:
    def test_combine_warnings(self):
        assert combine_warnings(None, "", "  ") is None
        assert combine_warnings(" a ", None, "b") == "a b"

    def test_smart_diff_narrows_but_keeps_commits(self):
        commits = [_commit("a", ["keep.py", "drop.py"]), _commit("b", ["drop.py"]), _commit("c")]
        narrowed = apply_smart_diff_mode(commits, [{"filename": "keep.py"}])

        assert [c["sha"] for c in narrowed] == ["a", "b", "c"]
        assert [f["filename"] for f in narrowed[0]["files"]] == ["keep.py"]
        assert narrowed[1]["files"] == []
        assert narrowed[2] is commits[2]
        # input is untouched
        assert len(commits[0]["files"]) == 2

    def test_smart_diff_unchanged_commit_is_same_object(self):
        commits = [_commit("a", ["keep.py"])]
        assert apply_smart_diff_mode(commits, [{"filename": "keep.py"}])[0] is commits[0]

    def test_filter_resolved(self):
        comments = [_review_comment(1, "resolved"), _review_comment(2, "open"), _review_comment(3, "?")]
        kept, warning = filter_resolved_review_comments(comments, {1: True, 2: False})

        assert [c["id"] for c in kept] == [2, 3]
        assert warning == (
            "1 review comment(s) were kept because thread resolution state was unavailable."
        )

    def test_filter_without_resolution_is_noop(self):
        comments = [_review_comment(1, "x")]
        assert filter_resolved_review_comments(comments, None) == (comments, None)


# =============================================================================
# Pull requests
# =============================================================================


class TestPullExport:
    @pytest.mark.asyncio
    async def test_review_comments_only(self, fake_client):
        fake_client.get_pull_review_comments.return_value = [_review_comment(5, "Nit: rename")]
        request = ExportRequest(
            request_id="r1", target=PULL, profile=_pull_profile(PullPreset.REVIEW_COMMENTS_ONLY)
        )

        result = await run_export(request, fake_client)

        assert result.ok
        assert "## Review Comments (1)" in result.markdown
        assert "Nit: rename" in result.markdown
        for section in ("## Issue Comments", "## Commits", "## Reviews", "## Timeline"):
            assert section not in result.markdown
        fake_client.get_issue_comments.assert_not_awaited()
        fake_client.get_pull_reviews.assert_not_awaited()
        fake_client.get_pull_commits.assert_not_awaited()
        fake_client.get_pull_files.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_default_profile_is_full_conversation_timeline(self, fake_client):
        fake_client.get_issue_comments.return_value = [
            {"id": 1, "body": "second", "created_at": "2024-01-02T00:00:00Z"}
        ]
        fake_client.get_pull_reviews.return_value = [
            {"id": 2, "body": "first", "state": "APPROVED", "submitted_at": "2024-01-01T00:00:00Z"}
        ]

        output = await run_export_pipeline(ExportRequest(request_id="r", target=PULL), fake_client)

        assert "## Timeline (2)" in output.markdown
        assert output.markdown.index("first") < output.markdown.index("second")
        assert output.warning is None

    @pytest.mark.asyncio
    async def test_resolved_comments_filtered_with_unknown_warning(self, fake_client):
        fake_client.get_pull_review_comments.return_value = [
            _review_comment(1, "already resolved"),
            _review_comment(2, "still open"),
            _review_comment(3, "orphan"),
        ]
        fake_client.get_pull_review_thread_resolution.return_value = PullReviewThreadResolution(
            comment_resolution={1: True, 2: False}
        )
        profile = _pull_profile(
            include_review_comments=True, ignore_resolved_comments=True, timeline_mode=False
        )

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=PULL, profile=profile), fake_client
        )

        assert "already resolved" not in output.markdown
        assert "still open" in output.markdown
        assert "orphan" in output.markdown
        assert output.warning == (
            "1 review comment(s) were kept because thread resolution state was unavailable."
        )

    @pytest.mark.asyncio
    async def test_incomplete_resolution_warns(self, fake_client):
        fake_client.get_pull_review_comments.return_value = [_review_comment(1, "open")]
        fake_client.get_pull_review_thread_resolution.return_value = PullReviewThreadResolution(
            comment_resolution={1: False}, incomplete=True
        )
        profile = _pull_profile(ignore_resolved_comments=True)

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=PULL, profile=profile), fake_client
        )

        assert output.warning == THREADS_INCOMPLETE_WARNING

    @pytest.mark.asyncio
    async def test_resolution_failure_degrades_to_warning(self, fake_client):
        fake_client.get_pull_review_comments.return_value = [_review_comment(1, "kept anyway")]
        fake_client.get_pull_review_thread_resolution.side_effect = RuntimeError("both failed")
        profile = _pull_profile(ignore_resolved_comments=True)

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=PULL, profile=profile), fake_client
        )

        assert "kept anyway" in output.markdown
        assert output.warning == THREADS_UNAVAILABLE_WARNING

    @pytest.mark.asyncio
    async def test_resolution_abort_propagates(self, fake_client):
        fake_client.get_pull_review_thread_resolution.side_effect = AbortError()
        profile = _pull_profile(ignore_resolved_comments=True)

        result = await run_export(
            ExportRequest(request_id="r", target=PULL, profile=profile), fake_client
        )

        assert result.to_dict() == {
            "ok": False,
            "code": "aborted",
            "message": "Export was canceled.",
        }

    @pytest.mark.asyncio
    async def test_commit_details_smart_diff_and_fallback(self, fake_client):
        fake_client.get_pull_commits.return_value = [_commit("aaa1111"), _commit("bbb2222")]
        fake_client.get_pull_files.return_value = [{"filename": "kept.py"}]

        async def get_commit(*, owner, repo, sha, signal=None):
            if sha == "bbb2222":
                raise GitHubApiError(status=500, status_text="Server Error")
            return _commit(sha, ["kept.py", "outside.py"])

        fake_client.get_commit.side_effect = get_commit
        profile = _pull_profile(
            include_issue_comments=False,
            include_review_comments=False,
            include_reviews=False,
            include_commits=True,
            include_commit_diffs=True,
            smart_diff_mode=True,
            include_file_diffs=False,
            timeline_mode=False,
        )

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=PULL, profile=profile), fake_client
        )

        assert "## Commits (2)" in output.markdown
        assert "#### kept.py" in output.markdown
        assert "outside.py" not in output.markdown
        assert "commit bbb2222" in output.markdown
        assert "## Files" not in output.markdown
        # commit detail fallback degrades silently
        assert output.warning is None

    @pytest.mark.asyncio
    async def test_commit_detail_abort_is_not_swallowed(self, fake_client):
        fake_client.get_pull_commits.return_value = [_commit("aaa1111")]
        fake_client.get_commit.side_effect = AbortError()

        result = await run_export(
            ExportRequest(
                request_id="r", target=PULL, profile=_pull_profile(PullPreset.WITH_DIFFS)
            ),
            fake_client,
        )

        assert result.code is ExportErrorCode.ABORTED

    @pytest.mark.asyncio
    async def test_commit_details_cached_per_scope(self, fake_client):
        fake_client.get_pull_commits.return_value = [_commit("aaa1111")]
        fake_client.get_commit.return_value = _commit("aaa1111", ["x.py"])
        cache = TtlCache(30_000)
        request = ExportRequest(
            request_id="r", target=PULL, profile=_pull_profile(PullPreset.COMMIT_LOG)
        )

        await run_export_pipeline(request, fake_client, cache=cache, auth_scope_key="token")
        await run_export_pipeline(request, fake_client, cache=cache, auth_scope_key="token")
        assert fake_client.get_commit.await_count == 1

        await run_export_pipeline(request, fake_client, cache=cache, auth_scope_key="anon")
        assert fake_client.get_commit.await_count == 2

    @pytest.mark.asyncio
    async def test_range_selection_on_timeline(self, fake_client):
        fake_client.get_issue_comments.return_value = [
            {"id": 1, "body": "before", "created_at": "2024-01-01T00:00:01Z"},
            {"id": 3, "body": "after", "created_at": "2024-01-01T00:00:03Z"},
        ]
        fake_client.get_pull_review_comments.return_value = [
            _review_comment(2, "inside", created_at="2024-01-01T00:00:02Z")
        ]
        selection = Selection.from_range(
            MarkerRange(
                start=Marker(MarkerType.REVIEW_COMMENT, 2),
                end=Marker(MarkerType.ISSUE_COMMENT, 1),
            )
        )

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=PULL, selection=selection), fake_client
        )

        assert "before" in output.markdown
        assert "inside" in output.markdown
        assert "after" not in output.markdown
        assert output.warning == SWAPPED_WARNING

    @pytest.mark.asyncio
    async def test_missing_marker_is_invalid_selection(self, fake_client):
        fake_client.get_issue_comments.return_value = [
            {"id": 1, "body": "only", "created_at": "2024-01-01T00:00:01Z"}
        ]
        selection = Selection.from_range(MarkerRange(start=Marker(MarkerType.REVIEW, 404)))

        result = await run_export(
            ExportRequest(request_id="r", target=PULL, selection=selection), fake_client
        )

        assert result.code is ExportErrorCode.INVALID_SELECTION
        assert result.message == "Selected marker could not be found in the PR timeline."

    @pytest.mark.asyncio
    async def test_primary_resource_failure_maps_status(self, fake_client):
        fake_client.get_pull_request.side_effect = GitHubApiError(404, "Not Found")

        result = await run_export(ExportRequest(request_id="r", target=PULL), fake_client)

        assert result.ok is False
        assert result.code is ExportErrorCode.NOT_FOUND


# =============================================================================
# Issues
# =============================================================================


class TestIssueExport:
    comments = [
        {"id": 10, "body": "first", "created_at": "2024-01-01T00:00:00Z"},
        {"id": 11, "body": "second", "created_at": "2024-01-02T00:00:00Z"},
        {"id": 12, "body": "third", "created_at": "2024-01-03T00:00:00Z"},
    ]

    @pytest.mark.asyncio
    async def test_range_slice(self, fake_client):
        fake_client.get_issue_comments.return_value = self.comments
        selection = Selection.from_range(
            MarkerRange(start=Marker(MarkerType.ISSUE_COMMENT, 11))
        )

        result = await run_export(
            ExportRequest(request_id="r", target=ISSUE, selection=selection), fake_client
        )

        assert result.ok
        assert "## Comments (2)" in result.markdown
        assert "first" not in result.markdown

    @pytest.mark.asyncio
    async def test_non_historical_mode_reverses(self, fake_client):
        fake_client.get_issue_comments.return_value = self.comments

        output = await run_export_pipeline(
            ExportRequest(
                request_id="r", target=ISSUE, profile=IssueProfile(timeline_mode=False)
            ),
            fake_client,
        )

        assert output.markdown.index("third") < output.markdown.index("first")

    @pytest.mark.asyncio
    async def test_wrong_marker_type(self, fake_client):
        fake_client.get_issue_comments.return_value = self.comments
        selection = Selection.from_range(MarkerRange(end=Marker(MarkerType.REVIEW, 11)))

        result = await run_export(
            ExportRequest(request_id="r", target=ISSUE, selection=selection), fake_client
        )

        assert result.code is ExportErrorCode.INVALID_SELECTION
        assert result.message == "End marker must be an issue comment."


# =============================================================================
# Actions runs
# =============================================================================

FAILING_LOG = (
    "2024-01-01T00:00:00.0000000Z ##[group]Run pytest\n"
    "2024-01-01T00:00:01.0000000Z FAILED tests/test_app.py::test_x\n"
    "2024-01-01T00:00:02.0000000Z ##[endgroup]\n"
)


def _jobs():
    return [
        {
            "id": 1,
            "name": "lint",
            "status": "completed",
            "conclusion": "success",
            "steps": [{"number": 1, "name": "ruff", "status": "completed", "conclusion": "success"}],
        },
        {
            "id": 2,
            "name": "test",
            "status": "completed",
            "conclusion": "failure",
            "steps": [
                {"number": 1, "name": "pytest", "status": "completed", "conclusion": "failure"}
            ],
        },
    ]


class TestActionsRunExport:
    @pytest.mark.asyncio
    async def test_only_summary_skips_jobs(self, fake_client):
        output = await run_export_pipeline(
            ExportRequest(
                request_id="r",
                target=RUN,
                profile=_actions_profile(ActionsRunPreset.ONLY_SUMMARY),
            ),
            fake_client,
        )

        assert output.markdown.startswith("# Actions Run: CI")
        assert "## Jobs" not in output.markdown
        fake_client.get_actions_run_jobs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failure_job_fetches_failing_logs_only(self, fake_client):
        fake_client.get_actions_run_jobs.return_value = _jobs()
        fake_client.get_actions_job_logs.return_value = FAILING_LOG

        output = await run_export_pipeline(
            ExportRequest(
                request_id="r",
                target=RUN,
                profile=_actions_profile(ActionsRunPreset.FAILURE_JOB),
            ),
            fake_client,
        )

        assert fake_client.get_actions_job_logs.await_count == 1
        assert fake_client.get_actions_job_logs.await_args.kwargs["job_id"] == 2
        assert "## Jobs (1)" in output.markdown
        assert "FAILED tests/test_app.py::test_x" in output.markdown
        assert "lint" not in output.markdown

    @pytest.mark.asyncio
    async def test_log_failures_counted_in_warning(self, fake_client):
        fake_client.get_actions_run_jobs.return_value = _jobs()

        async def get_logs(*, owner, repo, job_id, signal=None):
            if job_id == 1:
                raise GitHubApiError(410, "Gone")
            return FAILING_LOG

        fake_client.get_actions_job_logs.side_effect = get_logs

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=RUN), fake_client
        )

        assert "## Jobs (2)" in output.markdown
        assert "FAILED tests/test_app.py::test_x" in output.markdown
        assert output.warning == (
            "1 job log(s) could not be downloaded, so some step logs may be missing."
        )

    @pytest.mark.asyncio
    async def test_log_abort_returns_aborted_without_retry(self, fake_client):
        fake_client.get_actions_run_jobs.return_value = _jobs()[1:]
        fake_client.get_actions_job_logs.side_effect = AbortError()

        result = await run_export(
            ExportRequest(request_id="r", target=RUN),
            fake_client,
            concurrency=4,
        )

        assert result.to_dict() == {
            "ok": False,
            "code": "aborted",
            "message": "Export was canceled.",
        }
        assert fake_client.get_actions_job_logs.await_count == 1

    @pytest.mark.asyncio
    async def test_pre_aborted_signal(self, fake_client):
        fake_client.get_actions_run_jobs.return_value = _jobs()
        controller = AbortController()
        controller.abort()

        result = await run_export(
            ExportRequest(request_id="r", target=RUN), fake_client, signal=controller.signal
        )

        assert result.code is ExportErrorCode.ABORTED
        fake_client.get_actions_job_logs.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_request_profile_of_other_kind_is_ignored(self, fake_client):
        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=RUN, profile=PullProfile()),
            fake_client,
        )
        assert "## Jobs (0)" in output.markdown

    @pytest.mark.asyncio
    async def test_custom_options_render_steps_without_logs(self, fake_client):
        fake_client.get_actions_run_jobs.return_value = _jobs()
        fake_client.get_actions_job_logs.return_value = ""
        profile = ActionsRunProfile(
            preset=ActionsRunPreset.EXPORT_ALL,
            options=resolve_actions_run_preset(ActionsRunPreset.EXPORT_ALL),
        )

        output = await run_export_pipeline(
            ExportRequest(request_id="r", target=RUN, profile=profile), fake_client
        )

        assert "- 1. pytest (completed/failure)" in output.markdown
        assert output.warning is None


@pytest.mark.asyncio
async def test_runner_success_shape(fake_client):
    result = await run_export(
        ExportRequest(request_id="r", target=PULL, profile=PullProfile(options=PullExportOptions())),
        fake_client,
    )
    data = result.to_dict()
    assert data["ok"] is True
    assert data["markdown"].startswith("# Pull Request: PR")
    assert "warning" not in data


@pytest.mark.asyncio
async def test_runner_records_outcome_metrics(fake_client):
    def sample(status):
        return REGISTRY.get_sample_value(
            "ghexport_exports_total", {"kind": "issue", "status": status}
        ) or 0.0

    ok_before, missing_before = sample("ok"), sample("notFound")

    await run_export(ExportRequest(request_id="r", target=ISSUE), fake_client)
    fake_client.get_issue.side_effect = GitHubApiError(404, "Not Found")
    await run_export(ExportRequest(request_id="r", target=ISSUE), fake_client)

    assert sample("ok") == ok_before + 1
    assert sample("notFound") == missing_before + 1
