"""Render a GitHub Actions run, its jobs and step logs as Markdown."""

from typing import Any, Optional

from ..models.invariants import enforce_actions_run_invariants
from ..models.profile import ActionsRunExportOptions, create_default_actions_run_options
from .format import fenced, format_date, format_user
from .job_logs import is_failure_conclusion

__all__ = ["actions_run_to_markdown"]


def _status(record: dict[str, Any]) -> str:
    return f"{record.get('status') or 'unknown'}/{record.get('conclusion') or 'pending'}"


def _summary(run: dict[str, Any]) -> list[str]:
    lines = [
        f"- URL: {run.get('html_url', '')}",
        f"- Status: {_status(run)}",
        f"- Event: {run.get('event') or 'unknown'}",
        f"- Branch: {run.get('head_branch') or 'unknown'}",
        f"- Commit: {(run.get('head_sha') or 'unknown')[:7]}",
    ]
    if run.get("run_number") is not None:
        lines.append(f"- Run: #{run['run_number']} (attempt {run.get('run_attempt') or 1})")
    lines += [
        f"- Actor: {format_user(run.get('actor'))}",
        f"- Created: {format_date(run.get('created_at'))}",
        f"- Updated: {format_date(run.get('updated_at'))}",
    ]
    return lines


def _step_lines(step: dict[str, Any]) -> list[str]:
    lines = [f"- {step.get('number', '?')}. {step.get('name', 'Unnamed step')} ({_status(step)})"]
    if step.get("log"):
        lines += ["", fenced(step["log"]), ""]
    return lines


def _job_lines(job: dict[str, Any], options: ActionsRunExportOptions) -> list[str]:
    lines = [
        "",
        f"### {job.get('name', 'Unnamed job')} ({_status(job)})",
        "",
        f"- Started: {format_date(job.get('started_at'))}",
        f"- Completed: {format_date(job.get('completed_at'))}",
    ]
    if job.get("runner_name"):
        lines.append(f"- Runner: {job['runner_name']}")

    if options.include_steps:
        steps = job.get("steps") or []
        if options.only_failure_steps:
            steps = [s for s in steps if is_failure_conclusion(s.get("conclusion"))]
        lines += ["", f"#### Steps ({len(steps)})", ""]
        for step in steps:
            lines += _step_lines(step)
        if not steps:
            lines.append("_No steps._")
    elif job.get("log"):
        lines += ["", fenced(job["log"])]

    return lines


def actions_run_to_markdown(
    run: dict[str, Any],
    jobs: Optional[list[dict[str, Any]]] = None,
    options: Optional[ActionsRunExportOptions] = None,
) -> str:
    """Compose an Actions run export.

    Args:
        run: GitHub Actions workflow run dict
        jobs: Jobs of the run, steps optionally carrying ``log`` text
        options: Export options (default: export-all)

    Returns:
        Markdown document
    """
    options = enforce_actions_run_invariants(options or create_default_actions_run_options())
    name = run.get("name") or f"Run {run.get('id', '')}".strip()

    parts = [f"# Actions Run: {name}"]
    if options.include_summary:
        parts += ["", *_summary(run)]

    if options.include_jobs:
        selected = list(jobs or [])
        if options.only_failure_jobs:
            selected = [j for j in selected if is_failure_conclusion(j.get("conclusion"))]
        parts += ["", f"## Jobs ({len(selected)})"]
        if not selected:
            parts += ["", "_No jobs._"]
        for job in selected:
            parts += _job_lines(job, options)

    return "\n".join(parts) + "\n"
