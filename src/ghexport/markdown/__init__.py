"""Markdown renderers for issues, pull requests and Actions runs."""

from .actions_run import actions_run_to_markdown
from .issue import issue_to_markdown
from .job_logs import attach_job_step_logs, is_failure_conclusion
from .pull import pr_to_markdown

__all__ = [
    "actions_run_to_markdown",
    "attach_job_step_logs",
    "is_failure_conclusion",
    "issue_to_markdown",
    "pr_to_markdown",
]
