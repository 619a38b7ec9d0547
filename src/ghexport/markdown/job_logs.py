"""Split a GitHub Actions job log into per-step sections."""

import copy
import re
from typing import Any, Optional

__all__ = ["FAILURE_CONCLUSIONS", "attach_job_step_logs", "is_failure_conclusion", "split_step_logs"]

FAILURE_CONCLUSIONS = frozenset({"failure", "timed_out", "startup_failure", "cancelled"})

_TIMESTAMP_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z ?")
_GROUP = "##[group]"
_END_GROUP = "##[endgroup]"


def is_failure_conclusion(conclusion: Optional[str]) -> bool:
    """True for job/step conclusions that count as failed."""
    return bool(conclusion) and conclusion.lower() in FAILURE_CONCLUSIONS


def split_step_logs(raw_log: str) -> list[str]:
    """Return one text block per ``##[group]`` section, timestamps stripped.

    Lines before the first group marker are dropped. An empty list means
    the log carries no group markers at all.
    """
    sections: list[list[str]] = []
    for raw_line in raw_log.splitlines():
        line = _TIMESTAMP_PREFIX.sub("", raw_line)
        if line.startswith(_GROUP):
            sections.append([line[len(_GROUP):]])
        elif line.startswith(_END_GROUP):
            continue
        elif sections:
            sections[-1].append(line)

    return ["\n".join(lines).strip() for lines in sections]


def attach_job_step_logs(job: dict[str, Any], raw_log: str) -> dict[str, Any]:
    """Return a copy of *job* whose steps carry a ``log`` text.

    Sections are matched to steps by order; surplus sections are appended
    to the last step. Without group markers the whole log goes to the last
    step. A job without steps gets the log on the job itself.
    """
    result = copy.deepcopy(job)
    steps = result.get("steps")
    if not isinstance(steps, list) or not steps:
        result["log"] = "\n".join(
            _TIMESTAMP_PREFIX.sub("", line) for line in raw_log.splitlines()
        ).strip()
        return result

    sections = split_step_logs(raw_log)
    if not sections:
        steps[-1]["log"] = "\n".join(
            _TIMESTAMP_PREFIX.sub("", line) for line in raw_log.splitlines()
        ).strip()
        return result

    for index, section in enumerate(sections):
        step = steps[min(index, len(steps) - 1)]
        step["log"] = f"{step['log']}\n{section}" if step.get("log") else section

    return result
