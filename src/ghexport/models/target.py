"""Export targets and timeline markers.

A Target names what to export (a pull request, an issue or an Actions
run). A Marker names one item of a conversation timeline and is used only
for equality matching when slicing a range.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

__all__ = [
    "ActionsRunTarget",
    "IssueTarget",
    "Marker",
    "MarkerRange",
    "MarkerType",
    "PullTarget",
    "Target",
    "TargetKind",
    "target_repo_key",
]


class TargetKind(str, Enum):
    """Kinds of exportable GitHub pages."""

    PULL = "pull"
    ISSUE = "issue"
    ACTIONS_RUN = "actionsRun"


@dataclass(frozen=True)
class PullTarget:
    owner: str
    repo: str
    number: int
    kind: TargetKind = field(default=TargetKind.PULL, init=False)


@dataclass(frozen=True)
class IssueTarget:
    owner: str
    repo: str
    number: int
    kind: TargetKind = field(default=TargetKind.ISSUE, init=False)


@dataclass(frozen=True)
class ActionsRunTarget:
    owner: str
    repo: str
    run_id: int
    kind: TargetKind = field(default=TargetKind.ACTIONS_RUN, init=False)


Target = Union[PullTarget, IssueTarget, ActionsRunTarget]


def target_repo_key(target: Target) -> str:
    """Return the owner/repo key used for per-repo remembered profiles."""
    return f"{target.owner}/{target.repo}"


class MarkerType(str, Enum):
    """Timeline item types that can bound a selection."""

    ISSUE_COMMENT = "issue-comment"
    REVIEW_COMMENT = "review-comment"
    REVIEW = "review"


@dataclass(frozen=True)
class Marker:
    type: MarkerType
    id: int

    @property
    def key(self) -> str:
        return f"{self.type.value}:{self.id}"

    @classmethod
    def parse(cls, value: str) -> "Marker":
        """Parse the ``type:id`` form, e.g. ``review-comment:42``.

        Raises:
            ValueError: If the type is unknown or the id is not an integer.
        """
        kind, sep, raw_id = value.strip().rpartition(":")
        if not sep:
            raise ValueError(f"Marker must look like TYPE:ID, got {value!r}")
        return cls(MarkerType(kind), int(raw_id))


@dataclass(frozen=True)
class MarkerRange:
    """Inclusive start/end bounds. Either side may be absent."""

    start: Optional[Marker] = None
    end: Optional[Marker] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None
