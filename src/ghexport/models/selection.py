"""Export selection: the whole conversation or a marker range."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .target import MarkerRange

__all__ = ["ALL_SELECTION", "Selection", "SelectionMode", "normalize_selection"]


class SelectionMode(str, Enum):
    ALL = "all"
    RANGE = "range"


@dataclass(frozen=True)
class Selection:
    mode: SelectionMode = SelectionMode.ALL
    range: MarkerRange = field(default_factory=MarkerRange)

    @classmethod
    def from_range(cls, marker_range: MarkerRange) -> "Selection":
        return cls(mode=SelectionMode.RANGE, range=marker_range)

    @property
    def requested_range(self) -> Optional[MarkerRange]:
        """The range to slice by, or None when nothing should be sliced."""
        if self.mode is SelectionMode.RANGE and not self.range.is_empty:
            return self.range
        return None


ALL_SELECTION = Selection()


def normalize_selection(selection: Optional[Selection] = None) -> Selection:
    return selection if selection is not None else ALL_SELECTION
