"""Change classification models."""

from dataclasses import dataclass
from enum import Enum

from .track import Track


class ChangeKind(str, Enum):
    """How a track moved since the previous snapshot."""

    NEW = "new"
    INCREASE = "increase"
    DECREASE = "decrease"
    UNCHANGED = "unchanged"


@dataclass
class ChangeRecord:
    """Differ output for one of today's tracks."""

    kind: ChangeKind
    track: Track
    delta: int = 0  # today - yesterday; 0 for new and unchanged

    def __post_init__(self):
        """Convert kind to enum if it's a string."""
        if isinstance(self.kind, str):
            self.kind = ChangeKind(self.kind)
