"""Run outcome models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .playlist import DayRecord


class RunStatus(str, Enum):
    """Run outcome enumeration."""

    EMPTY = "empty"
    COMPLETED = "completed"


@dataclass
class RunResult:
    """What a monitoring run produced for one user."""

    user_id: str
    date: str
    status: RunStatus = RunStatus.COMPLETED
    record: Optional[DayRecord] = None
    chunks: List[str] = field(default_factory=list)
    persisted: bool = False

    @property
    def error_count(self) -> int:
        if self.record is None:
            return 0
        return sum(1 for snapshot in self.record.playlists if snapshot.failed)
