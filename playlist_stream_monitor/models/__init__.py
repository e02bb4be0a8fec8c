"""Data models for Playlist Stream Monitor."""

from .change import ChangeKind, ChangeRecord
from .playlist import DayRecord, PlaylistSnapshot, extract_playlist_id
from .run import RunResult, RunStatus
from .schedule import Schedule
from .track import Track

__all__ = [
    "ChangeKind",
    "ChangeRecord",
    "DayRecord",
    "PlaylistSnapshot",
    "RunResult",
    "RunStatus",
    "Schedule",
    "Track",
    "extract_playlist_id",
]
