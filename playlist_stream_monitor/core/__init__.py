"""Core functionality for Playlist Stream Monitor."""

from .extractor import TrackExtractor
from .monitor import PlaylistMonitor
from .notifier import Notifier
from .playlists import PlaylistRegistry
from .scheduler import PlaylistScheduler
from .schedules import ScheduleManager

__all__ = ["TrackExtractor", "PlaylistMonitor", "Notifier", "PlaylistRegistry", "PlaylistScheduler", "ScheduleManager"]
