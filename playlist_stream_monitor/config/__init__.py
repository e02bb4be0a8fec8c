"""Configuration and storage for Playlist Stream Monitor."""

from .database import SQLiteContentStore
from .settings import Settings
from .storage import ContentStore, GitHubContentStore, MonitorStore

__all__ = ["ContentStore", "GitHubContentStore", "MonitorStore", "SQLiteContentStore", "Settings"]
