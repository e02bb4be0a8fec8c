"""Utility modules for Playlist Stream Monitor."""

from .dates import previous_day_iso, today_iso
from .logger import setup_logger
from .platform import get_config_dir, is_windows

__all__ = ["setup_logger", "get_config_dir", "is_windows", "previous_day_iso", "today_iso"]
