"""Per-platform locations and checks."""

import os
import sys
from pathlib import Path

APP_DIR_NAME = 'playlist-stream-monitor'


def is_windows() -> bool:
    return os.name == 'nt'


def config_base_dir() -> Path:
    """Directory under which per-user application settings live."""
    if is_windows():
        return Path(os.environ.get('APPDATA') or Path.home() / 'AppData' / 'Roaming')
    if sys.platform == 'darwin':
        return Path.home() / 'Library' / 'Application Support'
    return Path(os.environ.get('XDG_CONFIG_HOME') or Path.home() / '.config')


def get_config_dir() -> Path:
    """Return this application's configuration directory, creating it if needed.

    Holds ``config.yaml``, the local ``monitor.db`` and ``service.log``.
    """
    config_dir = config_base_dir() / APP_DIR_NAME
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir
