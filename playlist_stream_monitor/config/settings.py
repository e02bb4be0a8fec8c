"""Configuration management for Playlist Stream Monitor."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..utils.platform import get_config_dir

RUN_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


@dataclass
class StorageConfig:
    """Where URL lists and day records are kept."""

    backend: str = "local"
    path: Optional[Path] = None
    github_owner: str = ""
    github_repo: str = ""
    github_branch: Optional[str] = None
    github_token: Optional[str] = None
    timeout: float = 15.0

    def __post_init__(self):
        """Validate configuration and set defaults."""
        if self.path is None:
            self.path = get_config_dir() / 'monitor.db'
        elif isinstance(self.path, str):
            self.path = Path(self.path).expanduser()

        if self.github_token is None:
            self.github_token = os.environ.get('GITHUB_TOKEN')

        valid_backends = ["local", "github"]
        if self.backend not in valid_backends:
            raise ValueError(f"backend must be one of {valid_backends}")

        if self.backend == "github" and not (self.github_owner and self.github_repo):
            raise ValueError("github_owner and github_repo are required for the github backend")


@dataclass
class TelegramConfig:
    """Delivery configuration."""

    bot_token: Optional[str] = None
    max_message_length: int = 4000
    chunk_delay: float = 1.0
    timeout: float = 10.0

    def __post_init__(self):
        """Validate configuration."""
        if self.bot_token is None:
            self.bot_token = os.environ.get('TELEGRAM_BOT_TOKEN')

        if not (100 <= self.max_message_length <= 4096):
            raise ValueError("max_message_length must be between 100 and 4096")

        if self.chunk_delay < 0:
            raise ValueError("chunk_delay must be >= 0")


@dataclass
class BrowserConfig:
    """Page rendering configuration."""

    headless: bool = True
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0"
    navigation_timeout_ms: int = 30000
    navigation_retries: int = 1
    retry_delay: float = 20.0
    settle_ms: int = 3000
    tracks_wait_ms: int = 2000
    grid_wait_ms: int = 3000
    grid_timeout_ms: int = 10000

    def __post_init__(self):
        """Validate configuration."""
        if self.navigation_timeout_ms < 1000:
            raise ValueError("navigation_timeout_ms must be >= 1000")

        if not (1 <= self.navigation_retries <= 5):
            raise ValueError("navigation_retries must be between 1 and 5")


@dataclass
class UserConfig:
    """A monitored user and where their reports go."""

    user_id: str
    target_id: Optional[str] = None

    def __post_init__(self):
        """Normalize ids and default the delivery target to the user."""
        self.user_id = str(self.user_id)
        self.target_id = str(self.target_id) if self.target_id else self.user_id


@dataclass
class SchedulerConfig:
    """Scheduler configuration."""

    enabled: bool = True
    run_time: str = "09:00"  # default for users without a stored schedule
    refresh_minutes: int = 15  # how often stored schedules are re-read
    users: List[UserConfig] = field(default_factory=list)

    def __post_init__(self):
        """Validate configuration."""
        if not RUN_TIME_RE.match(self.run_time):
            raise ValueError("run_time must be HH:MM (24h)")

        if self.refresh_minutes < 1:
            raise ValueError("refresh_minutes must be at least 1")

        self.users = [
            user if isinstance(user, UserConfig) else UserConfig(**user)
            for user in self.users
        ]


@dataclass
class LoggingConfig:
    """Logging configuration."""

    path: Optional[Path] = None
    level: str = "INFO"
    max_size_mb: int = 10
    backup_count: int = 5

    def __post_init__(self):
        """Validate configuration and set defaults."""
        if self.path is None:
            self.path = get_config_dir() / 'service.log'
        elif isinstance(self.path, str):
            self.path = Path(self.path).expanduser()

        # Validate log level
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level.upper() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}")


@dataclass
class Settings:
    """Main settings container."""

    storage: StorageConfig = field(default_factory=StorageConfig)
    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """Build settings from parsed YAML data.

        Raises:
            ValueError: If a section is invalid
        """
        return cls(
            storage=StorageConfig(**(data.get('storage') or {})),
            telegram=TelegramConfig(**(data.get('telegram') or {})),
            browser=BrowserConfig(**(data.get('browser') or {})),
            scheduler=SchedulerConfig(**(data.get('scheduler') or {})),
            logging=LoggingConfig(**(data.get('logging') or {})),
        )

    @classmethod
    def from_file(cls, config_path: Path) -> 'Settings':
        """Load settings from YAML file.

        Args:
            config_path: Path to configuration file

        Returns:
            Settings instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_file_or_default(cls, config_path: Optional[Path] = None) -> 'Settings':
        """Load settings from file or return defaults.

        Args:
            config_path: Path to configuration file (optional)

        Returns:
            Settings instance
        """
        if config_path is None:
            config_path = get_config_dir() / 'config.yaml'

        if config_path.exists():
            try:
                return cls.from_file(config_path)
            except Exception as e:
                logging.warning(f"Failed to load config from {config_path}: {e}")
                logging.warning("Using default configuration")
                return cls()
        else:
            logging.info(f"Config file not found at {config_path}, using defaults")
            return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form, without secrets taken from the environment."""
        return {
            'storage': {
                'backend': self.storage.backend,
                'path': str(self.storage.path) if self.storage.path else None,
                'github_owner': self.storage.github_owner,
                'github_repo': self.storage.github_repo,
                'github_branch': self.storage.github_branch,
                'timeout': self.storage.timeout
            },
            'telegram': {
                'max_message_length': self.telegram.max_message_length,
                'chunk_delay': self.telegram.chunk_delay,
                'timeout': self.telegram.timeout
            },
            'browser': {
                'headless': self.browser.headless,
                'user_agent': self.browser.user_agent,
                'navigation_timeout_ms': self.browser.navigation_timeout_ms,
                'navigation_retries': self.browser.navigation_retries,
                'retry_delay': self.browser.retry_delay,
                'settle_ms': self.browser.settle_ms,
                'tracks_wait_ms': self.browser.tracks_wait_ms,
                'grid_wait_ms': self.browser.grid_wait_ms,
                'grid_timeout_ms': self.browser.grid_timeout_ms
            },
            'scheduler': {
                'enabled': self.scheduler.enabled,
                'run_time': self.scheduler.run_time,
                'refresh_minutes': self.scheduler.refresh_minutes,
                'users': [
                    {'user_id': user.user_id, 'target_id': user.target_id}
                    for user in self.scheduler.users
                ]
            },
            'logging': {
                'path': str(self.logging.path) if self.logging.path else None,
                'level': self.logging.level,
                'max_size_mb': self.logging.max_size_mb,
                'backup_count': self.logging.backup_count
            }
        }

    def save(self, config_path: Optional[Path] = None) -> None:
        """Save settings to YAML file.

        Args:
            config_path: Path to save configuration (default: config.yaml in config dir)
        """
        if config_path is None:
            config_path = get_config_dir() / 'config.yaml'

        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False, indent=2)
