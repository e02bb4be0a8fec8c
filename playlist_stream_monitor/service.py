"""Main background service for Playlist Stream Monitor."""

import logging
import signal
import sys
import time
from pathlib import Path
from typing import Dict, Optional

from .config.database import SQLiteContentStore
from .config.settings import Settings, UserConfig
from .config.storage import ContentStore, GitHubContentStore, MonitorStore
from .core.browser import PlaywrightSession
from .core.extractor import TrackExtractor
from .core.monitor import PlaylistMonitor
from .core.notifier import Notifier
from .core.playlists import PlaylistRegistry
from .core.scheduler import PlaylistScheduler
from .core.schedules import ScheduleManager
from .errors import MonitorError
from .models.schedule import Schedule
from .utils.logger import setup_logger
from .utils.platform import is_windows


def build_content_store(settings: Settings, logger: logging.Logger) -> ContentStore:
    """Create the configured storage backend.

    Raises:
        ValueError: If the GitHub backend is selected without a token
    """
    storage = settings.storage
    if storage.backend == "github":
        if not storage.github_token:
            raise ValueError("GITHUB_TOKEN is required for the github storage backend")
        logger.debug(f"Using GitHub storage {storage.github_owner}/{storage.github_repo}")
        return GitHubContentStore(
            owner=storage.github_owner,
            repo=storage.github_repo,
            token=storage.github_token,
            logger=logger,
            branch=storage.github_branch,
            timeout=storage.timeout
        )

    logger.debug(f"Using local storage at {storage.path}")
    return SQLiteContentStore(storage.path)


def build_monitor_store(settings: Settings, logger: logging.Logger) -> MonitorStore:
    return MonitorStore(build_content_store(settings, logger), logger)


def build_notifier(settings: Settings, logger: logging.Logger) -> Notifier:
    return Notifier(
        logger=logger,
        bot_token=settings.telegram.bot_token,
        chunk_delay=settings.telegram.chunk_delay,
        timeout=settings.telegram.timeout
    )


def build_monitor(
    settings: Settings,
    logger: logging.Logger,
    store: Optional[MonitorStore] = None,
    notifier: Optional[Notifier] = None
) -> PlaylistMonitor:
    """Wire a PlaylistMonitor from settings.

    Args:
        settings: Loaded settings
        logger: Logger instance
        store: Storage to use (built from settings if None)
        notifier: Notifier to use (built from settings if None)

    Returns:
        Ready to run PlaylistMonitor
    """
    store = store or build_monitor_store(settings, logger)
    browser = settings.browser

    extractor = TrackExtractor(
        logger=logger,
        settle_ms=browser.settle_ms,
        tracks_wait_ms=browser.tracks_wait_ms,
        grid_wait_ms=browser.grid_wait_ms,
        grid_timeout_ms=browser.grid_timeout_ms
    )

    def session_factory() -> PlaywrightSession:
        return PlaywrightSession(logger, headless=browser.headless, user_agent=browser.user_agent)

    return PlaylistMonitor(
        store=store,
        registry=PlaylistRegistry(store, logger),
        extractor=extractor,
        notifier=notifier or build_notifier(settings, logger),
        session_factory=session_factory,
        logger=logger,
        navigation_timeout_ms=browser.navigation_timeout_ms,
        navigation_retries=browser.navigation_retries,
        retry_delay=browser.retry_delay,
        max_message_length=settings.telegram.max_message_length
    )


class PlaylistReportService:
    """Main service running the daily playlist report for every configured user."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize the service.

        Args:
            config_path: Path to configuration file (optional)
        """
        self.running = False
        self.config_path = config_path

        # Load settings
        self.settings = Settings.from_file_or_default(config_path)

        # Setup logging
        self.logger = setup_logger(
            log_file=self.settings.logging.path,
            level=self.settings.logging.level,
            max_size_mb=self.settings.logging.max_size_mb,
            backup_count=self.settings.logging.backup_count,
            console=True
        )

        self.logger.info("Initializing Playlist Stream Monitor service")

        self.monitor: Optional[PlaylistMonitor] = None
        self.schedules: Optional[ScheduleManager] = None
        self.scheduler: Optional[PlaylistScheduler] = None

        # Schedule currently applied to each user's job
        self.applied: Dict[str, Schedule] = {}

    def run_user(self, user_id: str, target_id: Optional[str] = None) -> None:
        """Scheduled job: run the report for one user."""
        try:
            result = self.monitor.run(user_id, target_id)
            self.logger.info(
                f"Report for {user_id} finished: {result.status.value}, "
                f"{len(result.chunks)} message(s) sent"
            )
        except MonitorError as e:
            self.logger.error(f"Run for {user_id} failed: {e}")

    def setup(self) -> None:
        """Build the monitor, the schedule manager and the (stopped) scheduler."""
        store = build_monitor_store(self.settings, self.logger)
        self.monitor = build_monitor(self.settings, self.logger, store=store)
        self.schedules = ScheduleManager(store, self.logger, self.settings.scheduler.run_time)
        self.scheduler = PlaylistScheduler(
            logger=self.logger,
            run_function=self.run_user,
            run_time=self.settings.scheduler.run_time
        )

    def apply_schedule(self, user: UserConfig) -> None:
        """Bring a user's job in line with their stored schedule.

        A schedule that cannot be read keeps the job as it is, or uses the
        configured default time if the user has no job yet.
        """
        try:
            schedule = self.schedules.get(user.user_id)
        except MonitorError as e:
            if user.user_id in self.applied:
                self.logger.warning(f"Could not read schedule of {user.user_id}, keeping current one: {e}")
                return
            self.logger.warning(f"Could not read schedule of {user.user_id}, using default: {e}")
            schedule = Schedule(time=self.settings.scheduler.run_time)

        if self.applied.get(user.user_id) == schedule:
            return

        if schedule.enabled:
            self.scheduler.add_user(user, schedule.time)
        else:
            self.scheduler.remove_user(user.user_id)
            self.logger.info(f"Daily run of {user.user_id} is disabled")
        self.applied[user.user_id] = schedule

    def refresh_schedules(self) -> None:
        """Re-read every user's schedule."""
        for user in self.settings.scheduler.users:
            self.apply_schedule(user)

    def setup_signal_handlers(self) -> None:
        """Setup signal handlers for graceful shutdown."""

        def signal_handler(signum, frame):
            self.logger.info(f"Received signal {signum}, shutting down...")
            self.shutdown()

        # Windows uses SIGBREAK, Linux/macOS use SIGTERM
        signal.signal(signal.SIGINT, signal_handler)

        if is_windows():
            signal.signal(signal.SIGBREAK, signal_handler)
        else:
            signal.signal(signal.SIGTERM, signal_handler)

    def start(self, run_now: bool = False) -> None:
        """Start the scheduling service.

        Args:
            run_now: Also queue an immediate run for every user
        """
        try:
            self.running = True
            self.setup_signal_handlers()

            users = self.settings.scheduler.users
            if not users:
                raise RuntimeError("No users configured under scheduler.users")

            self.setup()

            if not self.settings.scheduler.enabled:
                self.logger.warning("Scheduler disabled in configuration, nothing to do")
                return

            self.scheduler.start()
            self.refresh_schedules()
            self.scheduler.watch(self.refresh_schedules, self.settings.scheduler.refresh_minutes)

            for user in users:
                next_run = self.scheduler.get_next_run_time(user.user_id)
                if next_run:
                    self.logger.info(f"Next run for {user.user_id}: {next_run}")

            if run_now:
                for user in users:
                    self.scheduler.trigger_immediate_run(user)

            self.logger.info("Service started successfully")
            self.logger.info("Press Ctrl+C to stop")

            # Keep service alive
            self._keep_alive()

        except KeyboardInterrupt:
            self.logger.info("Keyboard interrupt received")
            self.shutdown()
        except Exception as e:
            self.logger.error(f"Service error: {e}", exc_info=True)
            self.shutdown()
            raise

    def _keep_alive(self) -> None:
        """Keep the service alive.

        Windows doesn't support signal.pause(), so we use a sleep loop.
        """
        if is_windows():
            while self.running:
                time.sleep(1)
        else:
            while self.running:
                signal.pause()

    def shutdown(self) -> None:
        """Graceful shutdown."""
        if not self.running:
            return

        self.logger.info("Shutting down service...")
        self.running = False

        if self.scheduler:
            self.scheduler.stop()

        self.logger.info("Service stopped")

        sys.exit(0)


def main():
    """Main entry point."""
    service = PlaylistReportService()
    service.start()


if __name__ == "__main__":
    main()
