"""Scheduler for daily playlist runs."""

import logging
from typing import Callable, Iterable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config.settings import RUN_TIME_RE, UserConfig


def parse_run_time(run_time: str) -> CronTrigger:
    """Build a daily cron trigger from an ``HH:MM`` string.

    Raises:
        ValueError: If the time is not a valid 24h ``HH:MM``
    """
    match = RUN_TIME_RE.match(run_time or "")
    if not match:
        raise ValueError(f"Invalid run time: {run_time!r}, expected HH:MM")
    hour, minute = match.groups()
    return CronTrigger(hour=int(hour), minute=int(minute))


class PlaylistScheduler:
    """Manages one daily run job per monitored user."""

    REFRESH_JOB_ID = "schedule_refresh"

    def __init__(
        self,
        logger: logging.Logger,
        run_function: Callable[[str, str], object],
        run_time: str = "09:00",
        max_instances: int = 1
    ):
        """Initialize scheduler.

        Args:
            logger: Logger instance
            run_function: Called as ``run_function(user_id, target_id)``
            run_time: Daily run time (HH:MM, local time)
            max_instances: Concurrent runs allowed per job
        """
        self.logger = logger
        self.run_function = run_function
        self.run_time = run_time
        self.max_instances = max_instances

        # One worker keeps runs strictly sequential across users
        self.scheduler = BackgroundScheduler(executors={'default': {'type': 'threadpool', 'max_workers': 1}})

    @staticmethod
    def job_id(user_id: str) -> str:
        return f"playlist_run_{user_id}"

    def add_user(self, user: UserConfig, run_time: Optional[str] = None) -> None:
        """Schedule (or reschedule) the daily run of one user."""
        trigger = parse_run_time(run_time or self.run_time)
        self.scheduler.add_job(
            self._safe_run,
            trigger=trigger,
            args=[user.user_id, user.target_id],
            id=self.job_id(user.user_id),
            name=f"Playlist run for {user.user_id}",
            replace_existing=True,
            max_instances=self.max_instances
        )
        self.logger.info(f"Scheduled daily run for {user.user_id} at {run_time or self.run_time}")

    def remove_user(self, user_id: str) -> None:
        """Stop the daily run of one user, if scheduled."""
        if self.scheduler.get_job(self.job_id(user_id)):
            self.scheduler.remove_job(self.job_id(user_id))
            self.logger.info(f"Unscheduled daily run for {user_id}")

    def start(self, users: Iterable[UserConfig] = ()) -> None:
        """Start the scheduler, adding a job at the default time for each given user."""
        try:
            for user in users:
                self.add_user(user)

            self.scheduler.start()
            self.logger.info("Scheduler started successfully")

        except Exception as e:
            self.logger.error(f"Failed to start scheduler: {e}")
            raise

    def watch(self, refresh_function: Callable[[], object], minutes: int) -> None:
        """Call ``refresh_function`` every ``minutes`` to pick up schedule changes."""
        self.scheduler.add_job(
            self._safe_refresh,
            trigger=IntervalTrigger(minutes=minutes),
            args=[refresh_function],
            id=self.REFRESH_JOB_ID,
            name="Schedule refresh",
            replace_existing=True,
            coalesce=True
        )
        self.logger.debug(f"Re-reading schedules every {minutes} minutes")

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        try:
            if self.scheduler.running:
                self.logger.info("Stopping scheduler...")
                self.scheduler.shutdown(wait=True)
                self.logger.info("Scheduler stopped")
        except Exception as e:
            self.logger.error(f"Error stopping scheduler: {e}")

    def _safe_run(self, user_id: str, target_id: str) -> None:
        """Wrapper for the run function with error handling.

        This ensures that a failed run doesn't stop the scheduler.
        """
        try:
            self.logger.debug(f"Running scheduled check for {user_id}")
            self.run_function(user_id, target_id)
        except Exception as e:
            self.logger.error(f"Error in scheduled run for {user_id}: {e}", exc_info=True)
            # Don't re-raise - we want the scheduler to continue

    def _safe_refresh(self, refresh_function: Callable[[], object]) -> None:
        try:
            refresh_function()
        except Exception as e:
            self.logger.error(f"Error refreshing schedules: {e}", exc_info=True)

    def trigger_immediate_run(self, user: UserConfig) -> None:
        """Queue a run for one user outside of the schedule."""
        try:
            self.logger.info(f"Triggering immediate run for {user.user_id}")
            self.scheduler.add_job(
                self._safe_run,
                args=[user.user_id, user.target_id],
                id=f"manual_run_{user.user_id}",
                replace_existing=True
            )
        except Exception as e:
            self.logger.error(f"Failed to trigger immediate run: {e}")

    def get_next_run_time(self, user_id: str) -> Optional[str]:
        """Get the next scheduled run time of a user.

        Returns:
            Next run time as string, or None if not scheduled
        """
        job = self.scheduler.get_job(self.job_id(user_id))
        if job and job.next_run_time:
            return str(job.next_run_time)
        return None
