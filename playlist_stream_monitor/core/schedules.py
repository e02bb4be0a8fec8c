"""Per-user run schedule management."""

import logging

from ..config.settings import RUN_TIME_RE
from ..config.storage import MonitorStore
from ..errors import PlaylistValidationError
from ..models.schedule import DEFAULT_RUN_TIME, Schedule


class ScheduleManager:
    """Read and change the time at which each user's report runs."""

    def __init__(self, store: MonitorStore, logger: logging.Logger, default_time: str = DEFAULT_RUN_TIME):
        self.store = store
        self.logger = logger
        self.default_time = default_time

    def get(self, user_id: str) -> Schedule:
        """Return the user's schedule, the default one if none is stored.

        Raises:
            PersistenceError: If the schedule cannot be read
        """
        schedule, _ = self.store.load_schedule(user_id, self.default_time)
        return schedule

    def set_time(self, user_id: str, run_time: str) -> Schedule:
        """Set the daily run time and enable the schedule.

        Args:
            user_id: User identity
            run_time: 24h ``HH:MM``

        Returns:
            The saved schedule

        Raises:
            PlaylistValidationError: If the time is not a valid ``HH:MM``
            PersistenceError: If the schedule cannot be read or written
        """
        run_time = (run_time or "").strip()
        if not RUN_TIME_RE.match(run_time):
            raise PlaylistValidationError(
                f"Invalid time: {run_time or '(missing)'}. Use 24h HH:MM, e.g. 09:00"
            )

        _, revision = self.store.load_schedule(user_id, self.default_time)
        schedule = Schedule(time=run_time, enabled=True)
        self.store.save_schedule(user_id, schedule, revision)
        self.logger.info(f"Schedule for {user_id} set to {run_time}")
        return schedule

    def disable(self, user_id: str) -> Schedule:
        """Stop the user's daily runs, keeping the stored time."""
        current, revision = self.store.load_schedule(user_id, self.default_time)
        schedule = Schedule(time=current.time, enabled=False)
        self.store.save_schedule(user_id, schedule, revision)
        self.logger.info(f"Schedule for {user_id} disabled")
        return schedule
