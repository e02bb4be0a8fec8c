"""Playlist monitoring runs: extract, compare, report."""

import logging
from typing import Callable, List, Optional, Protocol, Tuple

from ..config.storage import MonitorStore
from ..errors import DeliveryError, PersistenceError, RunAbortedError
from ..models.playlist import DayRecord, PlaylistSnapshot
from ..models.run import RunResult, RunStatus
from ..utils.dates import previous_day_iso, today_iso
from .browser import BrowserPage, navigate_with_retries
from .differ import diff_snapshots, find_previous_snapshot
from .extractor import TrackExtractor
from .notifier import Notifier
from .playlists import PlaylistRegistry
from .report import (
    DEFAULT_MAX_LENGTH,
    chunk_for_delivery,
    render_failure_report,
    render_playlist_report,
    render_summary,
)

EMPTY_LIST_MESSAGE = "Tu lista está vacía. Usa /add <url> para agregar."
LIST_ERROR_MESSAGE = "Error al leer tu lista: {error}"
BROWSER_ERROR_MESSAGE = "Error al iniciar el navegador: {error}"


class BrowserSession(Protocol):
    def open(self) -> BrowserPage: ...

    def close(self) -> None: ...


def render_record(
    record: DayRecord,
    previous: Optional[DayRecord]
) -> Tuple[List[str], str]:
    """Render report blocks and the summary for a stored day record.

    Args:
        record: Day record to report on
        previous: Record of the day before, or None

    Returns:
        (report blocks, summary)
    """
    reports = []
    for snapshot in record.playlists:
        changes = diff_snapshots(snapshot, find_previous_snapshot(previous, snapshot.url))
        reports.append(render_playlist_report(snapshot, changes))
    return reports, render_summary(record.playlists)


class PlaylistMonitor:
    """Runs the daily check of a user's playlists."""

    def __init__(
        self,
        store: MonitorStore,
        registry: PlaylistRegistry,
        extractor: TrackExtractor,
        notifier: Notifier,
        session_factory: Callable[[], BrowserSession],
        logger: logging.Logger,
        navigation_timeout_ms: int = 30000,
        navigation_retries: int = 1,
        retry_delay: float = 20.0,
        max_message_length: int = DEFAULT_MAX_LENGTH
    ):
        """Initialize playlist monitor.

        Args:
            store: URL list and day record storage
            registry: Playlist URL registry
            extractor: Track extractor
            notifier: Report delivery
            session_factory: Creates the browser session for a run
            logger: Logger instance
            navigation_timeout_ms: Navigation deadline per attempt
            navigation_retries: Navigation attempts per playlist
            retry_delay: Seconds between navigation attempts
            max_message_length: Maximum characters per delivered message
        """
        self.store = store
        self.registry = registry
        self.extractor = extractor
        self.notifier = notifier
        self.session_factory = session_factory
        self.logger = logger
        self.navigation_timeout_ms = navigation_timeout_ms
        self.navigation_retries = navigation_retries
        self.retry_delay = retry_delay
        self.max_message_length = max_message_length

    def check_playlist(self, page: BrowserPage, url: str) -> PlaylistSnapshot:
        """Navigate to a playlist and extract its snapshot.

        Never raises: navigation failures become error snapshots.
        """
        self.logger.info(f"Checking playlist {url}")
        try:
            navigate_with_retries(
                page,
                url,
                self.logger,
                timeout_ms=self.navigation_timeout_ms,
                attempts=self.navigation_retries,
                retry_delay=self.retry_delay
            )
        except Exception as e:
            self.logger.error(f"Failed to load {url}: {e}")
            return PlaylistSnapshot.failure(url, f"Navigation failed: {e}")

        return self.extractor.extract(page, url)

    def load_previous_record(self, user_id: str, date: str) -> Optional[DayRecord]:
        """Load the previous day's record; unreadable data counts as none."""
        previous_date = previous_day_iso(date)
        try:
            record = self.store.load_day_record(user_id, previous_date)
        except PersistenceError as e:
            self.logger.warning(f"Could not read previous record ({previous_date}): {e}")
            return None

        if record is None:
            self.logger.info(f"No previous record for {previous_date}, all tracks will be new")
        return record

    def check_playlists(
        self,
        page: BrowserPage,
        urls: List[str],
        previous: Optional[DayRecord]
    ) -> Tuple[List[PlaylistSnapshot], List[str]]:
        """Check each URL in order on the shared page.

        Returns:
            (snapshots, report blocks), one of each per URL
        """
        snapshots = []
        reports = []

        for url in urls:
            try:
                snapshot = self.check_playlist(page, url)
                changes = diff_snapshots(snapshot, find_previous_snapshot(previous, url))
                reports.append(render_playlist_report(snapshot, changes))
            except Exception as e:
                self.logger.error(f"Failed to process playlist {url}: {e}", exc_info=True)
                snapshot = PlaylistSnapshot.failure(url, str(e))
                reports.append(render_failure_report(url, str(e)))
                # Continue with the other playlists

            snapshots.append(snapshot)

        return snapshots, reports

    def persist(self, user_id: str, record: DayRecord) -> bool:
        """Save today's record; failures are logged, not raised."""
        try:
            self.store.save_day_record(user_id, record)
            self.logger.info(f"Saved record for {user_id} on {record.date}")
            return True
        except PersistenceError as e:
            self.logger.error(f"Failed to save record for {user_id} on {record.date}: {e}")
            return False

    def _abort(self, target_id: str, message: str) -> RunAbortedError:
        """Tell the user why the run stopped and build the error to raise."""
        try:
            self.notifier.send(target_id, message)
        except DeliveryError as e:
            self.logger.error(f"Failed to deliver abort message: {e}")
        return RunAbortedError(message)

    def run(
        self,
        user_id: str,
        target_id: Optional[str] = None,
        today: Optional[str] = None
    ) -> RunResult:
        """Run a full check for one user and deliver the report.

        This is the main method that orchestrates the monitoring process:
        1. Load the user's playlist URLs
        2. Extract each playlist on one shared browser page
        3. Compare with the previous day's snapshots and render reports
        4. Save today's record
        5. Deliver the chunked report

        Args:
            user_id: User whose playlists are checked
            target_id: Chat to deliver to (defaults to ``user_id``)
            today: ISO date of the run (defaults to today)

        Returns:
            RunResult describing the run

        Raises:
            RunAbortedError: If no user id is given, the URL list is
                unreadable or the browser cannot start
            DeliveryError: If a report chunk cannot be sent
        """
        if not user_id:
            raise RunAbortedError("No user id given for run")

        user_id = str(user_id)
        target_id = str(target_id or user_id)
        date = today or today_iso()

        self.logger.info(f"=== Starting playlist run for {user_id} ({date}) ===")

        try:
            urls = self.registry.scrape_targets(user_id)
        except PersistenceError as e:
            self.logger.error(f"Failed to load playlist list for {user_id}: {e}")
            raise self._abort(target_id, LIST_ERROR_MESSAGE.format(error=e)) from e

        if not urls:
            self.logger.info(f"No playlists configured for {user_id}")
            self.notifier.send(target_id, EMPTY_LIST_MESSAGE)
            return RunResult(user_id=user_id, date=date, status=RunStatus.EMPTY)

        previous = self.load_previous_record(user_id, date)

        session = None
        try:
            session = self.session_factory()
            page = session.open()
        except Exception as e:
            self.logger.error(f"Failed to start browser: {e}", exc_info=True)
            if session is not None:
                # open() may have started the driver before failing
                session.close()
            raise self._abort(target_id, BROWSER_ERROR_MESSAGE.format(error=e)) from e

        try:
            snapshots, reports = self.check_playlists(page, urls, previous)
        finally:
            session.close()

        record = DayRecord(date=date, playlists=snapshots)
        persisted = self.persist(user_id, record)

        chunks = chunk_for_delivery(reports, render_summary(snapshots), self.max_message_length)
        self.notifier.send_chunks(target_id, chunks)

        result = RunResult(
            user_id=user_id,
            date=date,
            record=record,
            chunks=chunks,
            persisted=persisted,
        )
        self.logger.info(
            f"=== Run complete for {user_id}: {len(snapshots) - result.error_count} ok, "
            f"{result.error_count} failed ==="
        )
        return result
