"""Path-addressed content stores and the monitor's path scheme."""

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from ..errors import PersistenceError, RevisionConflictError
from ..models.playlist import DayRecord
from ..models.schedule import DEFAULT_RUN_TIME, Schedule

GITHUB_API_URL = "https://api.github.com"

URL_LIST_HEADER = (
    "# Playlist URLs for user: {user_id}\n"
    "# Add one URL per line\n"
    "# Format: https://app.artist.tools/playlist/ID\n\n"
)


@dataclass
class StoredContent:
    """Content read from a store together with its revision token."""

    content: bytes
    revision: Optional[str] = None

    @property
    def text(self) -> str:
        return self.content.decode('utf-8')


class ContentStore(ABC):
    """Key-value store addressed by path with optimistic revisions."""

    @abstractmethod
    def get(self, path: str) -> Optional[StoredContent]:
        """Read content at ``path``.

        Returns:
            StoredContent, or None if nothing is stored there

        Raises:
            PersistenceError: If the store cannot be read
        """

    @abstractmethod
    def put(
        self,
        path: str,
        content: bytes,
        expected_revision: Optional[str] = None,
        message: Optional[str] = None
    ) -> Optional[str]:
        """Write content at ``path``.

        Args:
            path: Target path
            content: Bytes to store
            expected_revision: Revision read beforehand; None creates or overwrites
            message: Change description, where the backend records one

        Returns:
            New revision token

        Raises:
            RevisionConflictError: If ``expected_revision`` is stale
            PersistenceError: If the store cannot be written
        """


class GitHubContentStore(ContentStore):
    """Stores files in a GitHub repository through the contents API."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        logger: logging.Logger,
        branch: Optional[str] = None,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None
    ):
        """Initialize GitHub store.

        Args:
            owner: Repository owner
            repo: Repository name
            token: Personal access token
            logger: Logger instance
            branch: Branch to read and write (default branch if None)
            timeout: Request timeout in seconds
            client: Optional preconfigured HTTP client
        """
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.logger = logger
        self.client = client or httpx.Client(
            base_url=GITHUB_API_URL,
            timeout=timeout,
            headers={
                'Authorization': f'token {token}',
                'Accept': 'application/vnd.github+json',
            },
        )

    def _contents_url(self, path: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{path}"

    def get(self, path: str) -> Optional[StoredContent]:
        params = {'ref': self.branch} if self.branch else None
        try:
            response = self.client.get(self._contents_url(path), params=params)
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to read {path}: {e}") from e

        if response.status_code == 404:
            self.logger.debug(f"{path} not found in {self.owner}/{self.repo}")
            return None
        if response.is_error:
            raise PersistenceError(
                f"Failed to read {path}: HTTP {response.status_code}"
            )

        data = response.json()
        content = base64.b64decode(data.get('content') or '')
        return StoredContent(content=content, revision=data.get('sha'))

    def put(
        self,
        path: str,
        content: bytes,
        expected_revision: Optional[str] = None,
        message: Optional[str] = None
    ) -> Optional[str]:
        payload = {
            'message': message or f"Update {path}",
            'content': base64.b64encode(content).decode('ascii'),
        }
        if expected_revision:
            payload['sha'] = expected_revision
        if self.branch:
            payload['branch'] = self.branch

        try:
            response = self.client.put(self._contents_url(path), json=payload)
        except httpx.HTTPError as e:
            raise PersistenceError(f"Failed to write {path}: {e}") from e

        if response.status_code in (409, 422):
            raise RevisionConflictError(
                f"Revision conflict writing {path}: HTTP {response.status_code}"
            )
        if response.is_error:
            raise PersistenceError(
                f"Failed to write {path}: HTTP {response.status_code}"
            )

        sha = (response.json().get('content') or {}).get('sha')
        self.logger.debug(f"Saved {path} (sha={sha})")
        return sha


def playlists_path(user_id: str) -> str:
    return f"playlists/{user_id}.txt"


def day_record_path(user_id: str, date: str) -> str:
    return f"data/{user_id}/{date}.json"


def schedule_path(user_id: str) -> str:
    return f"data/{user_id}/schedule.json"


def parse_url_list(text: str) -> List[str]:
    """Split a URL list file into entries, skipping blanks and comments."""
    return [
        line.strip()
        for line in text.splitlines()
        if line.strip() and not line.strip().startswith('#')
    ]


class MonitorStore:
    """Reads and writes a user's URL list, day records and schedule."""

    def __init__(self, store: ContentStore, logger: logging.Logger):
        self.store = store
        self.logger = logger

    def load_urls(self, user_id: str) -> Tuple[List[str], Optional[str]]:
        """Load a user's playlist URL list.

        Returns:
            (urls, revision); an absent list is empty with no revision

        Raises:
            PersistenceError: If the list cannot be read
        """
        stored = self.store.get(playlists_path(user_id))
        if stored is None:
            return [], None
        return parse_url_list(stored.text), stored.revision

    def save_urls(
        self,
        user_id: str,
        urls: List[str],
        revision: Optional[str] = None
    ) -> Optional[str]:
        content = URL_LIST_HEADER.format(user_id=user_id) + "\n".join(urls)
        return self.store.put(
            playlists_path(user_id),
            content.encode('utf-8'),
            expected_revision=revision,
            message=f"Update playlist file for {user_id}",
        )

    def load_day_record(self, user_id: str, date: str) -> Optional[DayRecord]:
        """Load a stored day record.

        Raises:
            PersistenceError: If the record cannot be read or decoded
        """
        stored = self.store.get(day_record_path(user_id, date))
        if stored is None:
            return None
        try:
            data = json.loads(stored.text)
        except ValueError as e:
            raise PersistenceError(f"Invalid day record for {user_id} on {date}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(
                f"Invalid day record for {user_id} on {date}: expected an object, got {type(data).__name__}"
            )
        try:
            return DayRecord.from_dict(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Invalid day record for {user_id} on {date}: {e}") from e

    def save_day_record(self, user_id: str, record: DayRecord) -> Optional[str]:
        """Write a day record, replacing any record already stored for that date."""
        path = day_record_path(user_id, record.date)
        existing = self.store.get(path)
        revision = existing.revision if existing else None
        if existing:
            self.logger.debug(f"Overwriting existing record {path}")

        content = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
        return self.store.put(
            path,
            content.encode('utf-8'),
            expected_revision=revision,
            message=f"Daily playlist report for {user_id} - {record.date}",
        )

    def load_schedule(
        self,
        user_id: str,
        default_time: str = DEFAULT_RUN_TIME
    ) -> Tuple[Schedule, Optional[str]]:
        """Load a user's run schedule.

        Args:
            user_id: User whose schedule to load
            default_time: Run time used when nothing is stored

        Returns:
            (schedule, revision); an absent schedule is enabled at
            ``default_time`` with no revision

        Raises:
            PersistenceError: If the schedule cannot be read or decoded
        """
        stored = self.store.get(schedule_path(user_id))
        if stored is None:
            return Schedule(time=default_time), None
        try:
            data = json.loads(stored.text)
        except ValueError as e:
            raise PersistenceError(f"Invalid schedule for {user_id}: {e}") from e
        if not isinstance(data, dict):
            raise PersistenceError(f"Invalid schedule for {user_id}: expected an object")
        return Schedule.from_dict(data, default_time), stored.revision

    def save_schedule(
        self,
        user_id: str,
        schedule: Schedule,
        revision: Optional[str] = None
    ) -> Optional[str]:
        content = json.dumps(schedule.to_dict(), indent=2)
        return self.store.put(
            schedule_path(user_id),
            content.encode('utf-8'),
            expected_revision=revision,
            message=f"Update user schedule for {user_id} to {schedule.time} (enabled: {str(schedule.enabled).lower()})",
        )
