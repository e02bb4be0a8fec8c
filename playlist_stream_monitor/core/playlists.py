"""Per-user playlist URL list management."""

import logging
import re
from typing import List

from ..config.storage import MonitorStore
from ..errors import PlaylistValidationError

VALID_URL_PREFIXES = (
    "https://app.artist.tools/playlist/",
    "https://artist.tools/playlist/",
    "https://open.spotify.com/playlist/",
)

CANONICAL_PLAYLIST_URL = "https://app.artist.tools/playlist/{playlist_id}"

SPOTIFY_PLAYLIST_RE = re.compile(r"open\.spotify\.com/playlist/([a-zA-Z0-9]+)(?:\?|$)")


def is_valid_playlist_url(url: str) -> bool:
    return bool(url) and url.startswith(VALID_URL_PREFIXES)


def normalize_url(url: str) -> str:
    """Map accepted URL forms to the page that gets scraped.

    ``artist.tools`` moves to ``app.artist.tools`` and Spotify playlist links
    are rewritten to the matching ``app.artist.tools`` page.
    """
    if url.startswith("https://artist.tools/playlist/"):
        return url.replace("https://artist.tools", "https://app.artist.tools", 1)

    match = SPOTIFY_PLAYLIST_RE.search(url)
    if match:
        return CANONICAL_PLAYLIST_URL.format(playlist_id=match.group(1))

    return url


class PlaylistRegistry:
    """Add, remove and list the playlist URLs a user monitors."""

    def __init__(self, store: MonitorStore, logger: logging.Logger):
        self.store = store
        self.logger = logger

    def list_urls(self, user_id: str) -> List[str]:
        """Return the user's valid playlist URLs, as stored.

        Raises:
            PersistenceError: If the list cannot be read
        """
        urls, _ = self.store.load_urls(user_id)
        return [url for url in urls if is_valid_playlist_url(url)]

    def scrape_targets(self, user_id: str) -> List[str]:
        """Return the normalized URLs a run should visit, in list order."""
        return [normalize_url(url) for url in self.list_urls(user_id)]

    def add(self, user_id: str, url: str) -> int:
        """Add a playlist URL.

        Args:
            user_id: User identity
            url: Playlist URL

        Returns:
            Number of playlists after the addition

        Raises:
            PlaylistValidationError: If the URL is missing, malformed or already present
            PersistenceError: If the list cannot be read or written
        """
        url = (url or "").strip()
        if not is_valid_playlist_url(url):
            raise PlaylistValidationError(
                f"Invalid URL: {url or '(missing)'}. "
                f"Use one of: {', '.join(p + 'ID' for p in VALID_URL_PREFIXES)}"
            )

        urls, revision = self.store.load_urls(user_id)
        if url in urls:
            raise PlaylistValidationError(f"Playlist already added: {url}")

        urls.append(url)
        self.store.save_urls(user_id, urls, revision)
        self.logger.info(f"Added playlist {url} for {user_id} ({len(urls)} total)")
        return len(urls)

    def remove(self, user_id: str, url: str) -> int:
        """Remove a playlist URL, matching either its raw or normalized form.

        Returns:
            Number of playlists remaining

        Raises:
            PlaylistValidationError: If the URL is missing or not in the list
            PersistenceError: If the list cannot be read or written
        """
        url = (url or "").strip()
        if not url:
            raise PlaylistValidationError("Missing URL to remove")

        urls, revision = self.store.load_urls(user_id)
        normalized = normalize_url(url)
        remaining = [u for u in urls if u != url and u != normalized]

        if len(remaining) == len(urls):
            raise PlaylistValidationError(f"URL not found: {url}")

        self.store.save_urls(user_id, remaining, revision)
        self.logger.info(f"Removed playlist {url} for {user_id} ({len(remaining)} remaining)")
        return len(remaining)
