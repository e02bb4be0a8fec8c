"""Track extraction from rendered playlist pages."""

import logging
import re
from typing import Callable, List, Optional, Sequence, TypeVar

from bs4 import BeautifulSoup, Tag

from ..errors import ExtractionError
from ..models.playlist import PlaylistSnapshot
from ..models.track import Track
from .browser import BrowserPage
from .numbers import format_magnitude, parse_magnitude

T = TypeVar('T')

MAX_TRACKS = 10

ERROR_MARKER = "Something went wrong"
ERROR_PAGE_MESSAGE = "Page reported a server error"

TRACKS_ANCHOR_SELECTOR = 'a[href$="tracks"]'
GRID_BUTTON_SELECTOR = 'button[aria-label="Grid view"]'
CARD_SELECTOR = "[data-entity-card]"
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

TOTAL_STREAMS_LABEL = "Total Streams"
TRACK_COUNT_LABEL = "Track Count"

# Clicks the first interactive-looking element whose whole text is "Tracks"
CLICK_TRACKS_BY_TEXT_JS = """() => {
  const match = Array.from(document.querySelectorAll("*")).find(
    (el) =>
      el.textContent &&
      el.textContent.trim() === "Tracks" &&
      (el.tagName === "A" || el.tagName === "BUTTON" || el.onclick || el.href)
  );
  if (!match) return false;
  match.click();
  return true;
}"""

_ABBREVIATED_TOKEN = r"(\d[\d,]*(?:\.\d+)?(?:\s?[KMBkmb]\b)?)"
_INTEGER_TOKEN = r"(\d[\d,]*)"

ARTISTS_RE = re.compile(r"Artists:\s*(.+?)\s*Streams:", re.DOTALL)
STREAMS_RE = re.compile(r"Streams:\s*([\d,]+)")
POSITION_RE = re.compile(r"Position:\s*(\d+)")


def first_success(
    strategies: Sequence[Callable[..., Optional[T]]],
    *args,
    logger: Optional[logging.Logger] = None
) -> Optional[T]:
    """Run strategies in order and return the first non-None result.

    A strategy that raises counts as a miss.
    """
    for strategy in strategies:
        try:
            result = strategy(*args)
        except Exception as e:
            if logger:
                logger.debug(f"Strategy {getattr(strategy, '__name__', strategy)} failed: {e}")
            continue
        if result is not None:
            return result
    return None


def _clean(text: Optional[str]) -> str:
    return " ".join((text or "").split())


# Page-level strategies, each taking a parsed document

def playlist_name_from_heading(soup: BeautifulSoup) -> Optional[str]:
    heading = soup.find("h1")
    name = _clean(heading.get_text()) if heading else ""
    return name or None


def playlist_name_from_title(soup: BeautifulSoup) -> Optional[str]:
    if not soup.title or not soup.title.string:
        return None
    name = soup.title.string.split("|")[0].strip()
    return name or None


def find_labelled_value(
    soup: BeautifulSoup,
    label: str,
    token: str = _ABBREVIATED_TOKEN
) -> Optional[str]:
    """Find the number displayed next to a text label.

    Looks at the label's parent, then grandparent, for a number right before
    or right after the label text.
    """
    leading = re.compile(token + r"\s*" + re.escape(label))
    trailing = re.compile(re.escape(label) + r"\s*:?\s*" + token)

    for text_node in soup.find_all(string=lambda s: s is not None and label in s):
        container = text_node.parent
        for _ in range(2):
            if container is None:
                break
            text = container.get_text(" ", strip=True)
            for pattern in (leading, trailing):
                match = pattern.search(text)
                if match:
                    return match.group(1).replace(" ", "")
            container = container.parent
    return None


def parse_track_card(card: Tag, index: int) -> Optional[Track]:
    """Build a track from one card element, or None if the card is incomplete.

    Args:
        card: Card element
        index: 1-based order of the card, used when no position is shown

    Returns:
        Track or None
    """
    heading = card.find(HEADING_TAGS)
    if heading is None:
        return None

    name = _clean(heading.get_text())
    card_text = card.get_text()

    artists_match = ARTISTS_RE.search(card_text)
    artist = _clean(artists_match.group(1)) if artists_match else ""

    streams_match = STREAMS_RE.search(card_text)
    streams = streams_match.group(1).strip(",") if streams_match else ""

    position_match = POSITION_RE.search(card_text)
    position = int(position_match.group(1)) if position_match else index

    if not (name and artist and streams):
        return None

    return Track(
        name=name,
        artist=artist,
        stream_count_raw=streams,
        position=position or index,
    )


class TrackExtractor:
    """Turns a loaded playlist page into a :class:`PlaylistSnapshot`."""

    def __init__(
        self,
        logger: logging.Logger,
        settle_ms: int = 3000,
        tracks_wait_ms: int = 2000,
        grid_wait_ms: int = 3000,
        grid_timeout_ms: int = 10000,
        max_tracks: int = MAX_TRACKS
    ):
        """Initialize extractor.

        Args:
            logger: Logger instance
            settle_ms: Wait after navigation before reading the page
            tracks_wait_ms: Wait after revealing the tracks view
            grid_wait_ms: Wait after switching to the grid layout
            grid_timeout_ms: How long to look for the grid control
            max_tracks: Number of top tracks kept
        """
        self.logger = logger
        self.settle_ms = settle_ms
        self.tracks_wait_ms = tracks_wait_ms
        self.grid_wait_ms = grid_wait_ms
        self.grid_timeout_ms = grid_timeout_ms
        self.max_tracks = max_tracks

        self.name_strategies = [playlist_name_from_heading, playlist_name_from_title]
        self.tracks_view_strategies = [self._click_tracks_anchor, self._click_tracks_by_text]

    def extract(self, page: BrowserPage, url: str) -> PlaylistSnapshot:
        """Extract a snapshot from a page already navigated to ``url``.

        Never raises: any failure becomes an error snapshot.
        """
        try:
            return self._extract(page, url)
        except ExtractionError as e:
            self.logger.warning(f"{e}: {url}")
            return PlaylistSnapshot.failure(url, str(e))
        except Exception as e:
            self.logger.error(f"Extraction failed for {url}: {e}")
            return PlaylistSnapshot.failure(url, str(e))

    def _extract(self, page: BrowserPage, url: str) -> PlaylistSnapshot:
        if self.settle_ms > 0:
            page.wait(self.settle_ms)

        if self.has_error_marker(page.content()):
            raise ExtractionError(ERROR_PAGE_MESSAGE)

        self.reveal_tracks_view(page)
        self.switch_to_grid(page)

        return self.parse(page.content(), url)

    @staticmethod
    def has_error_marker(html: str) -> bool:
        soup = BeautifulSoup(html, "html.parser")
        return ERROR_MARKER in soup.get_text()

    # Page interactions

    def _click_tracks_anchor(self, page: BrowserPage) -> Optional[bool]:
        if not page.query_selector(TRACKS_ANCHOR_SELECTOR):
            return None
        page.click(TRACKS_ANCHOR_SELECTOR)
        return True

    def _click_tracks_by_text(self, page: BrowserPage) -> Optional[bool]:
        return True if page.evaluate(CLICK_TRACKS_BY_TEXT_JS) else None

    def reveal_tracks_view(self, page: BrowserPage) -> bool:
        """Open the tracks tab if the page has one."""
        revealed = first_success(self.tracks_view_strategies, page, logger=self.logger)
        if not revealed:
            self.logger.debug("Tracks view control not found, continuing")
            return False

        self.logger.debug("Opened tracks view")
        if self.tracks_wait_ms > 0:
            page.wait(self.tracks_wait_ms)
        return True

    def switch_to_grid(self, page: BrowserPage) -> bool:
        """Switch to the grid layout if the control is present."""
        try:
            page.click(GRID_BUTTON_SELECTOR, timeout_ms=self.grid_timeout_ms)
        except Exception as e:
            self.logger.debug(f"Grid view control not available, continuing: {e}")
            return False

        self.logger.debug("Switched to grid view")
        if self.grid_wait_ms > 0:
            page.wait(self.grid_wait_ms)
        return True

    # Document parsing

    def parse(self, html: str, url: str) -> PlaylistSnapshot:
        """Build a snapshot from rendered page HTML."""
        soup = BeautifulSoup(html, "html.parser")

        playlist_name = first_success(self.name_strategies, soup, logger=self.logger)
        reported_streams = find_labelled_value(soup, TOTAL_STREAMS_LABEL)
        reported_count = find_labelled_value(soup, TRACK_COUNT_LABEL, token=_INTEGER_TOKEN)

        tracks = self.parse_tracks(soup)

        total_tracks = int(reported_count.replace(",", "")) if reported_count else 0
        if total_tracks <= 0:
            total_tracks = len(tracks)

        if reported_streams is None:
            reported_streams = format_magnitude(
                sum(parse_magnitude(track.stream_count_raw) for track in tracks)
            )

        self.logger.info(
            f"Extracted {len(tracks)} track(s) from playlist "
            f"'{playlist_name or 'Unknown Playlist'}'"
        )

        return PlaylistSnapshot(
            url=url,
            playlist_name=playlist_name or "Unknown Playlist",
            tracks=tuple(tracks),
            total_tracks=total_tracks,
            total_streams_raw=reported_streams,
        )

    def parse_tracks(self, soup: BeautifulSoup) -> List[Track]:
        """Parse every track card, keeping the top ``max_tracks`` by position."""
        cards = soup.select(CARD_SELECTOR)
        if not cards:
            self.logger.warning("No track cards found on page")
            return []

        tracks = []
        for index, card in enumerate(cards, start=1):
            track = parse_track_card(card, index)
            if track is None:
                self.logger.debug(f"Skipping incomplete track card #{index}")
                continue
            tracks.append(track)

        # sorted() is stable, so equal positions keep page order
        tracks = sorted(tracks, key=lambda t: t.position)
        return tracks[:self.max_tracks]
