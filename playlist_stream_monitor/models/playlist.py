"""Playlist snapshot and day record models."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .track import Track

PLAYLIST_ID_RE = re.compile(r"playlist/([a-zA-Z0-9]+)")


def extract_playlist_id(url: str) -> str:
    """Derive a short playlist identifier from a playlist URL.

    Args:
        url: Playlist page URL

    Returns:
        The ``playlist/<id>`` segment, else the trailing path segment,
        else ``"Unknown"``
    """
    if not url:
        return "Unknown"

    match = PLAYLIST_ID_RE.search(url)
    if match:
        return match.group(1)

    tail = url.split('?')[0].rstrip('/').rsplit('/', 1)[-1]
    return tail or "Unknown"


@dataclass(frozen=True)
class PlaylistSnapshot:
    """State of one playlist at one run."""

    url: str
    playlist_name: str = "Unknown Playlist"
    tracks: Tuple[Track, ...] = ()
    total_tracks: int = 0
    total_streams_raw: str = "N/A"
    error: Optional[str] = None

    @property
    def playlist_id(self) -> str:
        return extract_playlist_id(self.url)

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failure(cls, url: str, message: str) -> 'PlaylistSnapshot':
        """Build an error marker snapshot for a playlist that could not be read."""
        return cls(
            url=url,
            playlist_name="Error",
            tracks=(),
            total_tracks=0,
            total_streams_raw="N/A",
            error=message or "Unknown error",
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'url': self.url,
            'playlistName': self.playlist_name,
            'tracks': [track.to_dict() for track in self.tracks],
            'totalTracks': self.total_tracks,
            'totalStreams': self.total_streams_raw,
        }
        if self.error is not None:
            data['error'] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaylistSnapshot':
        tracks = tuple(
            Track.from_dict(item)
            for item in data.get('tracks') or []
            if isinstance(item, dict)
        )
        return cls(
            url=str(data.get('url') or ''),
            playlist_name=str(data.get('playlistName') or 'Unknown Playlist'),
            tracks=tracks,
            total_tracks=int(data.get('totalTracks') or 0),
            total_streams_raw=str(data.get('totalStreams') or 'N/A'),
            error=data.get('error'),
        )


@dataclass
class DayRecord:
    """All playlist snapshots of one user for one calendar date."""

    date: str  # ISO date, YYYY-MM-DD
    playlists: List[PlaylistSnapshot] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'date': self.date,
            'playlists': [snapshot.to_dict() for snapshot in self.playlists],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DayRecord':
        return cls(
            date=str(data.get('date') or ''),
            playlists=[
                PlaylistSnapshot.from_dict(item)
                for item in data.get('playlists') or []
                if isinstance(item, dict)
            ],
        )
