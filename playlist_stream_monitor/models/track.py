"""Track data models."""

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class Track:
    """One ranked entry of a playlist at a point in time."""

    name: str
    artist: str
    stream_count_raw: str = ""  # As shown on the page, e.g. "1,234" or "3.5K"
    position: int = 0  # 1-based rank within the playlist

    @property
    def identity_key(self) -> Tuple[str, str]:
        """Key used to match the same track across two snapshots."""
        return (self.name.strip().lower(), self.artist.strip().lower())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'artist': self.artist,
            'streams': self.stream_count_raw,
            'position': self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        return cls(
            name=str(data.get('name') or ''),
            artist=str(data.get('artist') or ''),
            stream_count_raw=str(data.get('streams') or ''),
            position=int(data.get('position') or 0),
        )
