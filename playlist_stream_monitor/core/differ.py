"""Day-over-day comparison of playlist snapshots."""

from typing import Dict, List, Optional, Tuple

from ..models.change import ChangeKind, ChangeRecord
from ..models.playlist import DayRecord, PlaylistSnapshot, extract_playlist_id
from ..models.track import Track
from .numbers import parse_magnitude


def find_previous_snapshot(
    record: Optional[DayRecord],
    url: str
) -> Optional[PlaylistSnapshot]:
    """Pick the snapshot of ``url`` from a previous day's record.

    Matches on the exact URL first, then on the playlist id.
    """
    if record is None:
        return None

    for snapshot in record.playlists:
        if snapshot.url == url:
            return snapshot

    playlist_id = extract_playlist_id(url)
    for snapshot in record.playlists:
        if snapshot.playlist_id == playlist_id:
            return snapshot

    return None


def diff_snapshots(
    today: PlaylistSnapshot,
    yesterday: Optional[PlaylistSnapshot]
) -> List[ChangeRecord]:
    """Classify each of today's tracks against yesterday's snapshot.

    Tracks that dropped out since yesterday produce no record.

    Args:
        today: Today's snapshot
        yesterday: Previous snapshot, or None

    Returns:
        One ChangeRecord per track of today, in today's order
    """
    if yesterday is None or not yesterday.tracks:
        return [ChangeRecord(kind=ChangeKind.NEW, track=track) for track in today.tracks]

    # Later duplicates overwrite earlier ones
    previous: Dict[Tuple[str, str], Track] = {
        track.identity_key: track for track in yesterday.tracks
    }

    changes = []
    for track in today.tracks:
        match = previous.get(track.identity_key)
        if match is None:
            changes.append(ChangeRecord(kind=ChangeKind.NEW, track=track))
            continue

        delta = parse_magnitude(track.stream_count_raw) - parse_magnitude(match.stream_count_raw)
        if delta > 0:
            kind = ChangeKind.INCREASE
        elif delta < 0:
            kind = ChangeKind.DECREASE
        else:
            kind = ChangeKind.UNCHANGED
        changes.append(ChangeRecord(kind=kind, track=track, delta=delta))

    return changes
