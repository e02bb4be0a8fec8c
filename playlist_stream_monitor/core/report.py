"""Plain-text rendering of playlist reports and delivery chunking."""

from typing import Iterable, List, Sequence

from ..models.change import ChangeKind, ChangeRecord
from ..models.playlist import PlaylistSnapshot
from .numbers import format_count, parse_magnitude

REPORT_TITLE = "Reporte de artist.tools"
CHANGES_HEADING = "Cambios desde ayer:"
SUMMARY_HEADING = "Resumen General"
NEW_LABEL = "nueva"
UNCHANGED_LABEL = "sin cambios"

BLOCK_SEPARATOR = "\n\n"
DEFAULT_MAX_LENGTH = 4000


def _totals_line(snapshot: PlaylistSnapshot) -> str:
    total_tracks = snapshot.total_tracks or len(snapshot.tracks)
    return f"{total_tracks} tracks | {snapshot.total_streams_raw or 'N/A'} total streams"


def annotate(change: ChangeRecord) -> str:
    if change.kind == ChangeKind.NEW:
        return NEW_LABEL
    if change.kind == ChangeKind.UNCHANGED:
        return UNCHANGED_LABEL
    return format_count(change.delta, signed=True)


def render_change_line(change: ChangeRecord) -> str:
    track = change.track
    streams = format_count(parse_magnitude(track.stream_count_raw))
    return f"{track.name} by {track.artist}: {streams} streams ({annotate(change)})"


def render_playlist_report(
    snapshot: PlaylistSnapshot,
    changes: Sequence[ChangeRecord]
) -> str:
    """Render one playlist's block of the report.

    Args:
        snapshot: Today's snapshot
        changes: Differ output for the snapshot

    Returns:
        Report block ending with a newline
    """
    lines = [
        REPORT_TITLE,
        f"Playlist: {snapshot.playlist_id}",
        _totals_line(snapshot),
        "",
    ]

    if snapshot.error:
        lines.append(f"Error: {snapshot.error}")
        lines.append("")
        return "\n".join(lines)

    lines.append(CHANGES_HEADING)
    lines.extend(render_change_line(change) for change in changes)
    lines.append("")
    return "\n".join(lines)


def render_failure_report(url: str, message: str) -> str:
    """Block used when a playlist could not be processed at all."""
    return f"Error al procesar: {url}\n{message}"


def render_summary(snapshots: Iterable[PlaylistSnapshot]) -> str:
    """Render the aggregate summary appended after the playlist blocks."""
    summary = f"\n{SUMMARY_HEADING}\n"
    for snapshot in snapshots:
        summary += f"Playlist: {snapshot.playlist_id}\n"
        summary += f"{_totals_line(snapshot)}\n\n"
    return summary


def combine(reports: Sequence[str], summary: str) -> str:
    return BLOCK_SEPARATOR.join(reports) + summary


def chunk_for_delivery(
    reports: Sequence[str],
    summary: str,
    max_length: int = DEFAULT_MAX_LENGTH
) -> List[str]:
    """Pack report blocks and the summary into messages of bounded length.

    Blocks are never split; a block longer than ``max_length`` goes out
    as its own chunk.

    Args:
        reports: Per-playlist report blocks, in order
        summary: Aggregate summary text
        max_length: Maximum characters per chunk

    Returns:
        Chunks to deliver, in order
    """
    full_text = combine(reports, summary)
    if len(full_text) <= max_length:
        return [full_text]

    chunks: List[str] = []
    current = ""
    for report in reports:
        candidate = current + BLOCK_SEPARATOR + report if current else report
        if current and len(candidate) > max_length:
            chunks.append(current)
            current = report
        else:
            current = candidate
    if current:
        chunks.append(current)

    if chunks and len(chunks[-1] + summary) <= max_length:
        chunks[-1] = chunks[-1] + summary
    else:
        chunks.append(summary)

    return chunks
