from playlist_stream_monitor.core.report import (
    chunk_for_delivery,
    combine,
    render_failure_report,
    render_playlist_report,
    render_summary,
)
from playlist_stream_monitor.models import ChangeKind, ChangeRecord, PlaylistSnapshot, Track

URL = "https://app.artist.tools/playlist/abc123"
SUMMARY = "\nResumen General\n"


def hits_snapshot(*tracks):
    return PlaylistSnapshot(
        url=URL,
        playlist_name="Hits",
        tracks=tuple(tracks),
        total_tracks=50,
        total_streams_raw="12.3M",
    )


def test_playlist_report_layout():
    up = Track("Song", "Artist", "1,500", 1)
    new = Track("Other", "Someone", "2.1M", 2)
    changes = [
        ChangeRecord(ChangeKind.INCREASE, up, 500),
        ChangeRecord(ChangeKind.NEW, new),
    ]

    report = render_playlist_report(hits_snapshot(up, new), changes)

    assert report == (
        "Reporte de artist.tools\n"
        "Playlist: abc123\n"
        "50 tracks | 12.3M total streams\n"
        "\n"
        "Cambios desde ayer:\n"
        "Song by Artist: 1,500 streams (+500)\n"
        "Other by Someone: 2,100,000 streams (nueva)\n"
    )


def test_change_annotations():
    track = Track("Song", "Artist", "1,000", 1)
    changes = [
        ChangeRecord(ChangeKind.DECREASE, track, -1000),
        ChangeRecord("unchanged", track),
    ]

    report = render_playlist_report(hits_snapshot(track), changes)

    assert "Song by Artist: 1,000 streams (-1,000)" in report
    assert "Song by Artist: 1,000 streams (sin cambios)" in report


def test_error_snapshot_report():
    report = render_playlist_report(PlaylistSnapshot.failure(URL, "boom"), [])

    assert report == (
        "Reporte de artist.tools\n"
        "Playlist: abc123\n"
        "0 tracks | N/A total streams\n"
        "\n"
        "Error: boom\n"
    )


def test_failure_report():
    assert render_failure_report(URL, "Timeout") == f"Error al procesar: {URL}\nTimeout"


def test_summary_lists_every_playlist():
    other = PlaylistSnapshot(url="https://app.artist.tools/playlist/def456", total_tracks=3, total_streams_raw="900")

    summary = render_summary([hits_snapshot(), other])

    assert summary == (
        "\nResumen General\n"
        "Playlist: abc123\n50 tracks | 12.3M total streams\n\n"
        "Playlist: def456\n3 tracks | 900 total streams\n\n"
    )


def test_short_report_is_one_chunk():
    reports = ["first block", "second block"]

    assert chunk_for_delivery(reports, SUMMARY, 4000) == [combine(reports, SUMMARY)]
    assert combine(reports, SUMMARY) == "first block\n\nsecond block" + SUMMARY


def test_chunks_pack_whole_blocks_and_keep_summary_last():
    reports = ["A" * 40, "B" * 40, "C" * 40]

    chunks = chunk_for_delivery(reports, SUMMARY, max_length=100)

    assert chunks == ["A" * 40 + "\n\n" + "B" * 40, "C" * 40 + SUMMARY]
    assert all(len(chunk) <= 100 for chunk in chunks)


def test_oversized_block_is_sent_alone_and_not_split():
    reports = ["X" * 150, "Y" * 10]

    chunks = chunk_for_delivery(reports, SUMMARY, max_length=100)

    assert chunks == ["X" * 150, "Y" * 10 + SUMMARY]


def test_summary_gets_own_chunk_when_it_does_not_fit():
    reports = ["A" * 90]

    chunks = chunk_for_delivery(reports, SUMMARY, max_length=100)

    assert chunks == ["A" * 90, SUMMARY]
