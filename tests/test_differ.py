from playlist_stream_monitor.core.differ import diff_snapshots, find_previous_snapshot
from playlist_stream_monitor.models import ChangeKind, DayRecord, PlaylistSnapshot, Track

URL = "https://app.artist.tools/playlist/abc123"


def snapshot(*tracks, url=URL):
    return PlaylistSnapshot(url=url, playlist_name="Hits", tracks=tuple(tracks))


def test_without_yesterday_everything_is_new():
    today = snapshot(Track("A", "X", "100", 1), Track("B", "Y", "200", 2))

    for yesterday in (None, snapshot()):
        changes = diff_snapshots(today, yesterday)
        assert [c.kind for c in changes] == [ChangeKind.NEW, ChangeKind.NEW]
        assert [c.delta for c in changes] == [0, 0]


def test_classifies_increase_decrease_unchanged_and_new():
    yesterday = snapshot(
        Track("Up", "X", "1,000", 1),
        Track("Down", "X", "2,000", 2),
        Track("Same", "X", "3.5K", 3),
    )
    today = snapshot(
        Track("Up", "X", "1,500", 1),
        Track("Down", "X", "1,000", 2),
        Track("Same", "X", "3,500", 3),
        Track("Fresh", "X", "10", 4),
    )

    changes = diff_snapshots(today, yesterday)

    assert [(c.track.name, c.kind, c.delta) for c in changes] == [
        ("Up", ChangeKind.INCREASE, 500),
        ("Down", ChangeKind.DECREASE, -1000),
        ("Same", ChangeKind.UNCHANGED, 0),
        ("Fresh", ChangeKind.NEW, 0),
    ]


def test_one_record_per_track_of_today_in_order():
    yesterday = snapshot(Track("Gone", "X", "500", 1), Track("Kept", "X", "100", 2))
    today = snapshot(Track("Kept", "X", "150", 1))

    changes = diff_snapshots(today, yesterday)

    assert [c.track for c in changes] == list(today.tracks)


def test_identity_ignores_case_and_padding():
    yesterday = snapshot(Track("song ", "ARTIST", "100", 1))
    today = snapshot(Track("Song", " artist", "150", 1))

    (change,) = diff_snapshots(today, yesterday)

    assert change.kind == ChangeKind.INCREASE
    assert change.delta == 50


def test_duplicate_yesterday_entries_last_one_wins():
    yesterday = snapshot(Track("Dup", "X", "100", 1), Track("Dup", "X", "200", 2))
    today = snapshot(Track("Dup", "X", "250", 1))

    (change,) = diff_snapshots(today, yesterday)

    assert change.delta == 50


def test_same_artist_different_name_is_new():
    yesterday = snapshot(Track("A", "X", "100", 1))
    today = snapshot(Track("B", "X", "100", 1))

    (change,) = diff_snapshots(today, yesterday)

    assert change.kind == ChangeKind.NEW


def test_find_previous_snapshot_by_url_then_playlist_id():
    exact = snapshot(Track("A", "X", "1", 1))
    legacy = snapshot(Track("B", "X", "1", 1), url="https://artist.tools/playlist/zzz999")
    record = DayRecord(date="2024-05-01", playlists=[legacy, exact])

    assert find_previous_snapshot(record, URL) is exact
    assert find_previous_snapshot(record, "https://app.artist.tools/playlist/zzz999") is legacy
    assert find_previous_snapshot(record, "https://app.artist.tools/playlist/other") is None
    assert find_previous_snapshot(None, URL) is None
