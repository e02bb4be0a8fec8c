import pytest

from playlist_stream_monitor.config.database import SQLiteContentStore
from playlist_stream_monitor.config.storage import ContentStore, MonitorStore
from playlist_stream_monitor.core.differ import diff_snapshots
from playlist_stream_monitor.core.extractor import TrackExtractor
from playlist_stream_monitor.core.monitor import EMPTY_LIST_MESSAGE, PlaylistMonitor, render_record
from playlist_stream_monitor.core.playlists import PlaylistRegistry
from playlist_stream_monitor.core.report import combine
from playlist_stream_monitor.errors import DeliveryError, PersistenceError, RunAbortedError
from playlist_stream_monitor.models import DayRecord, PlaylistSnapshot, RunStatus, Track

from conftest import FakePage, FakeSession, RecordingNotifier
from pages import card_html, playlist_html

URL_A = "https://app.artist.tools/playlist/aaa111"
URL_B = "https://app.artist.tools/playlist/bbb222"
TODAY = "2024-05-02"
YESTERDAY = "2024-05-01"


class UnreadableStore(ContentStore):
    def get(self, path):
        raise PersistenceError("connection refused")

    def put(self, path, content, expected_revision=None, message=None):
        raise PersistenceError("connection refused")


class ReadOnlyRecords(SQLiteContentStore):
    def put(self, path, content, expected_revision=None, message=None):
        if path.startswith("data/"):
            raise PersistenceError("read-only")
        return super().put(path, content, expected_revision, message)


class BrokenSession:
    """Session whose browser starts but whose page cannot be opened."""

    def __init__(self):
        self.closed = False

    def open(self):
        raise RuntimeError("Executable doesn't exist")

    def close(self):
        self.closed = True


def build_monitor(store, notifier, page, logger):
    sessions = []

    def session_factory():
        sessions.append(FakeSession(page))
        return sessions[-1]

    monitor = PlaylistMonitor(
        store=store,
        registry=PlaylistRegistry(store, logger),
        extractor=TrackExtractor(logger),
        notifier=notifier,
        session_factory=session_factory,
        logger=logger,
        retry_delay=0,
    )
    return monitor, sessions


def add_urls(store, logger, *urls):
    registry = PlaylistRegistry(store, logger)
    for url in urls:
        registry.add("42", url)


def test_first_run_reports_every_track_as_new(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A)
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)])})
    monitor, sessions = build_monitor(monitor_store, notifier, page, logger)

    result = monitor.run("42", today=TODAY)

    assert result.status == RunStatus.COMPLETED
    assert result.persisted
    assert len(notifier.sent) == 1
    target, text = notifier.sent[0]
    assert target == "42"
    assert "Playlist: aaa111" in text
    assert "X by Y: 1,000 streams (nueva)" in text
    assert "Resumen General" in text

    stored = monitor_store.load_day_record("42", TODAY)
    assert stored.date == TODAY
    assert [len(s.tracks) for s in stored.playlists] == [1]
    assert sessions[0].closed


def test_deltas_against_previous_day(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A)
    monitor_store.save_day_record("42", DayRecord(
        date=YESTERDAY,
        playlists=[PlaylistSnapshot(url=URL_A, tracks=(Track("X", "Y", "900", 1), Track("Gone", "Z", "5", 2)))],
    ))
    page = FakePage({URL_A: playlist_html("Hits", [
        card_html("X", "Y", "1,000", 1),
        card_html("Fresh", "Z", "50", 2),
    ])})
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)

    monitor.run("42", target_id="-100200", today=TODAY)

    target, text = notifier.sent[0]
    assert target == "-100200"
    assert "X by Y: 1,000 streams (+100)" in text
    assert "Fresh by Z: 50 streams (nueva)" in text
    assert "Gone" not in text


def test_one_failed_playlist_does_not_stop_the_run(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A, URL_B)
    page = FakePage(
        {URL_B: playlist_html("Other", [card_html("Song", "Artist", "700", 1)])},
        failing={URL_A},
    )
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)

    result = monitor.run("42", today=TODAY)

    assert result.error_count == 1
    (_, text) = notifier.sent[0]
    assert "Playlist: aaa111" in text
    assert "Error: Navigation failed" in text
    assert "Song by Artist: 700 streams (nueva)" in text
    assert text.index("aaa111") < text.index("bbb222")

    stored = monitor_store.load_day_record("42", TODAY)
    assert [s.url for s in stored.playlists] == [URL_A, URL_B]
    assert stored.playlists[0].error.startswith("Navigation failed")
    assert stored.playlists[1].error is None


def test_scrapes_normalized_urls(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, "https://open.spotify.com/playlist/aaa111")
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "10", 1)])})
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)

    monitor.run("42", today=TODAY)

    assert page.navigations == [URL_A]


def test_empty_list_sends_single_message(monitor_store, notifier, logger):
    monitor, sessions = build_monitor(monitor_store, notifier, FakePage(), logger)

    result = monitor.run("42", today=TODAY)

    assert result.status == RunStatus.EMPTY
    assert notifier.sent == [("42", EMPTY_LIST_MESSAGE)]
    assert sessions == []
    assert monitor_store.load_day_record("42", TODAY) is None


def test_unreadable_list_aborts_with_single_message(notifier, logger):
    store = MonitorStore(UnreadableStore(), logger)
    monitor, sessions = build_monitor(store, notifier, FakePage(), logger)

    with pytest.raises(RunAbortedError):
        monitor.run("42", today=TODAY)

    assert len(notifier.sent) == 1
    assert "connection refused" in notifier.sent[0][1]
    assert sessions == []


def test_missing_user_aborts(monitor_store, notifier, logger):
    monitor, _ = build_monitor(monitor_store, notifier, FakePage(), logger)

    with pytest.raises(RunAbortedError):
        monitor.run("")

    assert notifier.sent == []


def test_browser_start_failure_aborts(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A)
    monitor, _ = build_monitor(monitor_store, notifier, FakePage(), logger)

    def no_browser():
        raise RuntimeError("Executable doesn't exist")

    monitor.session_factory = no_browser

    with pytest.raises(RunAbortedError):
        monitor.run("42", today=TODAY)

    assert len(notifier.sent) == 1


def test_session_is_closed_when_browser_fails_to_open(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A)
    monitor, _ = build_monitor(monitor_store, notifier, FakePage(), logger)
    session = BrokenSession()
    monitor.session_factory = lambda: session

    with pytest.raises(RunAbortedError):
        monitor.run("42", today=TODAY)

    assert session.closed
    assert "Executable doesn't exist" in notifier.sent[0][1]


@pytest.mark.parametrize("content", [b"[]", b"\"text\"", b"{\"playlists\": [\"not a snapshot\"]}"])
def test_corrupt_previous_record_reports_every_track_as_new(monitor_store, content_store, notifier, logger, content):
    add_urls(monitor_store, logger, URL_A)
    content_store.put(f"data/42/{YESTERDAY}.json", content)
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)])})
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)

    result = monitor.run("42", today=TODAY)

    assert result.status == RunStatus.COMPLETED
    assert "X by Y: 1,000 streams (nueva)" in notifier.sent[0][1]


def test_unexpected_playlist_error_becomes_failure_block(monitor_store, notifier, logger, monkeypatch):
    add_urls(monitor_store, logger, URL_A, URL_B)
    page = FakePage({
        URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)]),
        URL_B: playlist_html("Other", [card_html("Song", "Artist", "700", 1)]),
    })
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)

    def diff_failing_on_a(today, previous):
        if today.url == URL_A:
            raise RuntimeError("boom")
        return diff_snapshots(today, previous)

    monkeypatch.setattr("playlist_stream_monitor.core.monitor.diff_snapshots", diff_failing_on_a)

    result = monitor.run("42", today=TODAY)

    assert result.status == RunStatus.COMPLETED
    assert result.error_count == 1
    (_, text) = notifier.sent[0]
    assert f"Error al procesar: {URL_A}\nboom" in text
    assert "Song by Artist: 700 streams (nueva)" in text

    stored = monitor_store.load_day_record("42", TODAY)
    assert stored.playlists[0].error == "boom"
    assert stored.playlists[1].error is None


def test_report_is_delivered_when_saving_fails(tmp_path, notifier, logger):
    store = MonitorStore(ReadOnlyRecords(tmp_path / "ro.db"), logger)
    add_urls(store, logger, URL_A)
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)])})
    monitor, _ = build_monitor(store, notifier, page, logger)

    result = monitor.run("42", today=TODAY)

    assert not result.persisted
    assert len(notifier.sent) == 1


def test_delivery_failure_propagates_after_saving(monitor_store, logger):
    add_urls(monitor_store, logger, URL_A)
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)])})
    monitor, sessions = build_monitor(monitor_store, RecordingNotifier(logger, fail=True), page, logger)

    with pytest.raises(DeliveryError):
        monitor.run("42", today=TODAY)

    assert monitor_store.load_day_record("42", TODAY) is not None
    assert sessions[0].closed


def test_long_report_is_split_between_playlists(monitor_store, notifier, logger):
    urls = [f"https://app.artist.tools/playlist/p{n}" for n in range(6)]
    add_urls(monitor_store, logger, *urls)
    cards = [card_html(f"Song number {n} " + "x" * 40, "Artist", "1,000", n) for n in range(1, 11)]
    page = FakePage({url: playlist_html("Hits", cards) for url in urls})
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)
    monitor.max_message_length = 1000

    result = monitor.run("42", today=TODAY)

    assert len(result.chunks) > 1
    assert [text for _, text in notifier.sent] == result.chunks
    for chunk in result.chunks:
        assert len(chunk) <= 1000
        assert chunk.count("Reporte de artist.tools") == chunk.count("Cambios desde ayer:")
    assert "Resumen General" in result.chunks[-1]


def test_render_record_matches_delivered_report(monitor_store, notifier, logger):
    add_urls(monitor_store, logger, URL_A)
    page = FakePage({URL_A: playlist_html("Hits", [card_html("X", "Y", "1,000", 1)])})
    monitor, _ = build_monitor(monitor_store, notifier, page, logger)
    monitor.run("42", today=TODAY)

    reports, summary = render_record(monitor_store.load_day_record("42", TODAY), None)

    assert combine(reports, summary) == notifier.sent[0][1]
