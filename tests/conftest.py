import logging

import pytest

from playlist_stream_monitor.config.database import SQLiteContentStore
from playlist_stream_monitor.config.storage import MonitorStore
from playlist_stream_monitor.core.notifier import Notifier
from playlist_stream_monitor.errors import DeliveryError


class FakePage:
    """BrowserPage serving fixed HTML per URL."""

    def __init__(self, pages=None, selectors=(), failing=(), tracks_by_text=False):
        self.pages = dict(pages or {})
        self.selectors = set(selectors)
        self.failing = set(failing)
        self.tracks_by_text = tracks_by_text
        self.url = None
        self.navigations = []
        self.clicks = []
        self.scripts = []

    def navigate(self, url, timeout_ms):
        self.navigations.append(url)
        if url in self.failing:
            raise TimeoutError(f"Timeout {timeout_ms}ms exceeded")
        self.url = url

    def query_selector(self, selector):
        return selector in self.selectors

    def click(self, selector, timeout_ms=None):
        if selector not in self.selectors:
            raise TimeoutError(f"Waiting for {selector} timed out")
        self.clicks.append(selector)

    def evaluate(self, script):
        self.scripts.append(script)
        return self.tracks_by_text

    def wait(self, ms):
        pass

    def content(self):
        return self.pages.get(self.url, "<html><body></body></html>")


class FakeSession:
    def __init__(self, page):
        self.page = page
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True
        return self.page

    def close(self):
        self.closed = True


class RecordingNotifier(Notifier):
    """Notifier that keeps every message instead of sending it."""

    def __init__(self, logger, fail=False):
        super().__init__(logger, chunk_delay=0)
        self.fail = fail
        self.sent = []

    def send(self, target_id, text):
        if self.fail:
            raise DeliveryError("chat unreachable")
        self.sent.append((target_id, text))


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)


@pytest.fixture
def logger():
    return logging.getLogger("monitor-tests")


@pytest.fixture
def content_store(tmp_path):
    return SQLiteContentStore(tmp_path / "monitor.db")


@pytest.fixture
def monitor_store(content_store, logger):
    return MonitorStore(content_store, logger)


@pytest.fixture
def notifier(logger):
    return RecordingNotifier(logger)
