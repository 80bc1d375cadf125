"""
Shared fixtures: a QCoreApplication for signals and timers, a manual clock,
fake Spotify clients and a thread pool that runs fetches inline.

Timers are never waited on. Tests call the slot a timer would fire
(poll, complete, advance) directly.
"""

import gc
import sqlite3
from unittest.mock import MagicMock

import pytest
from PySide6.QtCore import QCoreApplication, QEvent

from core.models import AccessCredential, AlbumArt, PlaybackPayload, PlaybackSnapshot, RenewedToken
from db.database import upgrade_database_if_needed


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app
    release_qobjects()


def release_qobjects():
    """Destroy collected QObjects while the application still exists."""
    gc.collect()
    if QCoreApplication.instance() is not None:
        QCoreApplication.sendPostedEvents(None, QEvent.Type.DeferredDelete)


@pytest.fixture(autouse=True)
def _release_after_test():
    yield
    release_qobjects()


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InlinePool:
    """Stands in for QThreadPool: runs each task synchronously on start()."""

    def __init__(self):
        self.started = 0

    def start(self, task):
        self.started += 1
        task.run()


class DeferredPool:
    """Keeps tasks until the test releases them, to model a slow request."""

    def __init__(self):
        self.tasks = []

    def start(self, task):
        self.tasks.append(task)

    def release_all(self):
        tasks, self.tasks = self.tasks, []
        for task in tasks:
            task.run()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def pool():
    return InlinePool()


@pytest.fixture
def deferred_pool():
    return DeferredPool()


@pytest.fixture
def auth_client():
    client = MagicMock()
    client.renew_credential.return_value = RenewedToken(access_token="renewed", expires_in=3600)
    return client


@pytest.fixture
def api():
    api = MagicMock()
    api.fetch_current_playback.return_value = None
    return api


@pytest.fixture
def valid_credential():
    return AccessCredential(access_token="token", refresh_token="refresh", expires_at=10_000_000_000.0)


@pytest.fixture
def memory_db():
    db = sqlite3.connect(":memory:")
    db.row_factory = sqlite3.Row
    upgrade_database_if_needed(db, 0)
    yield db
    db.close()


def make_snapshot(name="Song", art="https://i.scdn.co/image/a", playing=True,
                  progress_ms=0, duration_ms=200_000, observed_at=1000.0, artists=("Artist",)):
    return PlaybackSnapshot(
        name=name,
        artists=tuple(artists),
        album_art_url=art,
        is_playing=playing,
        progress_ms=progress_ms,
        duration_ms=duration_ms,
        observed_at=observed_at,
    )


def make_payload(name="Song", playing=True, progress_ms=0, duration_ms=200_000,
                 images=(AlbumArt("https://i.scdn.co/image/a", 640, 640),), artists=("Artist",)):
    return PlaybackPayload(
        name=name,
        artists=tuple(artists),
        images=tuple(images),
        is_playing=playing,
        progress_ms=progress_ms,
        duration_ms=duration_ms,
    )
