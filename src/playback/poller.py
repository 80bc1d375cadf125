# src/playback/poller.py
from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from PySide6.QtCore import QObject, QRunnable, QThreadPool, QTimer, Signal

from core.errors import AuthRequired, Unauthorized, UpstreamUnavailable
from core.models import AlbumArt, FetchResult, PlaybackPayload, PlaybackSnapshot

logger = logging.getLogger(__name__)

LIVE_POLL_INTERVAL_MS = 1000
REDUCED_POLL_INTERVAL_MS = 5000


def pick_album_art(images: Iterable[AlbumArt]) -> str:
    """Largest width wins; on a tie the first one listed is kept."""
    best: Optional[AlbumArt] = None
    for img in images:
        if best is None or img.width > best.width:
            best = img
    return best.url if best else ""


def snapshot_from_payload(payload: PlaybackPayload, observed_at: float) -> Optional[PlaybackSnapshot]:
    if payload.duration_ms <= 0:
        # Nothing we can draw a progress bar for (ads, local files without metadata).
        return None
    return PlaybackSnapshot(
        name=payload.name,
        artists=tuple(payload.artists),
        album_art_url=pick_album_art(payload.images),
        is_playing=payload.is_playing,
        progress_ms=payload.progress_ms,
        duration_ms=payload.duration_ms,
        observed_at=observed_at,
    )


def fetch_playback(credentials, api, clock: Callable[[], float] = time.monotonic) -> FetchResult:
    """One poll: token (renewing if needed) + currently-playing request."""
    try:
        token = credentials.get_valid_access_token()
    except AuthRequired as e:
        logger.info("Playback poll needs authentication: %s", e)
        return FetchResult(unauthenticated=True)

    try:
        payload = api.fetch_current_playback(token)
    except Unauthorized as e:
        credentials.invalidate()
        return FetchResult(error=str(e))
    except UpstreamUnavailable as e:
        logger.warning("Playback API unavailable: %s", e)
        return FetchResult(error=str(e))

    if payload is None:
        return FetchResult()
    return FetchResult(snapshot=snapshot_from_payload(payload, clock()))


class _FetchSignals(QObject):
    resultReady = Signal(int, object)   # ticket, FetchResult


class PlaybackFetchTask(QRunnable):
    def __init__(self, credentials, api, clock, ticket: int, signals: _FetchSignals):
        super().__init__()
        self.credentials = credentials
        self.api = api
        self.clock = clock
        self.ticket = ticket
        self.signals = signals

    def run(self):
        try:
            result = fetch_playback(self.credentials, self.api, self.clock)
        except Exception as e:
            logger.exception("Playback fetch crashed")
            result = FetchResult(error=f"Fetch failed: {e}")

        try:
            self.signals.resultReady.emit(self.ticket, result)
        except RuntimeError:
            # Poller was destroyed while we were on the network.
            pass


class PlaybackPoller(QObject):
    """
    Repeating poll of the currently-playing endpoint.

    The request runs on a thread pool; its result is queued back to this
    object's thread. Only one request is in flight: a tick that finds one
    still running is skipped. stop() bumps the ticket so a late answer
    from before the stop is ignored.
    """
    snapshotReceived = Signal(object)   # PlaybackSnapshot | None
    upstreamError = Signal(str)
    unauthenticated = Signal()

    def __init__(self, credentials, api, interval_ms: int = LIVE_POLL_INTERVAL_MS,
                 pool: Optional[QThreadPool] = None,
                 clock: Callable[[], float] = time.monotonic, parent=None):
        super().__init__(parent)
        self.credentials = credentials
        self.api = api
        self.clock = clock
        self._pool = pool or QThreadPool.globalInstance()

        self._ticket = 0
        self._in_flight: Optional[int] = None
        self._running = False

        self._signals = _FetchSignals(self)
        self._signals.resultReady.connect(self._on_fetch_finished)

        self._timer = QTimer(self)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self.poll)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        interval_ms = int(interval_ms)
        if interval_ms == self._timer.interval():
            return
        self._timer.setInterval(interval_ms)
        if self._running:
            self._timer.start()

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._timer.start()
        self.poll()

    def stop(self) -> None:
        self._running = False
        self._timer.stop()
        self._ticket += 1
        self._in_flight = None

    def poll(self) -> None:
        if not self._running:
            return
        if self._in_flight is not None:
            logger.debug("Previous playback fetch still running; skipping tick")
            return

        self._in_flight = self._ticket
        self._pool.start(PlaybackFetchTask(self.credentials, self.api, self.clock, self._ticket, self._signals))

    def _on_fetch_finished(self, ticket: int, result: FetchResult) -> None:
        if ticket != self._ticket:
            return
        self._in_flight = None

        if result.unauthenticated:
            self.stop()
            self.unauthenticated.emit()
            return

        if result.error is not None:
            self.upstreamError.emit(result.error)
            return

        self.snapshotReceived.emit(result.snapshot)
