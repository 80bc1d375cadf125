# src/playback/pipeline.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from core.models import (
    Displaying,
    NoActiveTrack,
    PlaybackError,
    PlaybackSnapshot,
    Unauthenticated,
)
from playback.poller import LIVE_POLL_INTERVAL_MS, REDUCED_POLL_INTERVAL_MS, PlaybackPoller
from playback.progress import ProgressInterpolator
from playback.transition import TrackTransitionMachine

logger = logging.getLogger(__name__)


class PlaybackPipeline(QObject):
    """
    Poller -> transition machine -> progress interpolator, reduced to a
    single view state for the widgets:
      Unauthenticated | PlaybackError | NoActiveTrack | Displaying
    """
    viewStateChanged = Signal(object)

    def __init__(self, credentials, api, interval_ms: int = LIVE_POLL_INTERVAL_MS,
                 poller: Optional[PlaybackPoller] = None,
                 clock: Callable[[], float] = time.monotonic, parent=None):
        super().__init__(parent)
        self.credentials = credentials
        self.poller = poller or PlaybackPoller(credentials, api, interval_ms, clock=clock, parent=self)
        self.transitions = TrackTransitionMachine(clock=clock, parent=self)
        self.progress = ProgressInterpolator(clock=clock, parent=self)

        self._active = False
        self._error: Optional[str] = None
        self._unauthenticated = False
        self._view_state = None

        self.poller.snapshotReceived.connect(self._on_snapshot)
        self.poller.upstreamError.connect(self._on_upstream_error)
        self.poller.unauthenticated.connect(self._on_unauthenticated)

        self.transitions.trackAccepted.connect(self._on_track_accepted)
        self.transitions.displayedUpdated.connect(self._on_displayed_updated)
        self.transitions.transitionStarted.connect(self._on_transition_started)
        self.transitions.transitionFinished.connect(self._on_transition_finished)

        self.progress.progressChanged.connect(self._on_progress)

        self.credentials.authenticated.connect(self._on_authenticated)

    # ----------------------------
    # Lifecycle
    # ----------------------------

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        self._active = True
        if self.credentials.is_authenticated:
            self._unauthenticated = False
            self.poller.start()
        else:
            self._unauthenticated = True
        self._publish()

    def stop(self) -> None:
        """Release every timer: poll interval, crossfade deadline, progress tick."""
        self._active = False
        self.poller.stop()
        self.transitions.reset()
        self.progress.clear()

    def set_reduced(self, reduced: bool) -> None:
        self.poller.set_interval(REDUCED_POLL_INTERVAL_MS if reduced else LIVE_POLL_INTERVAL_MS)

    def dismiss_error(self) -> None:
        self._error = None
        self._publish()

    # ----------------------------
    # View state
    # ----------------------------

    @property
    def view_state(self):
        return self._view_state

    def current_view_state(self):
        if self._unauthenticated:
            return Unauthenticated()
        if self._error is not None:
            return PlaybackError(self._error)
        displayed = self.transitions.displayed
        if displayed is None:
            return NoActiveTrack()
        return Displaying(
            track=displayed,
            progress_percent=self.progress.percentage(),
            phase=self.transitions.phase,
        )

    def _publish(self) -> None:
        state = self.current_view_state()
        if state != self._view_state:
            self._view_state = state
            self.viewStateChanged.emit(state)

    # ----------------------------
    # Poller
    # ----------------------------

    def _on_snapshot(self, snapshot: Optional[PlaybackSnapshot]) -> None:
        self._error = None
        self._unauthenticated = False
        self.transitions.submit(snapshot)
        self._publish()

    def _on_upstream_error(self, message: str) -> None:
        self._error = message
        self._publish()

    def _on_unauthenticated(self) -> None:
        self._unauthenticated = True
        self._error = None
        self.transitions.reset()
        self.progress.clear()
        self._publish()

    def _on_authenticated(self) -> None:
        if not self._active:
            return
        logger.info("Credential available again; resuming playback polling")
        self._unauthenticated = False
        self._error = None
        self.poller.start()
        self._publish()

    # ----------------------------
    # Transition machine
    # ----------------------------

    def _on_track_accepted(self, snapshot: PlaybackSnapshot) -> None:
        self.progress.anchor(snapshot)
        self._publish()

    def _on_displayed_updated(self, snapshot: PlaybackSnapshot) -> None:
        self.progress.update(snapshot)
        self._publish()

    def _on_transition_started(self, _outgoing, _incoming) -> None:
        self._publish()

    def _on_transition_finished(self, displayed: Optional[PlaybackSnapshot]) -> None:
        # a promoted snapshot was already anchored through trackAccepted
        if displayed is None:
            self.progress.clear()
        self._publish()

    def _on_progress(self, _pct: float) -> None:
        self._publish()
