# src/playback/progress.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.models import PlaybackSnapshot

logger = logging.getLogger(__name__)

TICK_INTERVAL_MS = 50
# A same-track poll that disagrees with the estimate by more than this was a seek.
SEEK_DRIFT_MS = 1500


class ProgressInterpolator(QObject):
    """
    Smooth progress between polls.

    The anchor is (progress_ms, observed_at) of the last accepted snapshot;
    the estimate is anchor progress + time elapsed since it was observed.
    """
    progressChanged = Signal(float)   # percent, 0..100

    def __init__(self, clock: Callable[[], float] = time.monotonic, parent=None):
        super().__init__(parent)
        self.clock = clock

        self._has_track = False
        self._playing = False
        self._base_ms = 0
        self._anchor_at = 0.0
        self._duration_ms = 0

        self._timer = QTimer(self)
        self._timer.setInterval(TICK_INTERVAL_MS)
        self._timer.timeout.connect(self._tick)

    @property
    def is_ticking(self) -> bool:
        return self._timer.isActive()

    @property
    def anchor_point(self) -> tuple[int, float]:
        return self._base_ms, self._anchor_at

    def anchor(self, snapshot: PlaybackSnapshot) -> None:
        self._has_track = True
        self._playing = snapshot.is_playing
        self._base_ms = snapshot.progress_ms
        self._anchor_at = snapshot.observed_at
        self._duration_ms = snapshot.duration_ms
        self._sync_timer()
        self._tick()

    def update(self, snapshot: PlaybackSnapshot) -> bool:
        """
        Fresh poll of the track already anchored. Returns True when it caused
        a re-anchor (play/pause flip or a seek); otherwise the anchor stays.
        """
        if not self._has_track:
            self.anchor(snapshot)
            return True

        if snapshot.is_playing != self._playing:
            self.anchor(snapshot)
            return True

        drift = abs(snapshot.progress_ms - self.position_ms(snapshot.observed_at))
        if drift > SEEK_DRIFT_MS:
            logger.debug("Progress drift %.0f ms; re-anchoring", drift)
            self.anchor(snapshot)
            return True

        return False

    def clear(self) -> None:
        self._has_track = False
        self._playing = False
        self._timer.stop()

    def position_ms(self, now: Optional[float] = None) -> float:
        if not self._playing:
            return float(self._base_ms)
        now = self.clock() if now is None else now
        return self._base_ms + max(0.0, (now - self._anchor_at) * 1000.0)

    def percentage(self, now: Optional[float] = None) -> float:
        if not self._has_track or self._duration_ms <= 0:
            return 0.0
        pct = 100.0 * self.position_ms(now) / self._duration_ms
        return min(100.0, max(0.0, pct))

    def _sync_timer(self) -> None:
        if self._has_track and self._playing:
            if not self._timer.isActive():
                self._timer.start()
        else:
            self._timer.stop()

    def _tick(self) -> None:
        self.progressChanged.emit(self.percentage())
