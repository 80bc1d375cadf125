# src/playback/transition.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.models import Idle, PlaybackSnapshot, TransitionPhase, Transitioning

logger = logging.getLogger(__name__)

CROSSFADE_MS = 800


class TrackTransitionMachine(QObject):
    """
    Idle(displayed) | Transitioning(outgoing, incoming, deadline).

    A snapshot that arrives while Transitioning is dropped, not queued; the
    first poll after the deadline carries the latest state anyway.
    """
    trackAccepted = Signal(object)            # snapshot now displayed (new track)
    displayedUpdated = Signal(object)         # same track, fresher fields
    transitionStarted = Signal(object, object)  # outgoing, incoming
    transitionFinished = Signal(object)       # displayed after promotion (or None)

    def __init__(self, crossfade_ms: int = CROSSFADE_MS,
                 clock: Callable[[], float] = time.monotonic, parent=None):
        super().__init__(parent)
        self.crossfade_ms = int(crossfade_ms)
        self.clock = clock
        self.dropped_count = 0
        self._state: Idle | Transitioning = Idle()

        self._deadline_timer = QTimer(self)
        self._deadline_timer.setSingleShot(True)
        self._deadline_timer.setInterval(self.crossfade_ms)
        self._deadline_timer.timeout.connect(self.complete)

    @property
    def state(self) -> Idle | Transitioning:
        return self._state

    @property
    def phase(self) -> TransitionPhase:
        return self._state.phase

    @property
    def displayed(self) -> Optional[PlaybackSnapshot]:
        if isinstance(self._state, Transitioning):
            return self._state.outgoing
        return self._state.displayed

    @property
    def deadline_pending(self) -> bool:
        return self._deadline_timer.isActive()

    def submit(self, snapshot: Optional[PlaybackSnapshot]) -> None:
        state = self._state
        if isinstance(state, Transitioning):
            self.dropped_count += 1
            logger.debug("Snapshot dropped during crossfade")
            return

        current = state.displayed
        if current is None:
            if snapshot is None:
                return
            self._state = Idle(snapshot)
            self.trackAccepted.emit(snapshot)
            return

        if snapshot is not None and snapshot.identity == current.identity:
            self._state = Idle(snapshot)
            self.displayedUpdated.emit(snapshot)
            return

        self._begin(current, snapshot)

    def _begin(self, outgoing: PlaybackSnapshot, incoming: Optional[PlaybackSnapshot]) -> None:
        deadline = self.clock() + self.crossfade_ms / 1000.0
        self._state = Transitioning(outgoing=outgoing, incoming=incoming, deadline=deadline)
        self._deadline_timer.start()
        logger.info(
            "Track change: %r -> %r",
            outgoing.name,
            incoming.name if incoming else None,
        )
        self.transitionStarted.emit(outgoing, incoming)

    def complete(self) -> None:
        """Deadline reached: promote the incoming track and return to Idle."""
        state = self._state
        if not isinstance(state, Transitioning):
            return
        self._deadline_timer.stop()
        self._state = Idle(state.incoming)
        # trackAccepted precedes transitionFinished for a promoted snapshot
        if state.incoming is not None:
            self.trackAccepted.emit(state.incoming)
        self.transitionFinished.emit(state.incoming)

    def reset(self) -> None:
        self._deadline_timer.stop()
        self._state = Idle()
