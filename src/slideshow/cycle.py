# src/slideshow/cycle.py
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Signal

from core.display_config import DisplayConfig, derive_slide_list
from core.models import NoSlides, ShowingSlide, TransitionPhase

logger = logging.getLogger(__name__)

SLIDE_CROSSFADE_MS = 1000


class SlideCycleMachine(QObject):
    """
    Cycles the derived slide list: Idle on slide_list[active_index], or
    Transitioning towards the next index for SLIDE_CROSSFADE_MS.

    A config delivered mid-crossfade is held back and applied when the
    crossfade commits, so the in-flight transition finishes against the
    list it started on.
    """
    stateChanged = Signal(object)          # NoSlides | ShowingSlide
    activeSlideChanged = Signal(object)    # str | None

    def __init__(self, crossfade_ms: int = SLIDE_CROSSFADE_MS, parent=None):
        super().__init__(parent)
        self._config: Optional[DisplayConfig] = None
        self._pending: Optional[DisplayConfig] = None
        self._slides: tuple[str, ...] = ()
        self._active_index = 0
        self._incoming_index: Optional[int] = None

        self._state = None
        self._announced: Optional[str] = None

        self._cycle_timer = QTimer(self)
        self._cycle_timer.timeout.connect(self.advance)

        self._fade_timer = QTimer(self)
        self._fade_timer.setSingleShot(True)
        self._fade_timer.setInterval(int(crossfade_ms))
        self._fade_timer.timeout.connect(self.complete)

    # ----------------------------
    # Read-only view
    # ----------------------------

    @property
    def slide_list(self) -> tuple[str, ...]:
        return self._slides

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_slide(self) -> Optional[str]:
        return self._slides[self._active_index] if self._slides else None

    @property
    def incoming_slide(self) -> Optional[str]:
        if self._incoming_index is None:
            return None
        return self._slides[self._incoming_index]

    @property
    def phase(self) -> TransitionPhase:
        return TransitionPhase.IDLE if self._incoming_index is None else TransitionPhase.TRANSITIONING

    @property
    def is_cycling(self) -> bool:
        return self._cycle_timer.isActive()

    def current_state(self):
        if not self._slides:
            return NoSlides()
        if self._incoming_index is None:
            return ShowingSlide(self._slides[self._active_index])
        return ShowingSlide(
            self._slides[self._active_index],
            TransitionPhase.TRANSITIONING,
            self._slides[self._incoming_index],
        )

    # ----------------------------
    # Config
    # ----------------------------

    def apply_config(self, config: DisplayConfig) -> None:
        if self._incoming_index is not None:
            self._pending = config
            return
        self._apply(config)

    def _apply(self, config: DisplayConfig) -> None:
        previous = self._config
        slides = derive_slide_list(config)

        length_changed = previous is None or len(slides) != len(self._slides)
        interval_changed = previous is None or previous.slide_interval_sec != config.slide_interval_sec

        self._config = config
        self._slides = slides
        if length_changed:
            self._active_index = 0

        self._arm(restart=length_changed or interval_changed)
        self._publish()

    def _arm(self, restart: bool) -> None:
        config = self._config
        if config is None or config.frozen_slide or len(self._slides) <= 1:
            self._cycle_timer.stop()
            return
        if restart or not self._cycle_timer.isActive():
            self._cycle_timer.start(config.slide_interval_sec * 1000)

    # ----------------------------
    # Cycling
    # ----------------------------

    def advance(self) -> None:
        if self._incoming_index is not None or len(self._slides) <= 1:
            return
        self._incoming_index = (self._active_index + 1) % len(self._slides)
        self._fade_timer.start()
        self._publish()

    def complete(self) -> None:
        if self._incoming_index is None:
            return
        self._fade_timer.stop()
        self._active_index = self._incoming_index
        self._incoming_index = None

        pending, self._pending = self._pending, None
        if pending is not None:
            self._apply(pending)
        else:
            self._publish()

    def stop(self) -> None:
        """Cancel both timers and forget the list; the next config starts fresh."""
        self._cycle_timer.stop()
        self._fade_timer.stop()
        self._incoming_index = None
        self._pending = None
        self._config = None
        self._slides = ()
        self._active_index = 0
        self._state = None
        self._announced = None

    def _publish(self) -> None:
        state = self.current_state()
        if state != self._state:
            self._state = state
            self.stateChanged.emit(state)

        active = self.active_slide
        if active != self._announced:
            self._announced = active
            logger.debug("Active slide: %s", active)
            self.activeSlideChanged.emit(active)
