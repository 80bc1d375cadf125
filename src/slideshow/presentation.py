# src/slideshow/presentation.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from core.display_config import EMBEDDED_PLAYER_SLIDE, DisplayConfig, shows_live_player
from core.models import ShowingSlide
from slideshow.cycle import SlideCycleMachine

logger = logging.getLogger(__name__)


class PresentationController(QObject):
    """
    Turns DisplayConfig snapshots into what is on screen: the live player,
    or the slideshow (which hosts the live player while the embedded-player
    slide is showing or fading in).

    A PlaybackPipeline exists only while the player is visible; it is built
    by pipeline_factory and stopped as soon as it is not.
    """
    pipelineMounted = Signal(object)   # PlaybackPipeline
    pipelineUnmounted = Signal()
    modeChanged = Signal(str)          # "player" | "images"

    def __init__(self, pipeline_factory: Callable[[], object],
                 slides: Optional[SlideCycleMachine] = None, parent=None):
        super().__init__(parent)
        self.pipeline_factory = pipeline_factory
        self.slides = slides or SlideCycleMachine(parent=self)
        self.slides.stateChanged.connect(self._refresh_pipeline)

        self._config: Optional[DisplayConfig] = None
        self._pipeline = None
        self._reduced = False

    @property
    def config(self) -> Optional[DisplayConfig]:
        return self._config

    @property
    def pipeline(self):
        return self._pipeline

    def apply_config(self, config: DisplayConfig) -> None:
        previous_mode = self._config.display_mode if self._config else None
        self._config = config

        if config.display_mode == "images":
            self.slides.apply_config(config)
        else:
            self.slides.stop()

        if config.display_mode != previous_mode:
            logger.info("Display mode: %s", config.display_mode)
            self.modeChanged.emit(config.display_mode)

        self._refresh_pipeline()

    def set_reduced(self, reduced: bool) -> None:
        self._reduced = bool(reduced)
        if self._pipeline is not None:
            self._pipeline.set_reduced(self._reduced)

    def shutdown(self) -> None:
        self.slides.stop()
        self._unmount()

    def _wants_player(self) -> bool:
        config = self._config
        if config is None:
            return False
        if config.display_mode == "player":
            return True
        state = self.slides.current_state()
        if not isinstance(state, ShowingSlide):
            return False
        return shows_live_player(config, state.slide_id) or state.incoming_id == EMBEDDED_PLAYER_SLIDE

    def _refresh_pipeline(self, *_args) -> None:
        if self._config is None:
            return
        want = self._wants_player()
        if want and self._pipeline is None:
            self._mount()
        elif not want and self._pipeline is not None:
            self._unmount()

    def _mount(self) -> None:
        pipeline = self.pipeline_factory()
        pipeline.set_reduced(self._reduced)
        self._pipeline = pipeline
        pipeline.start()
        self.pipelineMounted.emit(pipeline)

    def _unmount(self) -> None:
        pipeline, self._pipeline = self._pipeline, None
        if pipeline is None:
            return
        pipeline.stop()
        self.pipelineUnmounted.emit()
        pipeline.deleteLater()
