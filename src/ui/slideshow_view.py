# ui/slideshow_view.py
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt, QEasingCurve, QPropertyAnimation
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import QGraphicsOpacityEffect, QLabel, QStackedLayout, QWidget

from core.display_config import EMBEDDED_PLAYER_SLIDE, DisplayConfig
from core.models import NoSlides, ShowingSlide, TransitionPhase
from slideshow.cycle import SLIDE_CROSSFADE_MS
from slideshow.images import slide_path
from ui.now_playing_view import NowPlayingView

logger = logging.getLogger(__name__)


class _SlideLayer(QWidget):
    """One full-size slide: an image, or the host for the embedded player."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.slide_id: Optional[str] = None
        self._pixmap: Optional[QPixmap] = None
        self._cover = True

        self.lbl = QLabel(self)
        self.lbl.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl.setStyleSheet("background: #000000;")

        self.opacity = QGraphicsOpacityEffect(self)
        self.opacity.setOpacity(1.0)
        self.setGraphicsEffect(self.opacity)

    def show_image(self, slide_id: str, path: Optional[str], cover: bool):
        self.slide_id = slide_id
        self._cover = cover
        self._pixmap = QPixmap(path) if path else None
        if self._pixmap is not None and self._pixmap.isNull():
            logger.warning("Cannot read slide image %s", path)
            self._pixmap = None
        for child in self.findChildren(NowPlayingView):
            child.hide()
        self.lbl.show()
        self._rescale()

    def show_player(self, player: QWidget):
        self.slide_id = EMBEDDED_PLAYER_SLIDE
        self._pixmap = None
        self.lbl.hide()
        player.setParent(self)
        player.setGeometry(self.rect())
        player.show()

    def _rescale(self):
        self.lbl.setGeometry(self.rect())
        if self._pixmap is None:
            self.lbl.clear()
            return
        mode = (Qt.AspectRatioMode.KeepAspectRatioByExpanding if self._cover
                else Qt.AspectRatioMode.KeepAspectRatio)
        self.lbl.setPixmap(self._pixmap.scaled(self.size(), mode, Qt.TransformationMode.SmoothTransformation))

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self._rescale()
        for child in self.findChildren(NowPlayingView):
            child.setGeometry(self.rect())


class SlideshowView(QWidget):
    """
    Paints SlideCycleMachine states: the active slide on the front layer, and
    the incoming one fading in above it while the cycle is transitioning.
    """

    def __init__(self, images_dir: str, player: NowPlayingView, parent=None):
        super().__init__(parent)
        self.images_dir = images_dir
        self.player = player
        self._config = DisplayConfig()

        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)
        self.setStyleSheet("SlideshowView { background: #000000; }")

        self.stack = QStackedLayout(self)
        self.stack.setStackingMode(QStackedLayout.StackingMode.StackAll)

        self.lbl_empty = QLabel("No slides available")
        self.lbl_empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_empty.setStyleSheet("color: #9ca3af; font-size: 20px; background: #000000;")

        self._front = _SlideLayer()
        self._back = _SlideLayer()
        self.stack.addWidget(self._front)
        self.stack.addWidget(self._back)
        self.stack.addWidget(self.lbl_empty)
        self._back.hide()
        self.lbl_empty.hide()

        self._anim: Optional[QPropertyAnimation] = None

    def apply_config(self, config: DisplayConfig) -> None:
        self._config = config
        self.player.apply_config(config)

    def show_state(self, state) -> None:
        if isinstance(state, NoSlides):
            self._stop_anim()
            self._front.hide()
            self._back.hide()
            self.lbl_empty.show()
            self.lbl_empty.raise_()
            return
        if not isinstance(state, ShowingSlide):
            return

        self.lbl_empty.hide()
        if state.phase is TransitionPhase.TRANSITIONING:
            self._begin_crossfade(state.slide_id, state.incoming_id)
            return

        if self._back.isVisible() and self._back.slide_id == state.slide_id:
            # crossfade committed: the incoming layer becomes the front one
            self._stop_anim()
            self._front, self._back = self._back, self._front
        else:
            self._stop_anim()
            self._fill(self._front, state.slide_id)
        self._front.opacity.setOpacity(1.0)
        self._front.show()
        self._front.lower()
        self._back.hide()

    def _begin_crossfade(self, outgoing: str, incoming: Optional[str]):
        if self._front.slide_id != outgoing:
            self._fill(self._front, outgoing)
            self._front.show()
        self._fill(self._back, incoming)
        self._back.opacity.setOpacity(0.0)
        self._back.show()
        self._back.raise_()

        self._stop_anim()
        self._anim = QPropertyAnimation(self._back.opacity, b"opacity", self)
        self._anim.setDuration(SLIDE_CROSSFADE_MS)
        self._anim.setStartValue(0.0)
        self._anim.setEndValue(1.0)
        self._anim.setEasingCurve(QEasingCurve.Type.InOutQuad)
        self._anim.start()

    def _fill(self, layer: _SlideLayer, slide_id: Optional[str]):
        if slide_id is None:
            return
        if slide_id == EMBEDDED_PLAYER_SLIDE:
            layer.show_player(self.player)
        else:
            layer.show_image(slide_id, slide_path(self.images_dir, slide_id),
                             cover=self._config.background_mode == "cover")

    def _stop_anim(self):
        if self._anim is not None:
            self._anim.stop()
            self._anim = None
