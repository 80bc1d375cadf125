# ui/now_playing_view.py
from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Optional

from PySide6.QtCore import Qt, QEasingCurve, QPropertyAnimation, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QGraphicsBlurEffect, QGraphicsOpacityEffect, QHBoxLayout, QLabel,
    QProgressBar, QPushButton, QStackedWidget, QVBoxLayout, QWidget,
)

from core.display_config import DisplayConfig
from core.models import (
    Displaying, NoActiveTrack, PlaybackError, TrackIdentity,
    TransitionPhase, Unauthenticated,
)
from playback.transition import CROSSFADE_MS
from ui.workers.art_loader import ArtLoader

logger = logging.getLogger(__name__)

ART_CACHE_SIZE = 8

PAGE_STATUS = 0
PAGE_TRACK = 1


class NowPlayingView(QWidget):
    """
    Renders the playback view states of one PlaybackPipeline.
    The widget never polls; it only reacts to viewStateChanged.
    """
    connectRequested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setObjectName("NowPlaying")
        self.setAttribute(Qt.WidgetAttribute.WA_StyledBackground, True)

        self._config = DisplayConfig()
        self._pipeline = None
        self._shown: Optional[TrackIdentity] = None
        self._fading_out = False
        self._art_cache: OrderedDict[str, QPixmap] = OrderedDict()
        self._loaders: dict[str, ArtLoader] = {}
        self._art_url = ""

        # --- background (blurred cover) ---
        self.bg = QLabel(self)
        self.bg.setScaledContents(True)
        blur = QGraphicsBlurEffect(self.bg)
        blur.setBlurRadius(60)
        self.bg.setGraphicsEffect(blur)
        self.bg.lower()

        root = QVBoxLayout(self)
        root.setContentsMargins(0, 0, 0, 0)
        root.setSpacing(0)

        # --- progress bar along the top edge ---
        self.progress = QProgressBar()
        self.progress.setObjectName("TrackProgress")
        self.progress.setRange(0, 1000)
        self.progress.setTextVisible(False)
        self.progress.setFixedHeight(6)
        root.addWidget(self.progress)

        self.stack = QStackedWidget()
        root.addWidget(self.stack, 1)

        # --- page 0: status (login / error / nothing playing) ---
        status_page = QWidget()
        status_layout = QVBoxLayout(status_page)
        status_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.lbl_status = QLabel("")
        self.lbl_status.setObjectName("StatusText")
        self.lbl_status.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.lbl_status.setWordWrap(True)
        status_layout.addWidget(self.lbl_status)

        self.btn_connect = QPushButton("Connect Spotify")
        self.btn_connect.setObjectName("ConnectButton")
        self.btn_connect.clicked.connect(self.connectRequested.emit)
        status_layout.addWidget(self.btn_connect, 0, Qt.AlignmentFlag.AlignCenter)

        self.btn_dismiss = QPushButton("Dismiss")
        self.btn_dismiss.clicked.connect(self._dismiss_error)
        status_layout.addWidget(self.btn_dismiss, 0, Qt.AlignmentFlag.AlignCenter)

        self.stack.addWidget(status_page)

        # --- page 1: track ---
        self.track_page = QWidget()
        track_layout = QHBoxLayout(self.track_page)
        track_layout.setAlignment(Qt.AlignmentFlag.AlignCenter)

        self.lbl_art = QLabel()
        self.lbl_art.setAlignment(Qt.AlignmentFlag.AlignCenter)
        track_layout.addWidget(self.lbl_art)

        info = QVBoxLayout()
        info.setAlignment(Qt.AlignmentFlag.AlignVCenter)
        self.lbl_title = QLabel("")
        self.lbl_title.setObjectName("TrackName")
        self.lbl_title.setWordWrap(True)
        self.lbl_artists = QLabel("")
        self.lbl_artists.setObjectName("TrackArtists")
        self.lbl_artists.setWordWrap(True)
        info.addWidget(self.lbl_title)
        info.addWidget(self.lbl_artists)
        track_layout.addLayout(info, 1)

        self._content_opacity = QGraphicsOpacityEffect(self.track_page)
        self._content_opacity.setOpacity(1.0)
        self.track_page.setGraphicsEffect(self._content_opacity)
        self._fade_anim: Optional[QPropertyAnimation] = None

        self.stack.addWidget(self.track_page)

        self._apply_styles()
        self.show_state(Unauthenticated())

    # ----------------------------
    # Wiring
    # ----------------------------

    def attach(self, pipeline) -> None:
        self.detach()
        self._pipeline = pipeline
        pipeline.viewStateChanged.connect(self.show_state)
        if pipeline.view_state is not None:
            self.show_state(pipeline.view_state)

    def detach(self) -> None:
        if self._pipeline is None:
            return
        try:
            self._pipeline.viewStateChanged.disconnect(self.show_state)
        except (RuntimeError, TypeError):
            pass
        self._pipeline = None
        self._shown = None

    def apply_config(self, config: DisplayConfig) -> None:
        self._config = config
        self.bg.setVisible(config.background_mode == "cover" and self.stack.currentIndex() == PAGE_TRACK)
        self._apply_styles()
        self._apply_scale()

    # ----------------------------
    # Rendering
    # ----------------------------

    def show_state(self, state) -> None:
        if isinstance(state, Unauthenticated):
            self._show_status("Connect your Spotify account to show what's playing", connect=True)
        elif isinstance(state, PlaybackError):
            self._show_status(state.message, dismiss=True)
        elif isinstance(state, NoActiveTrack):
            self._show_status("Nothing is playing right now")
        elif isinstance(state, Displaying):
            self._show_track(state)

    def _show_status(self, text: str, connect: bool = False, dismiss: bool = False):
        self._shown = None
        self._fading_out = False
        self.lbl_status.setText(text)
        self.btn_connect.setVisible(connect)
        self.btn_dismiss.setVisible(dismiss)
        self.progress.setVisible(False)
        self.bg.setVisible(False)
        self.stack.setCurrentIndex(PAGE_STATUS)

    def _show_track(self, state: Displaying):
        track = state.track
        self.stack.setCurrentIndex(PAGE_TRACK)
        self.progress.setVisible(self._config.show_progress_bar)
        self.progress.setValue(int(round(state.progress_percent * 10)))

        if state.phase is TransitionPhase.TRANSITIONING:
            if not self._fading_out:
                self._fading_out = True
                self._fade(1.0, 0.0)
            return

        if track.identity != self._shown:
            self._shown = track.identity
            self._fading_out = False
            self.lbl_title.setText(track.name or "Unknown")
            self.lbl_artists.setText(track.artists_text() or "Unknown Artist")
            self._set_art(track.album_art_url)
            self._fade(0.0, 1.0)

        self.bg.setVisible(self._config.background_mode == "cover")

    def _fade(self, start: float, end: float):
        if self._fade_anim is not None:
            self._fade_anim.stop()
        self._fade_anim = QPropertyAnimation(self._content_opacity, b"opacity", self)
        self._fade_anim.setDuration(CROSSFADE_MS)
        self._fade_anim.setStartValue(start)
        self._fade_anim.setEndValue(end)
        self._fade_anim.setEasingCurve(QEasingCurve.Type.InOutCubic)
        self._fade_anim.start()

    def _dismiss_error(self):
        if self._pipeline is not None:
            self._pipeline.dismiss_error()

    # ----------------------------
    # Album art
    # ----------------------------

    def _set_art(self, url: str):
        self._art_url = url
        if not url:
            self.lbl_art.clear()
            self.bg.clear()
            return
        pm = self._art_cache.get(url)
        if pm is not None:
            self._art_cache.move_to_end(url)
            self._show_pixmap(pm)
            return
        if url in self._loaders:
            return
        loader = ArtLoader(url, parent=self)
        loader.loaded.connect(self._on_art_loaded)
        loader.failed.connect(self._on_art_failed)
        loader.finished.connect(lambda u=url: self._loaders.pop(u, None))
        loader.finished.connect(loader.deleteLater)
        self._loaders[url] = loader
        loader.start()

    def _on_art_loaded(self, url: str, data: bytes):
        pm = QPixmap()
        if not pm.loadFromData(data):
            logger.warning("Album art at %s is not a readable image", url)
            return
        self._art_cache[url] = pm
        while len(self._art_cache) > ART_CACHE_SIZE:
            self._art_cache.popitem(last=False)
        if url == self._art_url:
            self._show_pixmap(pm)

    def _on_art_failed(self, url: str, message: str):
        logger.warning("%s (%s)", message, url)

    def _show_pixmap(self, pm: QPixmap):
        size = self._cover_size()
        self.lbl_art.setPixmap(pm.scaled(size, size, Qt.AspectRatioMode.KeepAspectRatio,
                                         Qt.TransformationMode.SmoothTransformation))
        self.bg.setPixmap(pm)

    # ----------------------------
    # Layout / style
    # ----------------------------

    def _cover_size(self) -> int:
        return max(64, int(min(self.width(), self.height()) * self._config.scale))

    def _apply_scale(self):
        size = self._cover_size()
        self.lbl_art.setFixedSize(size, size)
        title = self.lbl_title.font()
        title.setPixelSize(max(14, size // 7))
        title.setBold(True)
        self.lbl_title.setFont(title)
        artists = self.lbl_artists.font()
        artists.setPixelSize(max(11, size // 14))
        self.lbl_artists.setFont(artists)
        pm = self._art_cache.get(self._art_url)
        if pm is not None:
            self._show_pixmap(pm)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.bg.setGeometry(self.rect().adjusted(-80, -80, 80, 80))
        self._apply_scale()

    def closeEvent(self, event):
        self.detach()
        super().closeEvent(event)

    def _apply_styles(self):
        background = "#000000" if self._config.background_mode == "black" else "#020617"
        self.setStyleSheet(f"""
        QWidget#NowPlaying {{ background-color: {background}; }}
        QLabel {{ color: #e5e7eb; background: transparent; }}
        QLabel#TrackArtists {{ color: #9ca3af; }}
        QLabel#StatusText {{ color: #9ca3af; font-size: 20px; }}
        QProgressBar#TrackProgress {{ background: #0f172a; border: none; }}
        QProgressBar#TrackProgress::chunk {{ background: #38bdf8; }}
        QPushButton {{
            background: #111827; color: #e5e7eb; border: 1px solid #1f2937;
            border-radius: 12px; padding: 10px 18px; font-size: 14px;
        }}
        QPushButton:hover {{ border-color: #38bdf8; color: #38bdf8; }}
        """)
