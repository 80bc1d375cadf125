from PySide6.QtWidgets import (
    QMainWindow, QStackedWidget, QStyle, QToolButton, QWidget, QVBoxLayout, QHBoxLayout,
)
from PySide6.QtCore import Qt, QEvent
from PySide6.QtGui import QShortcut, QKeySequence
import logging

from slideshow.presentation import PresentationController
from ui.dialogs.config_dialog import ConfigDialog
from ui.dialogs.connect_dialog import ConnectDialog
from ui.now_playing_view import NowPlayingView
from ui.slideshow_view import SlideshowView
from ui.widgets.toast import ToastManager

logger = logging.getLogger(__name__)

PAGE_PLAYER = 0
PAGE_SLIDES = 1


class MainWindow(QMainWindow):
    def __init__(self, app_state):
        super().__init__()
        self.setWindowTitle("Now Playing")
        self.resize(1280, 720)
        self.app_state = app_state

        # --- Shortcuts ---
        QShortcut(QKeySequence("F11"), self, activated=self.toggle_fullscreen)
        QShortcut(QKeySequence("Escape"), self, activated=self.showNormal)
        QShortcut(QKeySequence("Ctrl+,"), self, activated=self.open_config_modal)

        self.central_widget = QWidget()
        self.central_widget.setObjectName("Central")
        self.setCentralWidget(self.central_widget)
        self.layout = QVBoxLayout(self.central_widget)
        self.layout.setContentsMargins(0, 0, 0, 0)
        self.layout.setSpacing(0)

        self.toasts = ToastManager(self)
        self.app_state.notification.connect(self._on_notify)

        # --- Pages: live player / slideshow ---
        self.pages = QStackedWidget()

        self.player_view = NowPlayingView()
        self.player_view.connectRequested.connect(self.open_connect_modal)
        self.pages.addWidget(self.player_view)

        self.embedded_player = NowPlayingView()
        self.embedded_player.connectRequested.connect(self.open_connect_modal)
        self.slideshow_view = SlideshowView(app_state.settings.images_dir, self.embedded_player)
        self.pages.addWidget(self.slideshow_view)

        self.layout.addWidget(self.pages, 1)

        # --- Action icons (bottom-right, over the pages) ---
        self.actions_bar = QWidget(self.central_widget)
        self.actions_bar.setObjectName("Actions")
        actions = QHBoxLayout(self.actions_bar)
        actions.setContentsMargins(8, 8, 8, 8)

        self.btn_connect = QToolButton()
        self.btn_connect.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_DriveNetIcon))
        self.btn_connect.setToolTip("Connect Spotify")
        self.btn_connect.clicked.connect(self.open_connect_modal)

        self.btn_config = QToolButton()
        self.btn_config.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_FileDialogDetailedView))
        self.btn_config.setToolTip("Settings")
        self.btn_config.clicked.connect(self.open_config_modal)

        actions.addWidget(self.btn_connect)
        actions.addWidget(self.btn_config)
        self.actions_bar.adjustSize()

        # --- Presentation ---
        self.presentation = PresentationController(app_state.make_pipeline, parent=self)
        self.presentation.pipelineMounted.connect(self._on_pipeline_mounted)
        self.presentation.pipelineUnmounted.connect(self._on_pipeline_unmounted)
        self.presentation.modeChanged.connect(self._on_mode_changed)
        self.presentation.slides.stateChanged.connect(self.slideshow_view.show_state)

        self._unsubscribe_config = self.app_state.config_store.subscribe(self._on_config)

        self.setStyleSheet("""
            QWidget#Central { background: #000000; }
            QWidget#Actions QToolButton {
                background: rgba(17, 24, 39, 160);
                border: none;
                border-radius: 8px;
                padding: 6px;
            }
        """)

        self.show_queued_notifications()

    # ------------------ config + presentation ------------------
    def _on_config(self, config):
        self.player_view.apply_config(config)
        self.slideshow_view.apply_config(config)
        self.presentation.apply_config(config)

    def _on_mode_changed(self, mode: str):
        self.pages.setCurrentIndex(PAGE_SLIDES if mode == "images" else PAGE_PLAYER)
        self.actions_bar.raise_()

    def _on_pipeline_mounted(self, pipeline):
        # the two views never show at the same time, both follow the one pipeline
        self.player_view.attach(pipeline)
        self.embedded_player.attach(pipeline)

    def _on_pipeline_unmounted(self):
        self.player_view.detach()
        self.embedded_player.detach()

    # ------------------ dialogs ------------------
    def open_config_modal(self):
        ConfigDialog(self.app_state, self).exec()

    def open_connect_modal(self):
        ConnectDialog(self.app_state, self).exec()

    def toggle_fullscreen(self):
        if self.isFullScreen():
            self.showNormal()
        else:
            self.showFullScreen()

    # ------------------ notifications ------------------
    def _on_notify(self, n):
        # n is core.state.Notify
        kind = (getattr(n, "notify_type", "info") or "info").lower()
        if kind == "warning":
            kind = "warn"

        msg = getattr(n, "message", "") or ""
        if not msg:
            return

        timeout = 6000 if kind == "error" else 3000
        self.toasts.show_toast(msg, notify_type=kind, timeout_ms=timeout)

    def show_queued_notifications(self):
        for n in self.app_state.queued_notifications:
            self._on_notify(n)
        self.app_state.queued_notifications.clear()

    # ------------------ window events ------------------
    def changeEvent(self, event):
        if event.type() == QEvent.Type.WindowStateChange:
            # minimized windows poll less often
            self.presentation.set_reduced(bool(self.windowState() & Qt.WindowState.WindowMinimized))
        super().changeEvent(event)

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.actions_bar.move(self.central_widget.width() - self.actions_bar.width(),
                              self.central_widget.height() - self.actions_bar.height())
        self.actions_bar.raise_()
        self.toasts.relayout()

    def closeEvent(self, event):
        logger.info("Shutting down")
        self._unsubscribe_config()
        self.app_state.config_store.stop_watching()
        self.presentation.shutdown()
        self.player_view.detach()
        self.embedded_player.detach()
        super().closeEvent(event)
