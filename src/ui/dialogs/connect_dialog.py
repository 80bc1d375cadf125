from __future__ import annotations

import logging
import secrets

from PySide6.QtCore import Qt, QThread, QUrl, Signal
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QDialog, QHBoxLayout, QLabel, QLineEdit, QPushButton, QVBoxLayout,
)

from core.errors import AuthError
from core.spotify_client import code_from_redirect

logger = logging.getLogger(__name__)


class ExchangeWorker(QThread):
    """Trades an authorization code for a credential off the GUI thread."""
    succeeded = Signal(object)   # AccessCredential
    failed = Signal(str)

    def __init__(self, auth_client, code: str, parent=None):
        super().__init__(parent)
        self.auth_client = auth_client
        self.code = code

    def run(self):
        try:
            credential = self.auth_client.exchange_authorization_code(self.code)
        except AuthError as e:
            self.failed.emit(str(e))
            return
        self.succeeded.emit(credential)


class ConnectDialog(QDialog):
    """
    Authorization-code login: open the Spotify consent page in the browser,
    then paste the redirect URL (or just its code) back here.
    """
    def __init__(self, app_state, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Connect Spotify")
        self.setModal(True)
        self.resize(560, 240)
        self.app_state = app_state
        self._state = secrets.token_urlsafe(16)
        self._worker = None

        root = QVBoxLayout(self)
        root.setContentsMargins(14, 14, 14, 14)
        root.setSpacing(10)

        self.info_label = QLabel(
            "1. Open the Spotify login page and allow access.\n"
            "2. Copy the address you were redirected to and paste it below."
        )
        self.info_label.setWordWrap(True)
        root.addWidget(self.info_label)

        self.btn_open = QPushButton("Open Spotify login")
        self.btn_open.clicked.connect(self.open_browser)
        root.addWidget(self.btn_open, 0, Qt.AlignmentFlag.AlignLeft)

        self.code_edit = QLineEdit()
        self.code_edit.setPlaceholderText(f"{app_state.settings.redirect_uri}?code=...")
        self.code_edit.returnPressed.connect(self.submit)
        root.addWidget(self.code_edit)

        self.status_label = QLabel("")
        self.status_label.setWordWrap(True)
        root.addWidget(self.status_label)

        footer = QHBoxLayout()
        footer.addStretch(1)
        self.btn_primary = QPushButton("Connect")
        self.btn_primary.clicked.connect(self.submit)
        self.btn_secondary = QPushButton("Cancel")
        self.btn_secondary.clicked.connect(self.reject)
        footer.addWidget(self.btn_primary)
        footer.addWidget(self.btn_secondary)
        root.addLayout(footer)

        if not app_state.settings.spotify_configured:
            self.status_label.setText("SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET are not set.")
            self.btn_open.setEnabled(False)
            self.btn_primary.setEnabled(False)

    def open_browser(self):
        url = self.app_state.auth_client.authorize_url(self._state)
        if not QDesktopServices.openUrl(QUrl(url)):
            # no browser available: show the link so it can be copied
            self.status_label.setText(url)
            self.status_label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)

    def submit(self):
        if self._worker is not None:
            return
        try:
            code = code_from_redirect(self.code_edit.text(), expected_state=self._state)
        except AuthError as e:
            self.status_label.setText(str(e))
            return

        self._set_busy(True)
        self.status_label.setText("Connecting…")
        self._worker = ExchangeWorker(self.app_state.auth_client, code, self)
        self._worker.succeeded.connect(self._on_succeeded)
        self._worker.failed.connect(self._on_failed)
        self._worker.finished.connect(self._on_worker_finished)
        self._worker.start()

    def _on_succeeded(self, credential):
        self.app_state.credentials.adopt(credential)
        self.app_state.notify("Spotify connected", "success")
        self.accept()

    def _on_failed(self, message: str):
        logger.warning("Authorization code exchange failed: %s", message)
        self.status_label.setText(message)
        self._set_busy(False)

    def _on_worker_finished(self):
        w, self._worker = self._worker, None
        if w is not None:
            w.deleteLater()

    def _set_busy(self, busy: bool):
        self.btn_primary.setEnabled(not busy)
        self.code_edit.setEnabled(not busy)

    def reject(self):
        if self._worker is not None:
            # the exchange thread is parented to the dialog
            return
        super().reject()
