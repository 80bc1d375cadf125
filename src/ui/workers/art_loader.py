# ui/workers/art_loader.py
from __future__ import annotations

import requests
from PySide6.QtCore import QThread, Signal

from core.spotify_client import USER_AGENT

MAX_ART_BYTES = 8 * 1024 * 1024


class ArtLoader(QThread):
    """Downloads one album-art image off the GUI thread."""
    loaded = Signal(str, bytes)   # url, image bytes
    failed = Signal(str, str)     # url, message

    def __init__(self, url: str, timeout: float = 10.0, parent=None):
        super().__init__(parent)
        self.url = url
        self.timeout = timeout

    def run(self):
        try:
            r = requests.get(self.url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
            r.raise_for_status()
            data = r.content
            if len(data) > MAX_ART_BYTES:
                self.failed.emit(self.url, "Album art too large")
                return
            self.loaded.emit(self.url, data)
        except requests.RequestException as e:
            self.failed.emit(self.url, f"Album art download failed: {e}")
