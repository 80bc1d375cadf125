from __future__ import annotations
from dataclasses import dataclass
from PySide6.QtCore import QObject, Signal, Slot

from playback.pipeline import PlaybackPipeline

@dataclass(frozen=True)
class Notify:
    message: str
    notify_type: str = "info"   # info/success/warn/error

class AppState(QObject):
    """Everything the windows share: settings, db, stores, gate, Spotify clients."""
    notification = Signal(object)   # emits Notify

    def __init__(self):
        super().__init__()
        self.settings = None
        self.app_data_dir = None
        self.db = None
        self.auth_client = None
        self.playback_api = None
        self.credentials = None
        self.credential_store = None
        self.config_store = None
        self.gate = None
        self.queued_notifications: list[Notify] = []

    @Slot(str, str)
    def notify(self, message: str, notify_type: str = "info"):
        self.notification.emit(Notify(message=message, notify_type=notify_type))

    def make_pipeline(self):
        return PlaybackPipeline(self.credentials, self.playback_api)
