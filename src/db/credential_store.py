from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from PySide6.QtCore import QObject, Slot

from core.models import AccessCredential
from db.database import get_credentials, set_credentials

logger = logging.getLogger(__name__)


class CredentialStore(QObject):
    """
    Keeps the Spotify credential across restarts.

    A QObject so that renewals signalled from a fetch worker are queued onto
    the thread that owns the SQLite connection.
    """

    def __init__(self, db: sqlite3.Connection, parent=None):
        super().__init__(parent)
        self.db = db

    def load(self) -> Optional[AccessCredential]:
        return get_credentials(self.db)

    @Slot(object)
    def save(self, credential: Optional[AccessCredential]) -> None:
        try:
            set_credentials(self.db, credential)
        except sqlite3.Error:
            logger.exception("Failed to store Spotify credential")
