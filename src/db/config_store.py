# db/config_store.py
from __future__ import annotations

import logging
import sqlite3
from typing import Callable

from PySide6.QtCore import QObject, QTimer, Signal

from core.display_config import DisplayConfig
from core.errors import ConfigPersistError
from db.database import data_version, get_display_config, set_display_config

logger = logging.getLogger(__name__)

EXTERNAL_CHECK_INTERVAL_MS = 2000


class ConfigStore(QObject):
    """
    Display configuration backed by the SQLite database.

    Every delivery is a full DisplayConfig merged with defaults. Writes made
    by other processes (a second kiosk, a remote admin tool sharing the file)
    are picked up by watching PRAGMA data_version.
    """
    configChanged = Signal(object)   # DisplayConfig

    def __init__(self, db: sqlite3.Connection, gate=None, parent=None):
        super().__init__(parent)
        self.db = db
        self.gate = gate
        self._config = DisplayConfig.from_mapping(get_display_config(db))
        self._data_version = data_version(db)

        self._watch_timer = QTimer(self)
        self._watch_timer.setInterval(EXTERNAL_CHECK_INTERVAL_MS)
        self._watch_timer.timeout.connect(self.check_external_changes)

    @property
    def config(self) -> DisplayConfig:
        return self._config

    def subscribe(self, callback: Callable[[DisplayConfig], None]) -> Callable[[], None]:
        """Deliver the current config right away and on every change."""
        self.configChanged.connect(callback)
        callback(self._config)

        def unsubscribe():
            try:
                self.configChanged.disconnect(callback)
            except (RuntimeError, TypeError):
                pass
        return unsubscribe

    def start_watching(self):
        self._watch_timer.start()

    def stop_watching(self):
        self._watch_timer.stop()

    def persist(self, config: DisplayConfig) -> None:
        user = self.gate.current_user if self.gate is not None else None
        if self.gate is not None and user is None:
            raise ConfigPersistError("Sign in to change the configuration")

        try:
            set_display_config(self.db, config.to_mapping(), updated_by=user)
        except sqlite3.Error as e:
            logger.exception("Failed to save display config")
            raise ConfigPersistError(f"Failed to save config: {e}") from e

        self._data_version = data_version(self.db)
        self._deliver(DisplayConfig.from_mapping(config.to_mapping()))

    def check_external_changes(self) -> bool:
        try:
            version = data_version(self.db)
        except sqlite3.Error:
            logger.exception("Could not read data_version")
            return False
        if version == self._data_version:
            return False

        self._data_version = version
        self._deliver(DisplayConfig.from_mapping(get_display_config(self.db)))
        return True

    def _deliver(self, config: DisplayConfig):
        if config == self._config:
            return
        self._config = config
        logger.info("Display config changed: mode=%s slides=%d", config.display_mode, len(config.slides))
        self.configChanged.emit(config)
