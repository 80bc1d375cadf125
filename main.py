import logging
import os
import sys
from pathlib import Path

from PySide6.QtCore import QStandardPaths
from PySide6.QtWidgets import QApplication

ROOT = Path(__file__).resolve().parent
SRC_DIR = ROOT / "src"

if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from core.auth_gate import ConfigAuthGate
from core.credentials import CredentialManager
from core.settings import load_settings
from core.spotify_client import SpotifyAuthClient, SpotifyPlaybackClient
from core.state import AppState, Notify
from db.config_store import ConfigStore
from db.credential_store import CredentialStore
from db.database import initialize_database
from ui.main_window import MainWindow

logger = logging.getLogger("nowplaying")


def get_app_data_dir() -> str:
    base = QStandardPaths.writableLocation(QStandardPaths.AppDataLocation)
    os.makedirs(base, exist_ok=True)
    return base


def init_app_state() -> AppState:
    app_state = AppState()
    settings = load_settings()
    app_state.settings = settings

    app_data_dir = get_app_data_dir()
    app_state.app_data_dir = app_data_dir
    app_state.db = initialize_database(app_data_dir)
    logger.info("Using database in %s", app_data_dir)

    app_state.auth_client = SpotifyAuthClient(settings.client_id, settings.client_secret, settings.redirect_uri)
    app_state.playback_api = SpotifyPlaybackClient()

    app_state.credential_store = CredentialStore(app_state.db)
    app_state.credentials = CredentialManager(app_state.auth_client, app_state.credential_store.load())
    app_state.credentials.credentialChanged.connect(app_state.credential_store.save)

    app_state.gate = ConfigAuthGate(settings.admin_user, settings.admin_password_hash)
    app_state.config_store = ConfigStore(app_state.db, gate=app_state.gate)
    app_state.config_store.start_watching()

    if not settings.spotify_configured:
        app_state.queued_notifications.append(
            Notify(message="Spotify client id/secret are not configured.", notify_type="warn")
        )
    if not os.path.isdir(settings.images_dir):
        app_state.queued_notifications.append(
            Notify(message=f"Image folder not found: {settings.images_dir}", notify_type="warn")
        )

    return app_state


def main() -> int:
    logging.basicConfig(
        level=load_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    qt_app = QApplication(sys.argv)
    qt_app.setApplicationName("NowPlaying")

    app_state = init_app_state()
    main_window = MainWindow(app_state)
    main_window.show()

    return qt_app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
