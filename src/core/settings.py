# core/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class Settings:
    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    images_dir: str = "img"
    admin_user: str = "admin"
    admin_password_hash: str = ""   # "pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>"
    log_level: str = "INFO"

    @property
    def spotify_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings from the environment (or any mapping, for tests)."""
    env = os.environ if env is None else env
    level = (env.get("NOWPLAYING_LOG_LEVEL", "") or "INFO").strip().upper()
    return Settings(
        client_id=env.get("SPOTIFY_CLIENT_ID", "").strip(),
        client_secret=env.get("SPOTIFY_CLIENT_SECRET", "").strip(),
        redirect_uri=env.get("SPOTIFY_REDIRECT_URI", "").strip() or DEFAULT_REDIRECT_URI,
        images_dir=env.get("NOWPLAYING_IMAGES_DIR", "").strip() or "img",
        admin_user=env.get("NOWPLAYING_ADMIN_USER", "").strip() or "admin",
        admin_password_hash=env.get("NOWPLAYING_ADMIN_PASSWORD_HASH", "").strip(),
        log_level=level if level in LOG_LEVELS else "INFO",
    )
