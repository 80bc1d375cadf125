import json
import logging
import os
import sqlite3
import time
from typing import Optional

from core.models import AccessCredential
from db.schema import SCHEMA_V1_SQL

logger = logging.getLogger(__name__)

CURRENT_DB_VERSION = 1


def connect(sqlite_path: str) -> sqlite3.Connection:
    db = sqlite3.connect(sqlite_path)
    db.row_factory = sqlite3.Row
    existing_version = db.execute("PRAGMA user_version").fetchone()[0]
    upgrade_database_if_needed(db, existing_version)
    return db


def initialize_database(app_data_dir: str) -> sqlite3.Connection:
    os.makedirs(app_data_dir, exist_ok=True)
    sqlite_path = os.path.join(app_data_dir, "db.sqlite3")
    logger.info("Database file path: %s", sqlite_path)
    return connect(sqlite_path)


def upgrade_database_if_needed(db: sqlite3.Connection, existing_version: int):
    logger.debug("Existing database version: %s", existing_version)

    if existing_version >= CURRENT_DB_VERSION:
        return

    if existing_version <= 0:
        logger.info("Migrate database version 1...")
        db.execute("PRAGMA journal_mode=WAL")
        db.execute("PRAGMA user_version=1")
        db.executescript(SCHEMA_V1_SQL)
        db.commit()


def data_version(db: sqlite3.Connection) -> int:
    """Changes whenever *another* connection commits to the database file."""
    return int(db.execute("PRAGMA data_version").fetchone()[0])


# -------------------------------
# DISPLAY CONFIG
# -------------------------------
def get_display_config(db: sqlite3.Connection) -> Optional[dict]:
    row = db.execute("SELECT data FROM display_config WHERE id = 1").fetchone()
    if row is None:
        return None
    try:
        data = json.loads(row["data"])
    except (TypeError, ValueError):
        logger.warning("Stored display config is not valid JSON; using defaults")
        return None
    return data if isinstance(data, dict) else None


def set_display_config(db: sqlite3.Connection, data: dict, updated_by: Optional[str] = None):
    db.execute(
        """
        INSERT INTO display_config (id, data, updated_at, updated_by) VALUES (1, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            data = excluded.data,
            updated_at = excluded.updated_at,
            updated_by = excluded.updated_by
        """,
        (json.dumps(data), time.time(), updated_by),
    )
    db.commit()


# -------------------------------
# SPOTIFY CREDENTIALS
# -------------------------------
def get_credentials(db: sqlite3.Connection) -> Optional[AccessCredential]:
    row = db.execute(
        "SELECT access_token, refresh_token, expires_at FROM spotify_credentials WHERE id = 1"
    ).fetchone()
    if row is None:
        return None
    return AccessCredential(
        access_token=row["access_token"] or "",
        refresh_token=row["refresh_token"] or "",
        expires_at=float(row["expires_at"] or 0.0),
    )


def set_credentials(db: sqlite3.Connection, credential: Optional[AccessCredential]):
    if credential is None:
        db.execute("DELETE FROM spotify_credentials")
    else:
        db.execute(
            """
            INSERT INTO spotify_credentials (id, access_token, refresh_token, expires_at)
            VALUES (1, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                access_token = excluded.access_token,
                refresh_token = excluded.refresh_token,
                expires_at = excluded.expires_at
            """,
            (credential.access_token, credential.refresh_token, credential.expires_at),
        )
    db.commit()
