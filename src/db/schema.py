from __future__ import annotations

SCHEMA_V1_SQL = """
CREATE TABLE display_config (
    id INTEGER PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at FLOAT,
    updated_by TEXT
);

CREATE TABLE spotify_credentials (
    id INTEGER PRIMARY KEY,
    access_token TEXT,
    refresh_token TEXT,
    expires_at FLOAT
);
"""
