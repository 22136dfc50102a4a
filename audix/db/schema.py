"""Idempotent table setup for the activity and liked-songs stores."""

from __future__ import annotations

import logging

from audix.db.connection import get_connection

logger = logging.getLogger(__name__)

# The songs table belongs to the catalog; it is only created here so a fresh
# development database has something to join against.
SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS songs (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        artist TEXT NOT NULL,
        image_url TEXT,
        audio_url TEXT,
        duration INTEGER,
        album_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_activity (
        user_id TEXT NOT NULL,
        song_id TEXT NOT NULL,
        artist TEXT NOT NULL,
        play_count INTEGER NOT NULL DEFAULT 1 CHECK (play_count >= 1),
        play_duration BIGINT NOT NULL DEFAULT 0 CHECK (play_duration >= 0),
        last_played TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (user_id, song_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_activity_last_played ON user_activity (user_id, last_played DESC)",
    "CREATE INDEX IF NOT EXISTS idx_user_activity_play_count ON user_activity (user_id, play_count DESC)",
    """
    CREATE TABLE IF NOT EXISTS liked_songs (
        user_id TEXT NOT NULL,
        song_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (user_id, song_id)
    )
    """,
)


def ensure_schema() -> None:
    with get_connection() as conn:
        with conn.cursor() as cur:
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        conn.commit()
    logger.info("Activity schema ready")
