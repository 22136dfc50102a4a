"""
Activity Store

PostgreSQL access for per-(user, song) listening activity. Every mutation is a
single statement so concurrent flushes from several devices never lose an
increment.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg

from audix.db.connection import get_connection
from audix.services.errors import InvalidArgumentError, TransientStoreError
from audix.services.models import ActivityRecord, ArtistTotals, ListeningSummary, Song

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = "user_id, song_id, artist, play_count, play_duration, last_played, created_at"

_JOINED_SELECT = """
    SELECT
        a.user_id, a.song_id, a.artist, a.play_count, a.play_duration,
        a.last_played, a.created_at,
        s.title, s.artist, s.image_url, s.audio_url, s.duration, s.album_id
    FROM user_activity a
    JOIN songs s ON s.id = a.song_id
    WHERE a.user_id = %s
"""


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Convert driver failures into service errors.

    Rejected values and constraint violations become InvalidArgumentError;
    any other driver error is a TransientStoreError.
    """
    try:
        yield
    except (psycopg.DataError, psycopg.IntegrityError) as exc:
        logger.warning(f"Store operation '{operation}' rejected input: {exc}")
        raise InvalidArgumentError(f"{operation} rejected: {exc}") from exc
    except psycopg.Error as exc:
        logger.warning(f"Store operation '{operation}' failed: {exc}")
        raise TransientStoreError(f"{operation} failed: {exc}") from exc


def _record_from_row(row: tuple[Any, ...]) -> ActivityRecord:
    return ActivityRecord(
        user_id=row[0],
        song_id=row[1],
        artist=row[2],
        play_count=row[3],
        play_duration=row[4],
        last_played=row[5],
        created_at=row[6],
    )


def _joined_record_from_row(row: tuple[Any, ...]) -> ActivityRecord:
    song = Song(
        song_id=row[1],
        title=row[7],
        artist=row[8],
        image_url=row[9],
        audio_url=row[10],
        duration=row[11],
        album_id=row[12],
    )
    return ActivityRecord(
        user_id=row[0],
        song_id=row[1],
        artist=row[2],
        play_count=row[3],
        play_duration=row[4],
        last_played=row[5],
        created_at=row[6],
        song=song,
    )


class ActivityStore:
    """Reads and atomic upserts against the user_activity table."""

    def increment(self, user_id: str, song_id: str, seconds: int) -> ActivityRecord | None:
        """
        Add one play to an existing record.

        Returns:
            The updated record, or None when the pair has never been played.
        """
        with store_errors("increment"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    UPDATE user_activity
                    SET play_count = play_count + 1,
                        play_duration = play_duration + %s,
                        last_played = GREATEST(last_played, NOW())
                    WHERE user_id = %s AND song_id = %s
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (seconds, user_id, song_id),
                )
                row = cur.fetchone()
            conn.commit()

        return _record_from_row(row) if row else None

    def create_or_increment(
        self,
        user_id: str,
        song_id: str,
        artist: str,
        seconds: int,
    ) -> ActivityRecord:
        """
        Insert the first play for a pair.

        A concurrent first play from another device lands on the conflict
        branch and is merged into the same row.
        """
        with store_errors("create_or_increment"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO user_activity (
                        user_id, song_id, artist, play_count, play_duration,
                        last_played, created_at
                    )
                    VALUES (%s, %s, %s, 1, %s, NOW(), NOW())
                    ON CONFLICT (user_id, song_id) DO UPDATE
                    SET play_count = user_activity.play_count + 1,
                        play_duration = user_activity.play_duration + EXCLUDED.play_duration,
                        last_played = GREATEST(user_activity.last_played, EXCLUDED.last_played)
                    RETURNING {_RECORD_COLUMNS}
                    """,
                    (user_id, song_id, artist, seconds),
                )
                row = cur.fetchone()
            conn.commit()

        return _record_from_row(row)

    def recently_played(self, user_id: str, limit: int) -> list[ActivityRecord]:
        with store_errors("recently_played"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    _JOINED_SELECT
                    + " ORDER BY a.last_played DESC, a.song_id LIMIT %s",
                    (user_id, limit),
                )
                rows = cur.fetchall()
        return [_joined_record_from_row(row) for row in rows]

    def most_played(self, user_id: str, limit: int) -> list[ActivityRecord]:
        with store_errors("most_played"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    _JOINED_SELECT
                    + " ORDER BY a.play_count DESC, a.last_played DESC LIMIT %s",
                    (user_id, limit),
                )
                rows = cur.fetchall()
        return [_joined_record_from_row(row) for row in rows]

    def top_artists(self, user_id: str, limit: int) -> list[ArtistTotals]:
        # Grouped on the artist captured at first play, not the live catalog.
        with store_errors("top_artists"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT
                        artist,
                        SUM(play_count) AS total_play_count,
                        SUM(play_duration) AS total_play_duration
                    FROM user_activity
                    WHERE user_id = %s
                    GROUP BY artist
                    ORDER BY total_play_count DESC, artist
                    LIMIT %s
                    """,
                    (user_id, limit),
                )
                rows = cur.fetchall()

        return [
            ArtistTotals(
                artist=row[0],
                total_play_count=int(row[1] or 0),
                total_play_duration=int(row[2] or 0),
            )
            for row in rows
        ]

    def summary(self, user_id: str) -> ListeningSummary:
        with store_errors("summary"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT
                        COUNT(DISTINCT song_id),
                        COUNT(DISTINCT artist),
                        COALESCE(SUM(play_count), 0),
                        COALESCE(SUM(play_duration), 0)
                    FROM user_activity
                    WHERE user_id = %s
                    """,
                    (user_id,),
                )
                row = cur.fetchone()

        if not row:
            return ListeningSummary()
        return ListeningSummary(
            unique_songs_count=int(row[0] or 0),
            unique_artists_count=int(row[1] or 0),
            total_play_count=int(row[2] or 0),
            total_play_duration=int(row[3] or 0),
        )
