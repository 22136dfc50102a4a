from __future__ import annotations

from typing import Iterable

from audix.db.activity_store import store_errors
from audix.db.connection import get_connection
from audix.services.models import LikedSong, Song


class LikedSongStore:
    """PostgreSQL access for the liked_songs table."""

    def toggle(self, user_id: str, song_id: str) -> bool:
        """
        Flip the like for a pair.

        Returns:
            True if the song is liked after the call.
        """
        with store_errors("toggle_like"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    DELETE FROM liked_songs
                    WHERE user_id = %s AND song_id = %s
                    RETURNING song_id
                    """,
                    (user_id, song_id),
                )
                removed = cur.fetchone() is not None
                if not removed:
                    cur.execute(
                        """
                        INSERT INTO liked_songs (user_id, song_id)
                        VALUES (%s, %s)
                        ON CONFLICT (user_id, song_id) DO NOTHING
                        """,
                        (user_id, song_id),
                    )
            conn.commit()
        return not removed

    def list_liked(self, user_id: str) -> list[LikedSong]:
        with store_errors("list_liked"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT
                        s.id, s.title, s.artist, s.image_url, s.audio_url,
                        s.duration, s.album_id, l.created_at
                    FROM liked_songs l
                    JOIN songs s ON s.id = l.song_id
                    WHERE l.user_id = %s
                    ORDER BY l.created_at DESC
                    """,
                    (user_id,),
                )
                rows = cur.fetchall()

        return [
            LikedSong(
                song=Song(
                    song_id=row[0],
                    title=row[1],
                    artist=row[2],
                    image_url=row[3],
                    audio_url=row[4],
                    duration=row[5],
                    album_id=row[6],
                ),
                liked_at=row[7],
            )
            for row in rows
        ]

    def liked_ids(self, user_id: str, song_ids: Iterable[str]) -> set[str]:
        ids = list(song_ids)
        if not ids:
            return set()
        with store_errors("liked_ids"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT song_id FROM liked_songs
                    WHERE user_id = %s AND song_id = ANY(%s)
                    """,
                    (user_id, ids),
                )
                rows = cur.fetchall()
        return {row[0] for row in rows}
