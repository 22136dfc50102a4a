"""Read-only view of the song catalog owned by the catalog service."""

from __future__ import annotations

from audix.db.activity_store import store_errors
from audix.db.connection import get_connection
from audix.services.models import Song


class SongCatalog:
    def get_song(self, song_id: str) -> Song | None:
        with store_errors("get_song"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT id, title, artist, image_url, audio_url, duration, album_id
                    FROM songs
                    WHERE id = %s
                    """,
                    (song_id,),
                )
                row = cur.fetchone()

        if not row:
            return None
        return Song(
            song_id=row[0],
            title=row[1],
            artist=row[2],
            image_url=row[3],
            audio_url=row[4],
            duration=row[5],
            album_id=row[6],
        )

    def get_artist(self, song_id: str) -> str | None:
        with store_errors("get_artist"), get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT artist FROM songs WHERE id = %s", (song_id,))
                row = cur.fetchone()
        return row[0] if row else None
