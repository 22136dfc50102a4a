from __future__ import annotations

import os
import unittest
import uuid
from concurrent.futures import ThreadPoolExecutor


@unittest.skipUnless(
    os.environ.get("AUDIX_INTEGRATION_TEST") == "1",
    "Set AUDIX_INTEGRATION_TEST=1 and AUDIX_DATABASE_URL to run integration tests.",
)
class PostgresActivityIntegrationTest(unittest.TestCase):
    def setUp(self) -> None:
        from audix.db.activity_store import ActivityStore
        from audix.db.connection import get_connection
        from audix.db.liked_song_store import LikedSongStore
        from audix.db.schema import ensure_schema
        from audix.db.song_catalog import SongCatalog
        from audix.services.activity_service import ActivityService

        ensure_schema()
        self.get_connection = get_connection
        self.user_id = f"it-{uuid.uuid4().hex}"
        self.song_ids = [f"it-song-{uuid.uuid4().hex}" for _ in range(2)]
        with get_connection() as conn:
            with conn.cursor() as cur:
                for index, song_id in enumerate(self.song_ids):
                    cur.execute(
                        "INSERT INTO songs (id, title, artist, duration) VALUES (%s, %s, %s, %s)",
                        (song_id, f"Song {index}", f"Artist {index}", 180),
                    )
            conn.commit()

        self.catalog = SongCatalog()
        self.likes = LikedSongStore()
        self.service = ActivityService(ActivityStore(), self.catalog)

    def tearDown(self) -> None:
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM user_activity WHERE user_id = %s", (self.user_id,))
                cur.execute("DELETE FROM liked_songs WHERE user_id = %s", (self.user_id,))
                cur.execute("DELETE FROM songs WHERE id = ANY(%s)", (self.song_ids,))
            conn.commit()

    def test_concurrent_plays_are_all_counted(self) -> None:
        song_id = self.song_ids[0]

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: self.service.log_play(self.user_id, song_id, 10), range(20)))

        most = self.service.most_played(self.user_id)
        self.assertEqual(most[0].song_id, song_id)
        self.assertEqual(most[0].play_count, 20)
        self.assertEqual(most[0].play_duration, 200)
        self.assertEqual(most[0].song.title, "Song 0")

    def test_views_and_summary(self) -> None:
        self.service.log_play(self.user_id, self.song_ids[0], 30)
        self.service.log_play(self.user_id, self.song_ids[0], 10)
        self.service.log_play(self.user_id, self.song_ids[1], 5)

        overview = self.service.get_all_activity(self.user_id)

        self.assertEqual(overview.recently_played[0].song_id, self.song_ids[1])
        self.assertEqual(overview.top_artists[0].artist, "Artist 0")
        self.assertEqual(overview.top_artists[0].total_play_duration, 40)
        self.assertEqual(overview.listening_summary.unique_songs_count, 2)
        self.assertEqual(overview.listening_summary.total_play_count, 3)

    def test_like_toggle_round_trip(self) -> None:
        song_id = self.song_ids[1]

        self.assertTrue(self.likes.toggle(self.user_id, song_id))
        self.assertEqual(self.likes.liked_ids(self.user_id, self.song_ids), {song_id})
        self.assertEqual(self.likes.list_liked(self.user_id)[0].song.song_id, song_id)
        self.assertFalse(self.likes.toggle(self.user_id, song_id))


if __name__ == "__main__":
    unittest.main()
