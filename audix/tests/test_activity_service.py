from __future__ import annotations

import unittest
from concurrent.futures import ThreadPoolExecutor

from audix.services.activity_service import ActivityService, normalize_play_duration
from audix.services.errors import InvalidArgumentError, NotFoundError
from audix.services.models import ListeningSummary
from audix.tests.fakes import FailingViewStore, FakeCatalog, InMemoryActivityStore


class NormalizePlayDurationTest(unittest.TestCase):
    def test_accepts_positive_numbers(self) -> None:
        self.assertEqual(normalize_play_duration(30), 30)
        self.assertEqual(normalize_play_duration(12.9), 12)
        self.assertEqual(normalize_play_duration(0.4), 1)

    def test_rejects_non_positive_and_non_numeric(self) -> None:
        for value in (0, -3, None, "30", True, float("nan"), float("inf")):
            with self.subTest(value=value):
                with self.assertRaises(InvalidArgumentError):
                    normalize_play_duration(value)

    def test_rejects_durations_longer_than_a_day(self) -> None:
        self.assertEqual(normalize_play_duration(86400), 86400)
        for value in (86401, 10**30, 1e300):
            with self.subTest(value=value):
                with self.assertRaises(InvalidArgumentError):
                    normalize_play_duration(value)

    def test_custom_upper_bound(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            normalize_play_duration(61, max_seconds=60)


class LogPlayTest(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = FakeCatalog()
        self.catalog.add("s1", "Song One", "Artist A")
        self.catalog.add("s2", "Song Two", "Artist B")
        self.store = InMemoryActivityStore(self.catalog)
        self.service = ActivityService(self.store, self.catalog)

    def test_first_play_creates_record_with_artist(self) -> None:
        record = self.service.log_play("u1", "s1", 30)

        self.assertEqual(record.play_count, 1)
        self.assertEqual(record.play_duration, 30)
        self.assertEqual(record.artist, "Artist A")
        self.assertEqual(record.last_played, record.created_at)

    def test_repeat_plays_accumulate(self) -> None:
        durations = [30, 10, 7, 125]
        for duration in durations:
            record = self.service.log_play("u1", "s1", duration)

        self.assertEqual(record.play_count, len(durations))
        self.assertEqual(record.play_duration, sum(durations))
        self.assertEqual(len(self.store.records), 1)

    def test_last_played_never_moves_backwards(self) -> None:
        first = self.service.log_play("u1", "s1", 10)
        second = self.service.log_play("u1", "s1", 10)

        self.assertGreaterEqual(second.last_played, first.last_played)
        self.assertGreaterEqual(second.last_played, second.created_at)

    def test_missing_song_id_rejected(self) -> None:
        for song_id in (None, "", "   "):
            with self.subTest(song_id=song_id):
                with self.assertRaises(InvalidArgumentError):
                    self.service.log_play("u1", song_id, 30)
        self.assertEqual(self.store.records, {})

    def test_invalid_duration_rejected_without_write(self) -> None:
        with self.assertRaises(InvalidArgumentError):
            self.service.log_play("u1", "s1", 0)
        self.assertEqual(self.store.records, {})

    def test_unknown_song_on_first_play_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self.service.log_play("u1", "missing", 30)
        self.assertEqual(self.store.records, {})

    def test_existing_record_skips_catalog_check(self) -> None:
        self.service.log_play("u1", "s1", 30)
        lookups = self.catalog.artist_lookups
        self.catalog.remove("s1")

        record = self.service.log_play("u1", "s1", 20)

        self.assertEqual(self.catalog.artist_lookups, lookups)
        self.assertEqual(record.play_count, 2)
        self.assertEqual(record.play_duration, 50)

    def test_records_are_per_user(self) -> None:
        self.service.log_play("u1", "s1", 30)
        self.service.log_play("u2", "s1", 15)

        self.assertEqual(len(self.store.records), 2)
        self.assertEqual(self.store.records[("u2", "s1")].play_duration, 15)

    def test_concurrent_flushes_are_not_lost(self) -> None:
        durations = [5 + (i % 7) for i in range(200)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda d: self.service.log_play("u1", "s1", d), durations))

        record = self.store.records[("u1", "s1")]
        self.assertEqual(record.play_count, len(durations))
        self.assertEqual(record.play_duration, sum(durations))
        self.assertEqual(len(self.store.records), 1)


class AggregationTest(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = FakeCatalog()
        for i in range(25):
            self.catalog.add(f"s{i}", f"Song {i}", f"Artist {i % 12}")
        self.store = InMemoryActivityStore(self.catalog)
        self.service = ActivityService(self.store, self.catalog)

    def _play(self, song_id: str, times: int = 1, seconds: int = 10) -> None:
        for _ in range(times):
            self.service.log_play("u1", song_id, seconds)

    def test_recently_played_newest_first_limited(self) -> None:
        for i in range(15):
            self._play(f"s{i}")

        recent = self.service.recently_played("u1")

        self.assertEqual(len(recent), 10)
        self.assertEqual([r.song_id for r in recent[:3]], ["s14", "s13", "s12"])
        self.assertEqual(recent[0].song.title, "Song 14")

    def test_most_played_orders_by_play_count(self) -> None:
        self._play("s3", times=4)
        self._play("s1", times=2)
        self._play("s2", times=3)

        most = self.service.most_played("u1")

        self.assertEqual([r.song_id for r in most], ["s3", "s2", "s1"])
        self.assertEqual(most[0].play_count, 4)

    def test_dangling_records_are_omitted_from_song_views(self) -> None:
        self._play("s1")
        self._play("s2", times=2)
        self.catalog.remove("s2")

        self.assertEqual([r.song_id for r in self.service.recently_played("u1")], ["s1"])
        self.assertEqual([r.song_id for r in self.service.most_played("u1")], ["s1"])

    def test_top_artists_use_artist_recorded_at_first_play(self) -> None:
        self.catalog.add("x", "X", "Old Name")
        self._play("x", times=2, seconds=20)
        self.catalog.rename_artist("x", "New Name")
        self._play("x", seconds=5)

        top = self.service.top_artists("u1")

        self.assertEqual(top[0].artist, "Old Name")
        self.assertEqual(top[0].total_play_count, 3)
        self.assertEqual(top[0].total_play_duration, 45)
        self.assertNotIn("New Name", [a.artist for a in top])

    def test_top_artists_survive_song_deletion_and_limit_to_nine(self) -> None:
        for i in range(12):
            self._play(f"s{i}", times=12 - i)
        self.catalog.remove("s0")

        top = self.service.top_artists("u1")

        self.assertEqual(len(top), 9)
        self.assertEqual(top[0].artist, "Artist 0")
        self.assertEqual(top[0].total_play_count, 12)
        counts = [a.total_play_count for a in top]
        self.assertEqual(counts, sorted(counts, reverse=True))

    def test_listening_summary(self) -> None:
        self._play("s0", times=2, seconds=30)
        self._play("s12", seconds=10)  # same artist as s0
        self._play("s1", seconds=5)

        summary = self.service.listening_summary("u1")

        self.assertEqual(summary.unique_songs_count, 3)
        self.assertEqual(summary.unique_artists_count, 2)
        self.assertEqual(summary.total_play_count, 4)
        self.assertEqual(summary.total_play_duration, 75)

    def test_summary_for_new_user_is_zeroed(self) -> None:
        self.assertEqual(self.service.listening_summary("nobody"), ListeningSummary())

    def test_all_activity_uses_page_limit_for_recent(self) -> None:
        for i in range(25):
            self._play(f"s{i}")

        overview = self.service.get_all_activity("u1")

        self.assertEqual(len(overview.recently_played), 20)
        self.assertEqual(len(overview.most_played), 10)
        self.assertEqual(len(overview.top_artists), 9)
        self.assertEqual(overview.listening_summary.unique_songs_count, 25)


class PartialFailureTest(unittest.TestCase):
    def _service(self, failing: set[str]) -> ActivityService:
        catalog = FakeCatalog()
        catalog.add("s1", "Song One", "Artist A")
        store = FailingViewStore(catalog, failing)
        service = ActivityService(store, catalog)
        service.log_play("u1", "s1", 30)
        return service

    def test_failed_top_artists_defaults_to_empty(self) -> None:
        overview = self._service({"top_artists"}).get_all_activity("u1")

        self.assertEqual(overview.top_artists, [])
        self.assertEqual([r.song_id for r in overview.recently_played], ["s1"])
        self.assertEqual([r.song_id for r in overview.most_played], ["s1"])
        self.assertEqual(overview.listening_summary.total_play_count, 1)

    def test_every_branch_failing_still_returns(self) -> None:
        service = self._service({"recently_played", "most_played", "top_artists", "summary"})

        payload = service.get_all_activity("u1").to_payload()

        self.assertEqual(payload["recentlyPlayed"], [])
        self.assertEqual(payload["mostPlayed"], [])
        self.assertEqual(payload["topArtists"], [])
        self.assertEqual(payload["listeningSummary"]["totalPlayCount"], 0)

    def test_single_views_degrade_to_defaults(self) -> None:
        service = self._service({"recently_played", "summary"})

        self.assertEqual(service.recently_played("u1"), [])
        self.assertEqual(service.listening_summary("u1"), ListeningSummary())
        self.assertEqual(len(service.most_played("u1")), 1)


if __name__ == "__main__":
    unittest.main()
