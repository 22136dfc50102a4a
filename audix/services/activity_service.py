"""
Activity Service

Play ingest and the four listening-activity views (recently played, most
played, top artists, listening summary).
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import Future, ThreadPoolExecutor
from numbers import Real
from typing import Any, Callable, Protocol, TypeVar

from audix import config
from audix.services.errors import InvalidArgumentError, NotFoundError
from audix.services.models import (
    ActivityOverview,
    ActivityRecord,
    ArtistTotals,
    ListeningSummary,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActivityBackend(Protocol):
    def increment(self, user_id: str, song_id: str, seconds: int) -> ActivityRecord | None: ...

    def create_or_increment(
        self, user_id: str, song_id: str, artist: str, seconds: int
    ) -> ActivityRecord: ...

    def recently_played(self, user_id: str, limit: int) -> list[ActivityRecord]: ...

    def most_played(self, user_id: str, limit: int) -> list[ActivityRecord]: ...

    def top_artists(self, user_id: str, limit: int) -> list[ArtistTotals]: ...

    def summary(self, user_id: str) -> ListeningSummary: ...


class ArtistLookup(Protocol):
    def get_artist(self, song_id: str) -> str | None: ...


def normalize_play_duration(value: Any, max_seconds: int = config.MAX_PLAY_SECONDS) -> int:
    """
    Validate a reported play duration and convert it to whole seconds.

    Raises:
        InvalidArgumentError: If the value is not a positive finite number
            or is longer than ``max_seconds``.
    """
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidArgumentError("Valid play duration is required")
    number = float(value)
    if not math.isfinite(number) or number <= 0:
        raise InvalidArgumentError("Valid play duration is required")
    if number > max_seconds:
        raise InvalidArgumentError(f"Play duration cannot exceed {max_seconds} seconds")
    return max(1, int(number))


class ActivityService:
    """Service for recording plays and computing activity views."""

    def __init__(self, store: ActivityBackend, catalog: ArtistLookup) -> None:
        self._store = store
        self._catalog = catalog

    def log_play(self, user_id: str, song_id: str | None, play_duration: Any) -> ActivityRecord:
        """
        Record one flushed play session.

        The song is only checked against the catalog the first time a user
        plays it; later increments go straight to the existing record.

        Args:
            user_id: Caller identity
            song_id: Catalog song id
            play_duration: Seconds played in the session (> 0)

        Returns:
            The record after the increment
        """
        if not song_id or not str(song_id).strip():
            raise InvalidArgumentError("Song ID is required")
        song_id = str(song_id).strip()
        seconds = normalize_play_duration(play_duration)

        record = self._store.increment(user_id, song_id, seconds)
        if record is not None:
            logger.debug(
                f"Incremented activity for user {user_id} song {song_id} "
                f"(count={record.play_count})"
            )
            return record

        artist = self._catalog.get_artist(song_id)
        if artist is None:
            raise NotFoundError("Song not found")

        record = self._store.create_or_increment(user_id, song_id, artist, seconds)
        logger.info(f"Created activity record for user {user_id} song {song_id}")
        return record

    def recently_played(
        self, user_id: str, limit: int = config.RECENT_LIMIT
    ) -> list[ActivityRecord]:
        return _degrade(
            "recently_played", lambda: self._store.recently_played(user_id, limit), []
        )

    def most_played(
        self, user_id: str, limit: int = config.MOST_PLAYED_LIMIT
    ) -> list[ActivityRecord]:
        return _degrade(
            "most_played", lambda: self._store.most_played(user_id, limit), []
        )

    def top_artists(
        self, user_id: str, limit: int = config.TOP_ARTISTS_LIMIT
    ) -> list[ArtistTotals]:
        return _degrade(
            "top_artists", lambda: self._store.top_artists(user_id, limit), []
        )

    def listening_summary(self, user_id: str) -> ListeningSummary:
        return _degrade(
            "listening_summary", lambda: self._store.summary(user_id), ListeningSummary()
        )

    def get_all_activity(self, user_id: str) -> ActivityOverview:
        """
        Compute all four views for the activity page.

        The queries run concurrently and each branch settles on its own: a
        failed branch is replaced by its empty default.
        """
        branches: dict[str, tuple[Callable[[], Any], Any]] = {
            "recently_played": (
                lambda: self._store.recently_played(user_id, config.RECENT_PAGE_LIMIT),
                [],
            ),
            "most_played": (
                lambda: self._store.most_played(user_id, config.MOST_PLAYED_LIMIT),
                [],
            ),
            "top_artists": (
                lambda: self._store.top_artists(user_id, config.TOP_ARTISTS_LIMIT),
                [],
            ),
            "listening_summary": (
                lambda: self._store.summary(user_id),
                ListeningSummary(),
            ),
        }

        with ThreadPoolExecutor(max_workers=len(branches)) as pool:
            futures = {name: pool.submit(fn) for name, (fn, _) in branches.items()}
            settled = {
                name: _settle(name, futures[name], default)
                for name, (_, default) in branches.items()
            }

        overview = ActivityOverview(**settled)
        logger.debug(
            f"Activity for user {user_id}: recent={len(overview.recently_played)}, "
            f"most_played={len(overview.most_played)}, "
            f"top_artists={len(overview.top_artists)}"
        )
        return overview


def _degrade(name: str, query: Callable[[], T], default: T) -> T:
    try:
        return query()
    except Exception as exc:  # noqa: BLE001
        logger.warning(f"Activity view '{name}' failed, using empty default: {exc}")
        return default


def _settle(name: str, future: Future, default: Any) -> Any:
    exc = future.exception()
    if exc is not None:
        logger.warning(f"Activity view '{name}' failed, using empty default: {exc}")
        return default
    return future.result()


# Singleton instance
_service: ActivityService | None = None


def get_activity_service() -> ActivityService:
    """Get the singleton ActivityService backed by PostgreSQL."""
    global _service
    if _service is None:
        from audix.db.activity_store import ActivityStore
        from audix.db.song_catalog import SongCatalog

        _service = ActivityService(ActivityStore(), SongCatalog())
    return _service
