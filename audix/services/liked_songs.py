"""
Liked Songs Service

Per-user song likes. A like is keyed on (user, song) and toggled in place.
"""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from audix.services.errors import InvalidArgumentError, NotFoundError
from audix.services.models import LikedSong, Song

logger = logging.getLogger(__name__)


class LikeBackend(Protocol):
    def toggle(self, user_id: str, song_id: str) -> bool: ...

    def list_liked(self, user_id: str) -> list[LikedSong]: ...

    def liked_ids(self, user_id: str, song_ids: Iterable[str]) -> set[str]: ...


class SongLookup(Protocol):
    def get_song(self, song_id: str) -> Song | None: ...


class LikedSongsService:
    def __init__(self, store: LikeBackend, catalog: SongLookup) -> None:
        self._store = store
        self._catalog = catalog

    def toggle(self, user_id: str, song_id: str | None) -> bool:
        """Like or unlike a song; returns the new liked state."""
        if not song_id or not song_id.strip():
            raise InvalidArgumentError("Song ID is required")
        song_id = song_id.strip()
        if self._catalog.get_song(song_id) is None:
            raise NotFoundError("Song not found")

        liked = self._store.toggle(user_id, song_id)
        logger.info(f"User {user_id} {'liked' if liked else 'unliked'} song {song_id}")
        return liked

    def list_liked(self, user_id: str) -> list[LikedSong]:
        """Liked songs, newest first. Likes of deleted songs are left out."""
        return self._store.list_liked(user_id)

    def is_liked(self, user_id: str, song_id: str) -> bool:
        if not song_id:
            raise InvalidArgumentError("Song ID is required")
        return song_id in self._store.liked_ids(user_id, [song_id])

    def bulk_status(self, user_id: str, song_ids: list[str] | None) -> dict[str, bool]:
        if song_ids is None:
            raise InvalidArgumentError("Song IDs array is required")
        liked = self._store.liked_ids(user_id, song_ids)
        return {song_id: song_id in liked for song_id in song_ids}


_service: LikedSongsService | None = None


def get_liked_songs_service() -> LikedSongsService:
    """Get the singleton LikedSongsService backed by PostgreSQL."""
    global _service
    if _service is None:
        from audix.db.liked_song_store import LikedSongStore
        from audix.db.song_catalog import SongCatalog

        _service = LikedSongsService(LikedSongStore(), SongCatalog())
    return _service
