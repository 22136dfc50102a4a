"""Records exchanged between the activity stores, services and routes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Song:
    """Catalog fields joined onto activity and liked-song rows."""

    song_id: str
    title: str
    artist: str
    image_url: str | None = None
    audio_url: str | None = None
    duration: int | None = None
    album_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.song_id,
            "title": self.title,
            "artist": self.artist,
            "imageUrl": self.image_url,
            "audioUrl": self.audio_url,
            "duration": self.duration,
            "albumId": self.album_id,
        }


@dataclass(frozen=True)
class ActivityRecord:
    """One row per (user, song) pair ever played."""

    user_id: str
    song_id: str
    artist: str
    play_count: int
    play_duration: int
    last_played: datetime
    created_at: datetime | None = None
    song: Song | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "userId": self.user_id,
            "songId": self.song_id,
            "artist": self.artist,
            "playCount": self.play_count,
            "playDuration": self.play_duration,
            "lastPlayed": _iso(self.last_played),
            "createdAt": _iso(self.created_at),
        }
        if self.song is not None:
            payload["song"] = self.song.to_payload()
        return payload


@dataclass(frozen=True)
class ArtistTotals:
    artist: str
    total_play_count: int
    total_play_duration: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "artist": self.artist,
            "totalPlayCount": self.total_play_count,
            "totalPlayDuration": self.total_play_duration,
        }


@dataclass(frozen=True)
class ListeningSummary:
    unique_songs_count: int = 0
    unique_artists_count: int = 0
    total_play_count: int = 0
    total_play_duration: int = 0

    def to_payload(self) -> dict[str, Any]:
        return {
            "uniqueSongsCount": self.unique_songs_count,
            "uniqueArtistsCount": self.unique_artists_count,
            "totalPlayCount": self.total_play_count,
            "totalPlayDuration": self.total_play_duration,
        }


@dataclass(frozen=True)
class ActivityOverview:
    """Combined payload for the activity page."""

    recently_played: list[ActivityRecord]
    most_played: list[ActivityRecord]
    top_artists: list[ArtistTotals]
    listening_summary: ListeningSummary

    def to_payload(self) -> dict[str, Any]:
        return {
            "recentlyPlayed": [r.to_payload() for r in self.recently_played],
            "mostPlayed": [r.to_payload() for r in self.most_played],
            "topArtists": [a.to_payload() for a in self.top_artists],
            "listeningSummary": self.listening_summary.to_payload(),
        }


@dataclass(frozen=True)
class LikedSong:
    song: Song
    liked_at: datetime

    def to_payload(self) -> dict[str, Any]:
        payload = self.song.to_payload()
        payload["likedAt"] = _iso(self.liked_at)
        return payload
