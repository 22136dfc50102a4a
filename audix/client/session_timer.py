"""
Session Timer

Measures how long each track actually plays and emits one play event per
play episode. An episode starts when playback starts or resumes and ends on
pause, track change, playback end, page hide or an explicit flush.

States:
    IDLE    nothing is playing
    ACTIVE  a track is playing since ``started_at``
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from audix import config

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass(frozen=True)
class PlayEvent:
    """A finished play episode ready to be sent to the server."""

    song_id: str
    play_duration: int


@dataclass(frozen=True)
class ActiveSession:
    song_id: str
    started_at: float


class SessionTimer:
    """Idle/Active play-episode state machine."""

    def __init__(
        self,
        on_flush: Callable[[PlayEvent], None],
        clock: Callable[[], float] = time.monotonic,
        min_play_seconds: float = config.MIN_PLAY_SECONDS,
    ) -> None:
        self._on_flush = on_flush
        self._clock = clock
        self.min_play_seconds = min_play_seconds
        self._active: ActiveSession | None = None
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return SessionState.ACTIVE if self._active is not None else SessionState.IDLE

    @property
    def current_song(self) -> str | None:
        session = self._active
        return session.song_id if session else None

    def elapsed(self) -> float:
        """Seconds played in the current episode (0 when idle)."""
        session = self._active
        if session is None:
            return 0.0
        return max(0.0, self._clock() - session.started_at)

    def play(self, song_id: str) -> PlayEvent | None:
        """
        Start or resume playback of a track.

        Repeated calls for the track already playing keep the original start
        time. Switching tracks flushes the previous episode first.

        Returns:
            The event flushed for the previous track, if any.
        """
        with self._lock:
            current = self._active
            if current is not None and current.song_id == song_id:
                return None
            flushed = self._close(current, "track_change") if current else None
            self._active = ActiveSession(song_id=song_id, started_at=self._clock())

        logger.debug(f"Session started for song {song_id}")
        return self._emit(flushed)

    def pause(self) -> PlayEvent | None:
        return self._stop("pause")

    def ended(self) -> PlayEvent | None:
        return self._stop("ended")

    def flush(self) -> PlayEvent | None:
        """Close the current episode on request (e.g. before logout)."""
        return self._stop("flush")

    def hidden(self) -> PlayEvent | None:
        """Page hidden or unloading."""
        return self._stop("hidden")

    def _stop(self, reason: str) -> PlayEvent | None:
        with self._lock:
            current = self._active
            if current is None:
                return None
            self._active = None
            event = self._close(current, reason)
        return self._emit(event)

    def _close(self, session: ActiveSession, reason: str) -> PlayEvent | None:
        elapsed = self._clock() - session.started_at
        if elapsed < self.min_play_seconds:
            logger.debug(
                f"Discarding {elapsed:.2f}s episode for song {session.song_id} ({reason})"
            )
            return None
        return PlayEvent(song_id=session.song_id, play_duration=int(elapsed))

    def _emit(self, event: PlayEvent | None) -> PlayEvent | None:
        if event is None:
            return None
        try:
            self._on_flush(event)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Failed to hand off play event for {event.song_id}: {exc}")
        return event
