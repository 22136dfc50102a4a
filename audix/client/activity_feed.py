"""
Activity Feed

Client-side holder of the activity page payload. Guards repeated fetches with
a five minute cache and forces a refresh after a play is delivered, when the
page becomes visible again, on request, or on an optional periodic timer.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
from typing import Any, Callable

from audix import config
from audix.cache import TTLCache
from audix.client.activity_client import ActivityClient, ActivityClientError
from audix.client.scheduling import Scheduler, ThreadingScheduler, TimerHandle

logger = logging.getLogger(__name__)

CACHE_KEY = "activity:all"
AUTO_REFRESH_MIN_SECONDS = 15.0
AUTO_REFRESH_MAX_SECONDS = 30.0

_EMPTY_SUMMARY = {
    "uniqueSongsCount": 0,
    "uniqueArtistsCount": 0,
    "totalPlayCount": 0,
    "totalPlayDuration": 0,
}


def empty_activity() -> dict[str, Any]:
    """The payload rendered as "no activity yet"."""
    return {
        "recentlyPlayed": [],
        "mostPlayed": [],
        "topArtists": [],
        "listeningSummary": dict(_EMPTY_SUMMARY),
    }


def normalize_activity(data: Any) -> dict[str, Any]:
    """Coerce a server response into the full activity shape."""
    if not isinstance(data, dict):
        return empty_activity()

    summary = data.get("listeningSummary")
    if isinstance(summary, dict):
        summary = {key: summary.get(key) or 0 for key in _EMPTY_SUMMARY}
    else:
        summary = dict(_EMPTY_SUMMARY)

    return {
        "recentlyPlayed": _as_list(data.get("recentlyPlayed")),
        "mostPlayed": _as_list(data.get("mostPlayed")),
        "topArtists": _as_list(data.get("topArtists")),
        "listeningSummary": summary,
    }


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


class ActivityFeed:
    """Cached activity data with refresh triggers."""

    def __init__(
        self,
        client: ActivityClient,
        cache: TTLCache | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        debounce_seconds: float = config.REFRESH_DEBOUNCE_SECONDS,
        attempts: int = config.FETCH_ATTEMPTS,
        backoff_seconds: float = config.FETCH_BACKOFF_SECONDS,
    ) -> None:
        self._client = client
        self._cache = cache or TTLCache(ttl=config.ACTIVITY_CACHE_TTL, max_size=1, clock=clock)
        self._scheduler = scheduler or ThreadingScheduler()
        self._sleep = sleep
        self.debounce_seconds = debounce_seconds
        self.attempts = max(1, attempts)
        self.backoff_seconds = backoff_seconds

        self._lock = threading.Lock()
        self._generation = 0
        self._data: dict[str, Any] | None = None
        self.error: str | None = None
        self.is_loading = False
        self.network_calls = 0

        self._pending_refresh: TimerHandle | None = None
        self._auto_refresh: TimerHandle | None = None
        self._auto_refresh_interval: float | None = None

    @property
    def data(self) -> dict[str, Any] | None:
        return self._data

    def fetch(self, force_refresh: bool = False) -> dict[str, Any]:
        """
        Get the activity payload.

        Args:
            force_refresh: Skip the cache and always ask the server

        Returns:
            The activity payload; the empty payload for guests and when every
            attempt failed.
        """
        if not self._client.is_authenticated:
            logger.debug("Guest user, returning empty activity data")
            with self._lock:
                self._data = empty_activity()
                self.error = None
            return empty_activity()

        if not force_refresh:
            hit, cached = self._cache.get(CACHE_KEY)
            if hit:
                logger.debug("Using cached activity data")
                return copy.deepcopy(cached)

        with self._lock:
            self._generation += 1
            generation = self._generation
            self.is_loading = True

        payload, error = self._fetch_remote()

        with self._lock:
            if generation != self._generation:
                # A newer fetch or a reset owns the shared state now.
                logger.debug(f"Discarding stale activity response (generation {generation})")
                return payload
            self.is_loading = False
            self._data = payload
            self.error = error
            if error is None:
                self._cache.set(CACHE_KEY, copy.deepcopy(payload))
        return copy.deepcopy(payload)

    def _fetch_remote(self) -> tuple[dict[str, Any], str | None]:
        last_error: ActivityClientError | None = None
        for attempt in range(self.attempts):
            try:
                self.network_calls += 1
                response = self._client.get_all()
            except ActivityClientError as exc:
                if exc.is_auth_error:
                    logger.info("Authentication error fetching activity, returning empty data")
                    return empty_activity(), None
                last_error = exc
                logger.warning(f"Attempt {attempt + 1} to fetch activity data failed: {exc}")
                if not exc.retriable:
                    break
                if attempt < self.attempts - 1:
                    self._sleep(self.backoff_seconds * (2 ** attempt))
                continue

            if response is None:
                last_error = ActivityClientError("Invalid response from server")
                continue
            return normalize_activity(response), None

        message = str(last_error) if last_error else "Failed to fetch activity data"
        logger.error(f"All attempts to fetch activity data failed: {message}")
        return empty_activity(), message

    def refresh(self) -> dict[str, Any]:
        """User-initiated refresh."""
        return self.fetch(force_refresh=True)

    def on_flush_delivered(self, event: Any = None) -> None:
        """Schedule a forced refresh shortly after a play reached the server."""
        with self._lock:
            if self._pending_refresh is not None:
                self._pending_refresh.cancel()
            self._pending_refresh = self._scheduler.call_later(
                self.debounce_seconds, self._run_pending_refresh
            )

    def _run_pending_refresh(self) -> None:
        with self._lock:
            self._pending_refresh = None
        self._safe_refresh("play flush")

    def on_visibility_change(self, visible: bool) -> None:
        if visible:
            self._safe_refresh("page visible")

    def start_auto_refresh(self, interval: float = AUTO_REFRESH_MAX_SECONDS) -> None:
        """Refresh periodically every ``interval`` seconds (15-30)."""
        if not AUTO_REFRESH_MIN_SECONDS <= interval <= AUTO_REFRESH_MAX_SECONDS:
            raise ValueError(
                f"Auto-refresh interval must be between {AUTO_REFRESH_MIN_SECONDS:g} "
                f"and {AUTO_REFRESH_MAX_SECONDS:g} seconds"
            )
        self.stop_auto_refresh()
        with self._lock:
            self._auto_refresh_interval = interval
            self._auto_refresh = self._scheduler.call_later(interval, self._run_auto_refresh)

    def stop_auto_refresh(self) -> None:
        with self._lock:
            self._auto_refresh_interval = None
            if self._auto_refresh is not None:
                self._auto_refresh.cancel()
                self._auto_refresh = None

    def _run_auto_refresh(self) -> None:
        self._safe_refresh("auto refresh")
        with self._lock:
            interval = self._auto_refresh_interval
            if interval is not None:
                self._auto_refresh = self._scheduler.call_later(interval, self._run_auto_refresh)

    def _safe_refresh(self, trigger: str) -> None:
        try:
            self.fetch(force_refresh=True)
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Activity refresh ({trigger}) failed: {exc}")

    def cancel_timers(self) -> None:
        self.stop_auto_refresh()
        with self._lock:
            if self._pending_refresh is not None:
                self._pending_refresh.cancel()
                self._pending_refresh = None

    def reset(self) -> None:
        """Forget all cached data, e.g. on sign-out."""
        self.cancel_timers()
        with self._lock:
            self._generation += 1
            self._data = None
            self.error = None
            self.is_loading = False
            self._cache.invalidate_all()
