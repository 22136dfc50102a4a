"""
Flush Queue

Outbound queue for play events. Delivery runs on its own worker thread so a
retry in progress survives the player moving on to another track.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Callable

from audix import config
from audix.client.activity_client import ActivityClientError
from audix.client.session_timer import PlayEvent

logger = logging.getLogger(__name__)

Sender = Callable[[PlayEvent], Any]
DeliveryListener = Callable[[PlayEvent], None]


class FlushQueue:
    """At-least-once delivery of play events with bounded exponential backoff."""

    def __init__(
        self,
        sender: Sender,
        max_attempts: int = config.FLUSH_MAX_ATTEMPTS,
        base_delay: float = config.FLUSH_BACKOFF_SECONDS,
        max_delay: float = config.FLUSH_MAX_BACKOFF_SECONDS,
        wait: Callable[[float], bool] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._sender = sender
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._events: queue.Queue[PlayEvent] = queue.Queue()
        self._listeners: list[DeliveryListener] = []
        self._stop_event = threading.Event()
        self._worker_thread: threading.Thread | None = None
        # wait(delay) returns True when the queue is shutting down.
        self._wait = wait or self._stop_event.wait
        self.delivered = 0
        self.dropped = 0

    def add_listener(self, listener: DeliveryListener) -> None:
        """Register a callback run after each successful delivery."""
        self._listeners.append(listener)

    def enqueue(self, event: PlayEvent) -> None:
        self._events.put_nowait(event)

    def pending(self) -> int:
        return self._events.qsize()

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def start(self) -> None:
        """Start the background delivery worker."""
        if self._worker_thread and self._worker_thread.is_alive():
            return
        self._stop_event.clear()
        self._worker_thread = threading.Thread(target=self._run, daemon=True)
        self._worker_thread.start()
        logger.info("Play event flush worker started")

    def stop(self, timeout: float = 2.0) -> None:
        """Stop the background delivery worker."""
        self._stop_event.set()
        if self._worker_thread:
            self._worker_thread.join(timeout=timeout)
            self._worker_thread = None
        logger.info("Play event flush worker stopped")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                event = self._events.get(timeout=0.5)
            except queue.Empty:
                continue
            self._deliver(event)

    def process_pending(self) -> int:
        """
        Deliver everything currently queued on the calling thread.

        Returns:
            Number of events delivered
        """
        delivered = 0
        for _ in range(self._events.qsize()):
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            if self._deliver(event):
                delivered += 1
        return delivered

    def _deliver(self, event: PlayEvent) -> bool:
        for attempt in range(self.max_attempts):
            try:
                self._sender(event)
            except ActivityClientError as exc:
                if not exc.retriable:
                    self._drop(event, str(exc))
                    return False
                if attempt == self.max_attempts - 1:
                    self._drop(event, f"gave up after {self.max_attempts} attempts: {exc}")
                    return False
                delay = self.backoff_delay(attempt)
                logger.debug(
                    f"Play event for {event.song_id} failed (attempt {attempt + 1}), "
                    f"retrying in {delay:.1f}s: {exc}"
                )
                if self._wait(delay):
                    # Shutting down mid-backoff; keep the event for a later flush.
                    self._events.put_nowait(event)
                    return False
                continue
            except Exception as exc:  # noqa: BLE001
                logger.exception(f"Unexpected error sending play event for {event.song_id}")
                self._drop(event, str(exc))
                return False

            self.delivered += 1
            self._notify(event)
            return True
        return False

    def _drop(self, event: PlayEvent, reason: str) -> None:
        self.dropped += 1
        logger.warning(f"Dropping play event for song {event.song_id}: {reason}")

    def _notify(self, event: PlayEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Delivery listener failed: {exc}")
