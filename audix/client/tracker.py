"""
Listening Tracker

Connects the player-facing session timer to the flush queue and the activity
feed: finished episodes are queued for delivery, and each delivery schedules
a debounced refresh of the activity data.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from audix.client.activity_client import ActivityClient
from audix.client.activity_feed import ActivityFeed
from audix.client.flush_queue import FlushQueue
from audix.client.scheduling import Scheduler
from audix.client.session_timer import PlayEvent, SessionTimer

logger = logging.getLogger(__name__)


class ListeningTracker:
    def __init__(
        self,
        client: ActivityClient,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler | None = None,
        feed: ActivityFeed | None = None,
        flush_queue: FlushQueue | None = None,
    ) -> None:
        self.client = client
        self.feed = feed or ActivityFeed(client, scheduler=scheduler, clock=clock)
        self.queue = flush_queue or FlushQueue(self._send)
        self.queue.add_listener(self.feed.on_flush_delivered)
        self.timer = SessionTimer(on_flush=self._enqueue, clock=clock)

    def _send(self, event: PlayEvent) -> None:
        self.client.log_play(event.song_id, event.play_duration)

    def _enqueue(self, event: PlayEvent) -> None:
        if not self.client.is_authenticated:
            logger.debug(f"Not signed in, skipping play event for {event.song_id}")
            return
        self.queue.enqueue(event)

    def start(self) -> None:
        self.queue.start()

    def close(self) -> None:
        """Flush the playing episode and stop background work."""
        self.timer.hidden()
        self.queue.stop()
        # One last attempt for whatever is still queued. With the worker
        # stopped a retriable failure stays queued instead of backing off.
        self.queue.process_pending()
        self.feed.cancel_timers()

    # Player hooks

    def on_play(self, song_id: str) -> None:
        self.timer.play(song_id)

    def on_pause(self) -> None:
        self.timer.pause()

    def on_ended(self) -> None:
        self.timer.ended()

    def log_activity(self) -> None:
        self.timer.flush()

    def on_visibility_change(self, visible: bool) -> None:
        if visible:
            self.feed.on_visibility_change(True)
        else:
            self.timer.hidden()
