from audix.client.activity_client import ActivityClient, ActivityClientError
from audix.client.activity_feed import ActivityFeed, empty_activity
from audix.client.flush_queue import FlushQueue
from audix.client.session_timer import PlayEvent, SessionState, SessionTimer
from audix.client.tracker import ListeningTracker

__all__ = [
    "ActivityClient",
    "ActivityClientError",
    "ActivityFeed",
    "FlushQueue",
    "ListeningTracker",
    "PlayEvent",
    "SessionState",
    "SessionTimer",
    "empty_activity",
]
