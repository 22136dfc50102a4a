from __future__ import annotations


class ActivityError(Exception):
    """Base class for errors raised by the activity and liked-songs services."""


class UnauthenticatedError(ActivityError):
    """No user identity could be resolved for the request."""


class InvalidArgumentError(ActivityError):
    """A request field is missing or out of range."""


class NotFoundError(ActivityError):
    """A referenced song does not exist."""


class TransientStoreError(ActivityError):
    """The backing store failed; the caller may retry."""
