"""Delivery errors for viewer notifications.

Sinks raise these; the notifier logs them and moves on.
"""


class NotificationError(RuntimeError):
    """Base class for notification delivery errors."""


class TemporaryNotificationError(NotificationError):
    """A transient failure (socket closed mid-send, viewer reconnecting)."""


class PermanentNotificationError(NotificationError):
    """A permanent failure (unknown session, malformed payload)."""
