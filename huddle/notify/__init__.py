"""Live viewer notifications."""

from huddle.notify.events import EventName, NotificationEvent
from huddle.notify.notifier import EMPTY_SENTINEL, GENERIC_FAILURE, Notifier
from huddle.notify.sink import GOD_CHANNEL, ConnectionHub, ConsoleSink, NotificationSink

__all__ = [
    "EMPTY_SENTINEL",
    "GENERIC_FAILURE",
    "GOD_CHANNEL",
    "ConnectionHub",
    "ConsoleSink",
    "EventName",
    "NotificationEvent",
    "NotificationSink",
    "Notifier",
]
