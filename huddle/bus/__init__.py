"""Message bus module for decoupled transport-orchestrator communication."""

from huddle.bus.events import ChatMode, InboundMessage
from huddle.bus.queue import MessageBus

__all__ = ["ChatMode", "InboundMessage", "MessageBus"]
