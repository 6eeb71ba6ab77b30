"""Event types for the message bus."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class ChatMode(str, Enum):
    """Whether a persona's reply is routed onward."""
    RECURSIVE = "recursive"  # Replies re-enter routing until the depth cap
    STANDARD = "standard"  # One reply per inbound message


@dataclass
class InboundMessage:
    """A message arriving at the room from a human (or an internal caller)."""

    session_id: str
    sender_id: str  # Human user id; owner of the persona wallets
    persona_id: str  # Persona the viewer is attached to / intended recipient context
    body: str
    chat_mode: ChatMode = ChatMode.RECURSIVE
    timestamp: datetime = field(default_factory=datetime.now)
    sender_wallet: str | None = None  # Wallet the human is connected with, if any
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def session_key(self) -> str:
        """Unique key for per-session serialization."""
        return self.session_id
