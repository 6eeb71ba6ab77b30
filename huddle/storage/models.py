"""Records kept by the store."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ChatMessage:
    """One line of a session's conversation log."""

    session_id: str
    seq: int  # Epoch ms, strictly increasing within a session
    author: str  # Human user id or persona name
    body: str
    created_by: str = ""  # The human who owns the session
    character_id: str = ""  # Persona the message was addressed to or written by
    metadata: dict[str, Any] = field(default_factory=dict)
    expires_at: int = 0  # Epoch seconds

    @property
    def created_at(self) -> int:
        return self.seq


@dataclass(frozen=True)
class PersonaWallet:
    """A keypair owned by one (owner, persona) pair."""

    owner: str
    persona: str
    address: str
    private_key: str = field(repr=False)
    wallet_id: str = ""
    basename: str | None = None
    created_at: int = 0


@dataclass(frozen=True)
class EventRecord:
    """Durable record of something a tool did."""

    session_id: str
    seq: int
    created_by: str
    character_id: str
    event_type: str
    data: dict[str, Any] = field(default_factory=dict)
