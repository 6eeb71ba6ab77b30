"""Per-turn identity and the envelope personas read messages through."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class TurnContext:
    """Who is talking, to whom, and which wallets are already known."""

    session_id: str
    created_by: str  # Human who owns the session (and the persona wallets)
    sender: str  # Author of the message being handled
    persona: str = ""  # Persona currently responding
    wallets: dict[str, str] = field(default_factory=dict)  # persona name -> address
    sender_wallet: str | None = None
    depth: int = 1

    def for_persona(self, persona: str) -> TurnContext:
        return replace(self, persona=persona)

    def wallet_of(self, persona: str) -> str | None:
        for name, address in self.wallets.items():
            if name.lower() == persona.lower():
                return address
        return None


def build_message_envelope(context: TurnContext, body: str) -> str:
    """
    Prefix a message with the metadata tools need.

    Personas pass ``createdBy``, ``characterId`` and ``sessionId`` back into
    tool calls, and read wallet addresses from here instead of looking them
    up again.
    """
    metadata = {
        "sessionId": context.session_id,
        "createdBy": context.created_by,
        "sender": context.sender,
        "characterId": context.persona or None,
        "sendersWalletAddress": context.sender_wallet,
        "wallets": context.wallets,
    }
    metadata = {k: v for k, v in metadata.items() if v not in (None, {}, "")}
    return (
        "<metadata>\n"
        f"{json.dumps(metadata, ensure_ascii=False)}\n"
        "</metadata>\n"
        f"<message>\n{body}\n</message>"
    )
