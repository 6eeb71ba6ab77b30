"""Shared plumbing for the persona tools."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from huddle.agent.tools.base import Tool
from huddle.agent.tools.errors import (
    InvalidInputError,
    ServiceUnavailableError,
    TransactionFailedError,
    WalletNotFoundError,
)
from huddle.chain import ChainClient, ChainError
from huddle.chain.units import parse_wei
from huddle.notify import EventName
from huddle.storage import PersonaWallet

if TYPE_CHECKING:
    from huddle.agent.context import TurnContext
    from huddle.agent.tools.deps import ToolDeps

# Every tool accepts these; missing values come from the turn context.
IDENTITY_PROPERTIES: dict[str, Any] = {
    "createdBy": {
        "type": "string",
        "description": "The user the action is performed for (from the message metadata).",
    },
    "characterId": {
        "type": "string",
        "description": "The persona performing the action.",
    },
    "sessionId": {
        "type": "string",
        "description": "The session the action belongs to.",
    },
}


def schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {**properties, **IDENTITY_PROPERTIES},
        "required": list(required or []),
    }


@dataclass(frozen=True)
class Identity:
    session_id: str
    created_by: str
    character_id: str


def parse_amount(value: Any, field: str) -> int:
    """Integer wei/base-unit amounts arrive as strings from the model."""
    try:
        amount = parse_wei(value)
    except ValueError:
        raise InvalidInputError(f"'{field}' must be an integer amount, got {value!r}") from None
    if amount < 0:
        raise InvalidInputError(f"'{field}' must not be negative")
    return amount


class PersonaTool(Tool):
    """A tool backed by the shared dependency bundle."""

    def __init__(self, deps: ToolDeps):
        self.deps = deps

    def identity(self, kwargs: dict[str, Any]) -> Identity:
        context: TurnContext | None = kwargs.get("context")
        session_id = kwargs.get("sessionId") or (context.session_id if context else "")
        created_by = kwargs.get("createdBy") or (context.created_by if context else "")
        character_id = kwargs.get("characterId") or (context.persona if context else "")
        if not (session_id and created_by and character_id):
            raise InvalidInputError("sessionId, createdBy and characterId are required")
        return Identity(str(session_id), str(created_by), str(character_id))

    def require_chain(self) -> ChainClient:
        if self.deps.chain is None:
            raise ServiceUnavailableError("No chain RPC configured")
        return self.deps.chain

    async def wallet_for(self, ident: Identity) -> PersonaWallet:
        wallet = await self.deps.store.get_wallet(ident.created_by, ident.character_id)
        if wallet is None:
            raise WalletNotFoundError(
                f"{ident.character_id} has no wallet yet; create one first",
                details={"createdBy": ident.created_by, "characterId": ident.character_id},
            )
        return wallet

    async def say(self, ident: Identity, text: str) -> None:
        """Queue a status line from the persona; delivery happens in the background."""
        self.deps.notifier.push_text_nowait(ident.session_id, ident.character_id, text)

    async def announce(self, ident: Identity, event: EventName, metadata: dict[str, Any]) -> None:
        """Queue a structured event for the session-wide viewer channel."""
        self.deps.notifier.emit_nowait(
            ident.session_id, ident.created_by, ident.character_id, event, metadata
        )

    async def record(self, ident: Identity, event_type: str, data: dict[str, Any]) -> None:
        """Durable event record. A store failure here is logged, not fatal."""
        try:
            await self.deps.store.record_event(
                ident.session_id, ident.created_by, ident.character_id, event_type, data
            )
        except Exception as e:
            logger.warning(f"Could not record {event_type} for {ident.session_id}: {e}")

    async def confirm(self, tx_hash: str, chain: ChainClient | None = None) -> dict[str, Any]:
        """Wait for confirmations; reverts and timeouts become a structured failure."""
        chain = chain or self.require_chain()
        try:
            return await chain.wait_for_receipt(tx_hash)
        except ChainError as e:
            raise TransactionFailedError(str(e), details={"transactionHash": tx_hash}) from e
