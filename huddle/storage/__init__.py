"""Persistence for conversations, wallets and events."""

from huddle.storage.errors import StoreError
from huddle.storage.models import ChatMessage, EventRecord, PersonaWallet
from huddle.storage.store import HuddleStore

__all__ = ["ChatMessage", "EventRecord", "HuddleStore", "PersonaWallet", "StoreError"]
