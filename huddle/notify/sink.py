"""Notification sinks: where live viewer pushes actually go."""

from __future__ import annotations

import asyncio
import itertools
import json
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from loguru import logger
from rich.console import Console

from huddle.notify.errors import PermanentNotificationError, TemporaryNotificationError
from huddle.notify.events import NotificationEvent

# Persona slot used for the session-wide observer stream.
GOD_CHANNEL = "god"

SendFn = Callable[[str], Awaitable[None]]


class NotificationSink(ABC):
    """Push channel keyed by (session, persona)."""

    @abstractmethod
    async def send_text(self, session_id: str, persona: str, text: str) -> None:
        """Push a character-facing chat line."""

    @abstractmethod
    async def send_event(self, session_id: str, event: NotificationEvent) -> None:
        """Push a structured event to the viewer channel."""


class ConnectionHub(NotificationSink):
    """
    In-process registry of live viewer connections.

    The gateway registers one send callable per websocket. A missing
    receiver is normal (nobody is watching) and is not an error. Each
    connection gets ``send_timeout`` seconds per push; one that fails or
    stalls is dropped without holding up the others.
    """

    def __init__(self, send_timeout: float = 2.0) -> None:
        self.send_timeout = send_timeout
        self._ids = itertools.count(1)
        self._connections: dict[tuple[str, str], dict[int, SendFn]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _key(session_id: str, persona: str) -> tuple[str, str]:
        return (session_id, (persona or "").strip().lower())

    async def register(self, session_id: str, persona: str, send: SendFn) -> int:
        async with self._lock:
            conn_id = next(self._ids)
            self._connections.setdefault(self._key(session_id, persona), {})[conn_id] = send
        logger.debug(f"Viewer connected: {session_id}/{persona} (#{conn_id})")
        return conn_id

    async def unregister(self, session_id: str, persona: str, conn_id: int) -> None:
        key = self._key(session_id, persona)
        async with self._lock:
            conns = self._connections.get(key)
            if conns is None:
                return
            conns.pop(conn_id, None)
            if not conns:
                self._connections.pop(key, None)
        logger.debug(f"Viewer disconnected: {session_id}/{persona} (#{conn_id})")

    def connection_count(self, session_id: str, persona: str) -> int:
        return len(self._connections.get(self._key(session_id, persona), {}))

    async def send_text(self, session_id: str, persona: str, text: str) -> None:
        payload = {
            "type": "message",
            "sessionId": session_id,
            "characterId": persona,
            "message": text,
        }
        await self._broadcast(session_id, persona, payload)

    async def send_event(self, session_id: str, event: NotificationEvent) -> None:
        payload = {"type": "event", "sessionId": session_id, "event": event.to_payload()}
        await self._broadcast(session_id, GOD_CHANNEL, payload)

    async def _broadcast(self, session_id: str, persona: str, payload: dict[str, Any]) -> None:
        key = self._key(session_id, persona)
        conns = dict(self._connections.get(key, {}))
        if not conns:
            logger.debug(f"No live viewer for {session_id}/{persona}; dropping push")
            return

        try:
            data = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PermanentNotificationError(f"Unserializable payload: {e}") from e

        outcomes = await asyncio.gather(
            *(self._send_one(session_id, persona, conn_id, send, data) for conn_id, send in conns.items())
        )
        failed = [conn_id for conn_id, ok in zip(conns, outcomes) if not ok]

        # Stale and stalled sockets are pruned so later pushes skip them.
        for conn_id in failed:
            await self.unregister(session_id, persona, conn_id)
        if failed and len(failed) == len(conns):
            raise TemporaryNotificationError(f"All viewers for {session_id}/{persona} failed")

    async def _send_one(self, session_id: str, persona: str, conn_id: int, send: SendFn, data: str) -> bool:
        try:
            await asyncio.wait_for(send(data), timeout=self.send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Push to {session_id}/{persona} #{conn_id} stalled for {self.send_timeout}s")
        except Exception as e:
            logger.warning(f"Push to {session_id}/{persona} #{conn_id} failed: {e}")
        return False


class ConsoleSink(NotificationSink):
    """Prints pushes to the terminal; used by the interactive CLI."""

    def __init__(self, console: Console | None = None, show_events: bool = True) -> None:
        self.console = console or Console()
        self.show_events = show_events

    async def send_text(self, session_id: str, persona: str, text: str) -> None:
        self.console.print(f"[bold cyan]{persona}:[/bold cyan] {text}")

    async def send_event(self, session_id: str, event: NotificationEvent) -> None:
        if not self.show_events:
            return
        details = json.dumps(event.metadata, ensure_ascii=False, default=str)
        self.console.print(f"[dim]⚑ {event.event_name} by {event.character_id}: {details}[/dim]")
