"""Best-effort pushes to live viewers.

Every push is bounded by a timeout and never raises: a dead viewer
socket must not fail a trade that already landed on-chain. Tools push
through the detached lanes (``push_text_nowait`` / ``emit_nowait``) so a
slow viewer never holds up the call that produced the line.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Awaitable, Callable

from loguru import logger

from huddle.notify.events import EventName, NotificationEvent
from huddle.notify.sink import GOD_CHANNEL, NotificationSink

# Persona replies equal to this carry nothing worth showing.
EMPTY_SENTINEL = "No response content"

GENERIC_FAILURE = "Something went wrong, please try again in a few moments."


class Notifier:
    """Wraps a sink with timeouts, logging and the empty-reply filter."""

    def __init__(self, sink: NotificationSink, timeout: float = 5.0):
        self.sink = sink
        self.timeout = timeout
        # Tail task per (session, channel); each detached push waits for the previous one.
        self._lanes: dict[tuple[str, str], asyncio.Task] = {}
        self._pending: dict[str, set[asyncio.Task]] = {}

    async def _deliver(self, push: Awaitable[None], what: str) -> bool:
        try:
            await asyncio.wait_for(push, timeout=self.timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Push timed out after {self.timeout}s: {what}")
        except Exception as e:
            logger.warning(f"Push failed ({what}): {e}")
        return False

    async def push_text(self, session_id: str, persona: str, text: str) -> bool:
        """Push a chat line for a persona. Returns whether it was delivered."""
        text = (text or "").strip()
        if not text or text == EMPTY_SENTINEL:
            logger.info(f"Skipping empty push for {session_id}/{persona}")
            return False
        return await self._deliver(
            self.sink.send_text(session_id, persona, text),
            f"text to {session_id}/{persona}",
        )

    async def push_event(self, session_id: str, event: NotificationEvent) -> bool:
        """Push a structured event to the viewer channel."""
        return await self._deliver(
            self.sink.send_event(session_id, event),
            f"{event.event_name} to {session_id}",
        )

    async def emit(
        self,
        session_id: str,
        created_by: str,
        character_id: str,
        event_name: EventName,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Build and push an event in one call."""
        event = NotificationEvent(
            created_by=created_by,
            character_id=character_id,
            event_name=event_name,
            metadata=metadata or {},
        )
        return await self.push_event(session_id, event)

    async def push_failure(self, session_id: str, persona: str) -> bool:
        """Tell the human-facing channel that the turn failed."""
        return await self.push_text(session_id, persona, GENERIC_FAILURE)

    # ── Detached lanes ──

    def push_text_nowait(self, session_id: str, persona: str, text: str) -> asyncio.Task:
        """Queue a chat line behind earlier lines for the same persona and return at once."""
        return self._enqueue(session_id, persona, lambda: self.push_text(session_id, persona, text))

    def emit_nowait(
        self,
        session_id: str,
        created_by: str,
        character_id: str,
        event_name: EventName,
        metadata: dict[str, Any] | None = None,
    ) -> asyncio.Task:
        """Queue an event on the session's viewer channel and return at once."""
        return self._enqueue(
            session_id,
            GOD_CHANNEL,
            lambda: self.emit(session_id, created_by, character_id, event_name, metadata),
        )

    async def drain(self, session_id: str | None = None) -> None:
        """Wait for detached pushes of one session (or all sessions) to settle."""
        if session_id is None:
            tasks = [task for tasks in self._pending.values() for task in tasks]
        else:
            tasks = list(self._pending.get(session_id, ()))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _enqueue(
        self,
        session_id: str,
        channel: str,
        push: Callable[[], Awaitable[bool]],
    ) -> asyncio.Task:
        key = (session_id, (channel or "").strip().lower())
        previous = self._lanes.get(key)

        async def run() -> bool:
            if previous is not None:
                await asyncio.wait([previous])
            return await push()

        task = asyncio.create_task(run())
        self._lanes[key] = task
        self._pending.setdefault(session_id, set()).add(task)
        task.add_done_callback(functools.partial(self._settled, key))
        return task

    def _settled(self, key: tuple[str, str], task: asyncio.Task) -> None:
        if self._lanes.get(key) is task:
            del self._lanes[key]
        session_id = key[0]
        tasks = self._pending.get(session_id)
        if tasks is not None:
            tasks.discard(task)
            if not tasks:
                del self._pending[session_id]
