"""Drives one inbound message through routing, replies and hand-offs."""

from __future__ import annotations

import asyncio
import weakref
from dataclasses import dataclass

from loguru import logger

from huddle.agent.context import TurnContext
from huddle.agent.persona_agent import PersonaAgent
from huddle.agent.router import Router
from huddle.bus import ChatMode, InboundMessage, MessageBus
from huddle.notify import EMPTY_SENTINEL, Notifier
from huddle.personas import PersonaRegistry
from huddle.storage import HuddleStore

DEFAULT_MAX_RECURSIONS = 10


@dataclass(frozen=True)
class TurnReply:
    """A persona reply produced while handling one inbound message."""

    persona: str
    body: str
    depth: int

    @property
    def empty(self) -> bool:
        return self.body == EMPTY_SENTINEL


class Orchestrator:
    """
    The room's conversation driver.

    Each inbound message becomes a work item ``(body, sender, depth)``. The
    item is persisted, routed to a persona, answered, and the answer is
    persisted and pushed. In recursive mode the stored answer becomes the
    next work item, attributed to the persona that wrote it, until ``depth``
    reaches ``max_recursions``; a cap of 0 or 1 therefore yields a single
    reply.

    A failure anywhere in that sequence stops the chain, sends one generic
    failure line to the human-facing channel and re-raises. Messages that
    were already persisted stay persisted.
    """

    def __init__(
        self,
        store: HuddleStore,
        router: Router,
        agent: PersonaAgent,
        notifier: Notifier,
        personas: PersonaRegistry,
        max_recursions: int = DEFAULT_MAX_RECURSIONS,
        history_limit: int = 20,
        bus: MessageBus | None = None,
    ):
        self.store = store
        self.router = router
        self.agent = agent
        self.notifier = notifier
        self.personas = personas
        self.max_recursions = max(0, max_recursions)
        self.history_limit = history_limit
        self.bus = bus
        self._running = False
        # Entries vanish once no turn holds or awaits the lock.
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._active_tasks: set[asyncio.Task] = set()

    # ── Public API ──

    async def handle(self, inbound: InboundMessage) -> list[TurnReply]:
        """Process one inbound message and every hand-off it triggers."""
        async with self._get_session_lock(inbound.session_key):
            try:
                replies = await self._run_chain(inbound)
            except Exception:
                logger.exception(f"Turn failed for session {inbound.session_id}")
                # Queued lines settle first so the failure notice arrives last.
                await self.notifier.drain(inbound.session_id)
                await self.notifier.push_failure(inbound.session_id, self._human_channel(inbound))
                raise
            await self.notifier.drain(inbound.session_id)
            return replies

    async def process_direct(
        self,
        body: str,
        session_id: str = "cli:default",
        sender_id: str = "user",
        persona_id: str = "",
        chat_mode: ChatMode = ChatMode.RECURSIVE,
        sender_wallet: str | None = None,
    ) -> list[TurnReply]:
        """Handle a message without going through the bus (CLI, HTTP turn endpoint)."""
        inbound = InboundMessage(
            session_id=session_id,
            sender_id=sender_id,
            persona_id=persona_id or self.personas.default.name,
            body=body,
            chat_mode=chat_mode,
            sender_wallet=sender_wallet,
        )
        return await self.handle(inbound)

    async def run(self) -> None:
        """Consume the bus until stopped. Sessions are handled concurrently, each in order."""
        if self.bus is None:
            raise RuntimeError("Orchestrator.run() needs a message bus")
        self._running = True
        logger.info(f"Orchestrator started (personas={', '.join(self.personas.names)})")

        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            task = asyncio.create_task(self._handle_queued(msg))
            self._active_tasks.add(task)
            task.add_done_callback(self._active_tasks.discard)

    def stop(self) -> None:
        """Signal the consumer loop to stop and cancel in-flight turns."""
        self._running = False
        for task in list(self._active_tasks):
            task.cancel()

    # ── Internal ──

    def _get_session_lock(self, session_key: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_key)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_key] = lock
        return lock

    def _human_channel(self, inbound: InboundMessage) -> str:
        persona = self.personas.get(inbound.persona_id)
        return persona.name if persona else self.personas.default.name

    async def _handle_queued(self, msg: InboundMessage) -> None:
        try:
            await self.handle(msg)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Already reported to the viewer by handle().
            logger.error(f"Dropped message for {msg.session_id}: {e}")

    async def _resolve_wallets(self, owner: str) -> dict[str, str]:
        wallets: dict[str, str] = {}
        for persona in self.personas:
            wallet = await self.store.get_wallet(owner, persona.name)
            if wallet is not None:
                wallets[persona.name] = wallet.address
        return wallets

    async def _run_chain(self, inbound: InboundMessage) -> list[TurnReply]:
        session_id = inbound.session_id
        owner = inbound.sender_id
        recursive = ChatMode(inbound.chat_mode) == ChatMode.RECURSIVE
        replies: list[TurnReply] = []

        body, sender, depth = inbound.body, inbound.sender_id, 1
        stored = await self.store.append_message(
            session_id,
            sender,
            body,
            created_by=owner,
            character_id=inbound.persona_id,
            metadata=inbound.metadata,
        )
        while True:
            context = TurnContext(
                session_id=session_id,
                created_by=owner,
                sender=sender,
                wallets=await self._resolve_wallets(owner),
                sender_wallet=inbound.sender_wallet,
                depth=depth,
            )
            history = [
                m for m in await self.store.history(session_id, self.history_limit)
                if m.seq != stored.seq
            ]

            name = await self.router.select(history, body, context)
            persona = self.personas.get(name) or self.personas.default
            logger.info(f"[{session_id}] depth {depth}: {sender} -> {persona.name}")

            reply = await self.agent.respond(persona, history, body, context)
            # A reply is stored once; the next work item reads it from there.
            stored = await self.store.append_message(
                session_id,
                persona.name,
                reply,
                created_by=owner,
                character_id=persona.name,
                metadata={"depth": depth},
            )
            replies.append(TurnReply(persona.name, reply, depth))

            if reply == EMPTY_SENTINEL:
                logger.info(f"[{session_id}] {persona.name} had nothing to say; not pushed")
            else:
                self.notifier.push_text_nowait(session_id, persona.name, reply)

            if not recursive or depth >= self.max_recursions:
                break
            body, sender, depth = reply, persona.name, depth + 1

        if recursive and depth >= self.max_recursions:
            logger.info(f"[{session_id}] chain stopped at depth cap {self.max_recursions}")
        return replies
