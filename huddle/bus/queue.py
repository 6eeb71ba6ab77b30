"""Async message queue for decoupled transport-orchestrator communication."""

import asyncio

from huddle.bus.events import InboundMessage


class MessageBus:
    """
    Inbound queue between transports (gateway, CLI) and the orchestrator.

    Replies do not flow back through the bus; they are persisted and pushed
    to live viewers by the orchestrator itself.
    """

    def __init__(self):
        self.inbound: asyncio.Queue[InboundMessage] = asyncio.Queue()

    async def publish_inbound(self, msg: InboundMessage) -> None:
        """Publish a message from a transport to the orchestrator."""
        await self.inbound.put(msg)

    async def consume_inbound(self) -> InboundMessage:
        """Consume the next inbound message (blocks until available)."""
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        """Number of pending inbound messages."""
        return self.inbound.qsize()
