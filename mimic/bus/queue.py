"""Async queues between a team's transport and its bot."""

import asyncio

from loguru import logger

from mimic.bus.events import ChatMessage, OutboundMessage


class MessageBus:
    """Per-team message bus: the transport feeds `inbound`, the bot feeds `outbound`."""

    def __init__(self, inbound_maxsize: int = 200, outbound_maxsize: int = 200):
        self.inbound: asyncio.Queue[ChatMessage] = asyncio.Queue(maxsize=inbound_maxsize)
        self.outbound: asyncio.Queue[OutboundMessage] = asyncio.Queue(maxsize=outbound_maxsize)

    async def publish_inbound(self, msg: ChatMessage) -> None:
        logger.debug(f"Bus <- inbound [{msg.channel}] from {msg.user or '?'} ({len(msg.text)} chars)")
        await self.inbound.put(msg)

    async def consume_inbound(self) -> ChatMessage:
        msg = await self.inbound.get()
        logger.debug(f"Bus -> bot [{msg.channel}] (pending: {self.inbound.qsize()})")
        return msg

    async def send_message(self, text: str, channel: str) -> None:
        """Queue a reply for the transport."""
        await self.publish_outbound(OutboundMessage(channel=channel, content=text))

    async def publish_outbound(self, msg: OutboundMessage) -> None:
        logger.debug(f"Bus <- outbound [{msg.channel}] ({len(msg.content)} chars)")
        await self.outbound.put(msg)

    async def consume_outbound(self) -> OutboundMessage:
        msg = await self.outbound.get()
        logger.debug(f"Bus -> transport [{msg.channel}] (pending: {self.outbound.qsize()})")
        return msg

    def drain_outbound(self) -> list[OutboundMessage]:
        """Pop every queued outbound message without waiting."""
        drained = []
        while not self.outbound.empty():
            drained.append(self.outbound.get_nowait())
        return drained
