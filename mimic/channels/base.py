"""Base transport interface for chat platforms."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from loguru import logger

from mimic.bus.events import ChatMessage, Identity, OutboundMessage
from mimic.bus.queue import MessageBus
from mimic.config import TeamConfig

ConnectedCallback = Callable[[Identity], Awaitable[None]]


class BaseChannel(ABC):
    """Abstract base class for chat transport implementations."""

    name: str = "base"

    def __init__(self, config: TeamConfig, bus: MessageBus):
        self.config = config
        self.bus = bus
        self.identity: Identity | None = None
        self._running = False
        self._connected_callback: ConnectedCallback | None = None

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> None:
        pass

    async def send_message(self, text: str, channel: str) -> None:
        await self.send(OutboundMessage(channel=channel, content=text))

    def on_connected(self, callback: ConnectedCallback) -> None:
        self._connected_callback = callback

    async def _handle_connected(self, identity: Identity) -> None:
        self.identity = identity
        logger.info(f"{self.name}: connected as {identity.name} ({identity.id})")
        if self._connected_callback:
            await self._connected_callback(identity)

    async def _handle_event(self, event: dict[str, Any], team: str | None = None) -> None:
        msg = ChatMessage.from_event(event, team=team)
        if self.identity and msg.user == self.identity.id:
            return
        logger.debug(f"{self.name}: publishing inbound message to bus (channel={msg.channel})")
        await self.bus.publish_inbound(msg)

    @property
    def is_running(self) -> bool:
        return self._running
