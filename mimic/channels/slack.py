"""Slack channel over the RTM websocket API, using aiohttp."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

import aiohttp
from loguru import logger

from mimic.bus.events import Identity, OutboundMessage
from mimic.bus.queue import MessageBus
from mimic.channels.base import BaseChannel
from mimic.config import TeamConfig

SLACK_API_BASE = "https://slack.com/api"


class SlackChannel(BaseChannel):
    """Slack RTM client: `rtm.connect` over HTTPS, then events over a websocket."""

    name = "slack"

    def __init__(self, config: TeamConfig, bus: MessageBus):
        super().__init__(config, bus)
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._frame_ids = itertools.count(1)
        self.team_id: str | None = None

    async def start(self) -> None:
        if not self.config.token:
            logger.error("Slack token not configured")
            return

        self._running = True
        self._session = aiohttp.ClientSession()
        logger.info(f"Starting Slack RTM client for {self.config.name}...")
        try:
            while self._running:
                try:
                    await self._run_once()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(f"Slack RTM connection error: {e}")
                if self._running:
                    logger.info(f"Slack RTM reconnecting in {self.config.reconnect_delay}s")
                    await asyncio.sleep(self.config.reconnect_delay)
        finally:
            await self._close()

    async def stop(self) -> None:
        self._running = False
        logger.info("Stopping Slack RTM client...")
        await self._close()

    async def _close(self) -> None:
        if self._ws is not None and not self._ws.closed:
            await self._ws.close()
        self._ws = None
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _rtm_connect(self) -> dict[str, Any]:
        assert self._session is not None
        headers = {"Authorization": f"Bearer {self.config.token}"}
        async with self._session.post(f"{SLACK_API_BASE}/rtm.connect", headers=headers) as resp:
            data = await resp.json()
        if not data.get("ok"):
            raise RuntimeError(data.get("error", str(data)))
        return data

    async def _run_once(self) -> None:
        data = await self._rtm_connect()
        me = data.get("self") or {}
        self.team_id = (data.get("team") or {}).get("id")
        identity = Identity(name=me.get("name", ""), id=me.get("id", ""))

        assert self._session is not None
        async with self._session.ws_connect(data["url"], heartbeat=30) as ws:
            self._ws = ws
            try:
                async for frame in ws:
                    if frame.type == aiohttp.WSMsgType.TEXT:
                        await self._on_frame(frame.json(), identity)
                    elif frame.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                        break
            finally:
                self._ws = None
        logger.warning("Slack RTM websocket closed")

    async def _on_frame(self, event: dict[str, Any], identity: Identity) -> None:
        kind = event.get("type")
        if kind == "hello":
            await self._handle_connected(identity)
        elif kind == "message":
            await self._handle_event(event, team=self.team_id)
        elif kind == "goodbye":
            logger.info("Slack RTM sent goodbye")
            if self._ws is not None:
                await self._ws.close()
        elif "reply_to" in event and not event.get("ok", True):
            logger.warning(f"Slack rejected message {event.get('reply_to')}: {event.get('error')}")

    async def send(self, msg: OutboundMessage) -> None:
        if self._ws is None or self._ws.closed:
            logger.warning(f"Slack: not connected, dropping message to {msg.channel}")
            return
        logger.debug(f"Slack: sending {len(msg.content)} chars to channel={msg.channel}")
        try:
            await self._ws.send_json(
                {
                    "id": next(self._frame_ids),
                    "type": "message",
                    "channel": msg.channel,
                    "text": msg.content,
                }
            )
        except Exception as e:
            logger.error(f"Error sending Slack message: {e}")
