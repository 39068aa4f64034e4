"""Bot loop: one instance per team, wiring transport, store and generator together."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from mimic.agent.ingest import IngestionFilter
from mimic.agent.mentions import parse_mention
from mimic.agent.pipeline import GenerationPipeline
from mimic.bus.events import ChatMessage, Identity, WriteResult
from mimic.bus.queue import MessageBus
from mimic.channels.base import BaseChannel
from mimic.channels.commands import CommandDispatcher
from mimic.config import DEFAULT_LIMIT, TeamConfig
from mimic.providers.base import TextGenerator
from mimic.utils.errors import ConfigurationError
from mimic.utils.logger import get_team_logger


class Bot:
    """Markov chain chat bot for a single team.

    Inbound messages are classified one at a time, in arrival order: generation
    request, then command, then storage. The work each one triggers (store
    queries, generation, writes) runs as its own task so intake never waits on it.
    """

    def __init__(
        self,
        team: TeamConfig,
        default_limit: int = DEFAULT_LIMIT,
        *,
        bus: MessageBus | None = None,
        store: Any = None,
        generator: TextGenerator | None = None,
        channel: BaseChannel | None = None,
        logger: Any = None,
    ):
        missing = team.missing_fields()
        if missing:
            raise ConfigurationError(f'A bot cannot be created without a "{missing[0]}"')

        self.team = team
        self.limit = team.limit or default_limit
        self.logger = logger or get_team_logger(team.name)
        self.bus = bus or MessageBus()

        if store is None:
            from mimic.storage.db import get_db
            store = get_db(team.connection)
        self.store = store

        if generator is None:
            from mimic.providers.markov_provider import MarkovProvider
            generator = MarkovProvider()
        self.generator = generator

        if channel is None:
            from mimic.channels.slack import SlackChannel
            channel = SlackChannel(team, self.bus)
        self.channel = channel
        self.channel.on_connected(self._on_connected)

        self.identity: Identity | None = None
        self.pipeline = GenerationPipeline(self.store, self.generator, self.bus.send_message, self.logger)
        self.commands = CommandDispatcher(self.store, self.bus.send_message, self.logger)
        self.ingestion = IngestionFilter(self.store, team.ignored_subtypes)

        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._inflight: set[asyncio.Task] = set()

    async def _on_connected(self, identity: Identity) -> None:
        if self.identity is None:
            self.identity = identity
            self.logger.info(f"{self.team.name} bot has connected")
        elif identity.id != self.identity.id:
            self.logger.warning(f"Reconnected as {identity.id}, keeping identity {self.identity.id}")

    # ==================== Dispatch ====================

    async def dispatch(self, msg: ChatMessage) -> asyncio.Task | None:
        """Classify one message and start the work it calls for.

        Returns the task running that work, or None when nothing is left to do.
        """
        request = await parse_mention(msg, self.identity, self.limit, self.pipeline.deny)
        if request:
            return self._spawn(self.pipeline.run(request), f"generate for {request.target_user}")
        if request is None:
            return None

        invocation = self.commands.resolve(msg, self.identity)
        if invocation:
            return self._spawn(self.commands.execute(invocation), f"command {invocation.handler_key.value}")

        if self.ingestion.warrants_save(msg):
            return self._spawn(self._save(msg), "save message")
        return None

    async def _save(self, msg: ChatMessage) -> WriteResult | None:
        result = await self.ingestion.ingest(msg)
        if result is not None and not result.success:
            self.logger.error(f"Failed to store message from {msg.user} in {msg.channel}: {result.error}")
        return result

    def _spawn(self, coro: Coroutine[Any, Any, Any], label: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=label)
        self._inflight.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.opt(exception=exc).error(f"{task.get_name()} failed: {exc}")

    # ==================== Lifecycle ====================

    async def run(self) -> None:
        self._running = True
        self.logger.info("Bot loop started")

        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            try:
                await self.dispatch(msg)
            except Exception as e:
                self.logger.error(f"Error processing message: {e}")

    async def _dispatch_outbound(self) -> None:
        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_outbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self.channel.send(msg)

    async def start(self) -> None:
        self._running = True
        self._tasks = [
            asyncio.create_task(self.run(), name=f"{self.team.name}:inbound"),
            asyncio.create_task(self._dispatch_outbound(), name=f"{self.team.name}:outbound"),
            asyncio.create_task(self.channel.start(), name=f"{self.team.name}:transport"),
        ]
        try:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        self._running = False
        self.logger.info("Bot stopping")
        for task in [*self._tasks, *self._inflight]:
            task.cancel()
        try:
            await self.channel.stop()
        except Exception as e:
            self.logger.error(f"Error stopping transport: {e}")
        await self.store.close()
