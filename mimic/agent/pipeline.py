"""Generation pipeline: stored messages -> corpus -> Markov text -> channel reply."""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

from loguru import logger as default_logger

from mimic.bus.events import GenerationRequest
from mimic.providers.base import TextGenerator

if TYPE_CHECKING:
    from mimic.storage.db import Database

DENIAL_TEXT = "I'm sorry, Dave. I'm afraid I can't do that"


def format_reply(user: str, text: str) -> str:
    return f"<@{user}> says: {text}"


class GenerationPipeline:
    """Turns a GenerationRequest into a posted reply."""

    def __init__(
        self,
        store: Database,
        generator: TextGenerator,
        reply: Callable[[str, str], Awaitable[None]],
        logger=None,
    ):
        self.store = store
        self.generator = generator
        self._reply = reply
        self.logger = logger or default_logger

    async def deny(self, channel: str) -> None:
        await self._reply(DENIAL_TEXT, channel)

    async def run(self, request: GenerationRequest) -> str | None:
        """Generate and post. Returns the posted text, or None when denied.

        Store and generator errors propagate; nothing is posted in that case.
        """
        messages = await self.store.find(user=request.target_user, limit=request.limit)
        if not messages:
            self.logger.info(f"No stored messages for {request.target_user}, denying")
            await self.deny(request.channel)
            return None

        corpus = " ".join(m.text for m in messages)
        self.logger.debug(
            f"Generating for {request.target_user} from {len(messages)} message(s), "
            f"limit={request.limit}"
        )
        text = await self.generator.generate(corpus, request.limit)
        reply = format_reply(request.target_user, text)
        await self._reply(reply, request.channel)
        return reply
