"""Markov chain generator backed by markovify."""

import asyncio
from itertools import islice

import markovify
from loguru import logger

from mimic.providers.base import TextGenerator
from mimic.utils.errors import GenerationError


class MarkovProvider(TextGenerator):
    """Word-level Markov chain built fresh from each corpus."""

    def __init__(self, state_size: int = 1):
        self.state_size = max(1, state_size)

    async def generate(self, seed_text: str, max_length: int) -> str:
        return await asyncio.to_thread(self._generate_sync, seed_text, max_length)

    def _generate_sync(self, seed_text: str, max_length: int) -> str:
        if not seed_text.split():
            raise GenerationError("corpus has no words")

        # well_formed=False: chat text is full of quotes and brackets (<@U123>).
        model = markovify.Text(
            seed_text,
            state_size=self.state_size,
            retain_original=False,
            well_formed=False,
        )
        words = list(islice(model.chain.gen(), max(1, max_length)))
        logger.debug(f"Generated {len(words)} word(s) from {len(seed_text)} chars of corpus")
        return " ".join(words)
