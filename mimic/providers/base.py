"""Text generator interface."""

from abc import ABC, abstractmethod


class TextGenerator(ABC):
    """Turns a seed corpus into one synthetic string."""

    @abstractmethod
    async def generate(self, seed_text: str, max_length: int) -> str:
        """Return generated text of at most `max_length` words.

        Output is not expected to be deterministic.
        """
