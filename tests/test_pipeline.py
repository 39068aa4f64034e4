from __future__ import annotations

from datetime import datetime, timezone

import pytest

from mimic.agent.pipeline import DENIAL_TEXT, GenerationPipeline
from mimic.bus.events import GenerationRequest, StoredMessage
from mimic.providers.base import TextGenerator


class StubStore:
    def __init__(self, texts: list[str]):
        self._texts = texts
        self.queries: list[tuple[str, int]] = []

    async def find(self, user: str, limit: int = 150) -> list[StoredMessage]:
        self.queries.append((user, limit))
        return [
            StoredMessage(type="message", channel="C1", user=user, text=t, ts=datetime.now(timezone.utc))
            for t in self._texts
        ]


class BrokenStore:
    async def find(self, user: str, limit: int = 150) -> list[StoredMessage]:
        raise RuntimeError("database is locked")


class StubGenerator(TextGenerator):
    def __init__(self, output: str = "generated words"):
        self.output = output
        self.calls: list[tuple[str, int]] = []

    async def generate(self, seed_text: str, max_length: int) -> str:
        self.calls.append((seed_text, max_length))
        return self.output


class FailingGenerator(TextGenerator):
    async def generate(self, seed_text: str, max_length: int) -> str:
        raise ValueError("chain exploded")


class ReplyRecorder:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def __call__(self, text: str, channel: str) -> None:
        self.sent.append((text, channel))


@pytest.mark.asyncio
async def test_empty_corpus_denies_without_generating() -> None:
    generator = StubGenerator()
    reply = ReplyRecorder()
    pipeline = GenerationPipeline(StubStore([]), generator, reply)

    result = await pipeline.run(GenerationRequest(target_user="U2", channel="C9", limit=10))

    assert result is None
    assert reply.sent == [(DENIAL_TEXT, "C9")]
    assert generator.calls == []


@pytest.mark.asyncio
async def test_corpus_is_space_joined_in_store_order() -> None:
    store = StubStore(["a", "b", "c"])
    generator = StubGenerator("b c a")
    reply = ReplyRecorder()
    pipeline = GenerationPipeline(store, generator, reply)

    await pipeline.run(GenerationRequest(target_user="U2", channel="C9", limit=40))

    assert store.queries == [("U2", 40)]
    assert generator.calls == [("a b c", 40)]
    [(text, channel)] = reply.sent
    assert channel == "C9"
    assert text.startswith("<@U2>")
    assert text.endswith("b c a")


@pytest.mark.asyncio
async def test_generator_failure_propagates_without_reply() -> None:
    reply = ReplyRecorder()
    pipeline = GenerationPipeline(StubStore(["a"]), FailingGenerator(), reply)

    with pytest.raises(ValueError, match="chain exploded"):
        await pipeline.run(GenerationRequest(target_user="U2", channel="C9", limit=10))

    assert reply.sent == []


@pytest.mark.asyncio
async def test_store_failure_propagates_without_reply() -> None:
    reply = ReplyRecorder()
    generator = StubGenerator()
    pipeline = GenerationPipeline(BrokenStore(), generator, reply)

    with pytest.raises(RuntimeError):
        await pipeline.run(GenerationRequest(target_user="U2", channel="C9", limit=10))

    assert reply.sent == []
    assert generator.calls == []
