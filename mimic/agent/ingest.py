"""Ingestion filter: which chat messages end up in the store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from mimic.bus.events import ChatMessage, StoredMessage, WriteResult

if TYPE_CHECKING:
    from mimic.storage.db import Database

# TODO: message_changed / message_deleted events carry no top-level text or user and are
# skipped by the user check; edits could update the stored record instead.
DEFAULT_IGNORED_SUBTYPES = frozenset({"file_share"})


class IngestionFilter:
    """Stores ordinary chat traffic, skipping subtypes that are not plain user text."""

    def __init__(self, store: Database, ignored_subtypes: Iterable[str] = DEFAULT_IGNORED_SUBTYPES):
        self.store = store
        self.ignored_subtypes = frozenset(ignored_subtypes)

    def warrants_save(self, msg: ChatMessage) -> bool:
        if msg.subtype and msg.subtype in self.ignored_subtypes:
            return False
        return bool(msg.user and msg.channel and msg.text.strip())

    async def ingest(self, msg: ChatMessage) -> WriteResult | None:
        """Persist an eligible message. Returns None when the message was skipped."""
        if not self.warrants_save(msg):
            return None
        return await self.store.insert(StoredMessage.from_chat(msg))
