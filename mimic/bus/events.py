"""Event types for the message bus."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def ts_to_datetime(ts: Any) -> datetime:
    """Convert a numeric epoch-seconds value ("1503435956.000247") to an aware UTC datetime."""
    if isinstance(ts, datetime):
        return ts
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


@dataclass
class Identity:
    """The bot's own platform identity, known once the transport connects."""
    name: str
    id: str


@dataclass
class ChatMessage:
    """Message event received from the chat platform."""
    channel: str
    user: str
    text: str
    type: str = "message"
    subtype: str | None = None
    ts: str | None = None
    team: str | None = None

    @classmethod
    def from_event(cls, event: dict[str, Any], team: str | None = None) -> ChatMessage:
        """Build a message from a raw RTM event payload."""
        return cls(
            channel=event.get("channel") or "",
            user=event.get("user") or "",
            text=event.get("text") or "",
            type=event.get("type", "message"),
            subtype=event.get("subtype"),
            ts=event.get("ts"),
            team=event.get("team") or team,
        )

    @property
    def tokens(self) -> list[str]:
        return self.text.split()


@dataclass(frozen=True)
class StoredMessage:
    """A persisted message record. The timestamp never changes after insert."""
    type: str
    channel: str
    user: str
    text: str
    ts: datetime
    team: str | None = None

    @classmethod
    def from_chat(cls, msg: ChatMessage) -> StoredMessage:
        ts = ts_to_datetime(msg.ts) if msg.ts else datetime.now(timezone.utc)
        return cls(
            type=msg.type,
            channel=msg.channel,
            user=msg.user,
            text=msg.text,
            ts=ts,
            team=msg.team,
        )


@dataclass(frozen=True)
class GenerationRequest:
    """Resolved intent to produce synthetic text for a user."""
    target_user: str
    channel: str
    limit: int


class CommandKey(str, Enum):
    PURGE = "purge"
    HELP = "help"
    VERSION = "version"


@dataclass(frozen=True)
class CommandInvocation:
    """Administrative command resolved from a message addressed to the bot."""
    handler_key: CommandKey
    description: str
    arguments: tuple[str, ...]
    user: str
    channel: str
    raw_tokens: tuple[str, ...] = ()


@dataclass
class OutboundMessage:
    """Message to send to a chat channel."""
    channel: str
    content: str


@dataclass
class WriteResult:
    """Outcome of a store write."""
    success: bool
    count: int = 0
    error: str | None = None
