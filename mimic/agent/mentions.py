"""Mention parsing: decides whether a message asks the bot for a generated message."""

from __future__ import annotations

import re
from typing import Awaitable, Callable, Literal

from mimic.bus.events import ChatMessage, GenerationRequest, Identity

MENTION_PREFIX = "<@"
SELF_TARGET = "me"

_NON_ALNUM_RE = re.compile(r"[^0-9a-zA-Z]")
_LEADING_INT_RE = re.compile(r"^\s*\+?(\d+)")

DenyCallback = Callable[[str], Awaitable[None]]


def mention_id(token: str) -> str | None:
    """Return the user id a `<@U123>` / `<@U123|name>` token refers to."""
    if not token.startswith(MENTION_PREFIX):
        return None
    body = token[len(MENTION_PREFIX):].split("|", 1)[0]
    user_id = _NON_ALNUM_RE.sub("", body)
    return user_id or None


def is_addressed(tokens: list[str], identity: Identity | None) -> bool:
    """True when the first token is exactly `<@BOTID>` or `<@BOTID|name>`. Unknown identity never matches."""
    if identity is None or not tokens:
        return False
    head = tokens[0]
    own = f"{MENTION_PREFIX}{identity.id}"
    return head == f"{own}>" or (head.startswith(f"{own}|") and head.endswith(">"))


def parse_limit(token: str | None, default: int) -> int:
    """Leading base-10 digits of `token`, or `default` when missing or not positive."""
    if not token:
        return default
    match = _LEADING_INT_RE.match(token)
    if not match:
        return default
    value = int(match.group(1))
    return value if value > 0 else default


async def parse_mention(
    msg: ChatMessage,
    identity: Identity | None,
    default_limit: int,
    deny: DenyCallback,
) -> GenerationRequest | None | Literal[False]:
    """Classify a message against the bot's identity.

    Returns a GenerationRequest when the bot is asked to generate for a user,
    None when the request was refused (the denial has been sent already), and
    False when the message is not a generation call at all.
    """
    tokens = msg.tokens
    if len(tokens) < 2 or not is_addressed(tokens, identity):
        return False

    target = tokens[1]
    if target == SELF_TARGET:
        target_user = msg.user
    elif target.startswith(MENTION_PREFIX):
        target_user = mention_id(target)
        if target_user is None:
            return False
        if target_user == identity.id:
            await deny(msg.channel)
            return None
    else:
        return False

    limit = parse_limit(tokens[2] if len(tokens) > 2 else None, default_limit)
    return GenerationRequest(target_user=target_user, channel=msg.channel, limit=limit)
