"""Administrative commands addressed to the bot (`@bot <command> [args...]`)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Literal

from loguru import logger as default_logger

from mimic import __version__
from mimic.agent.mentions import is_addressed
from mimic.bus.events import ChatMessage, CommandInvocation, CommandKey, Identity

if TYPE_CHECKING:
    from mimic.storage.db import Database

_HELP_FLAGS = {
    "-h",
    "--help",
}

ReplyCallback = Callable[[str, str], Awaitable[None]]
Handler = Callable[[CommandInvocation], Awaitable[None]]


def is_help_flag(token: str) -> bool:
    """Return True when a token asks for a command's description."""
    return token in _HELP_FLAGS


def wants_help(arguments: tuple[str, ...]) -> bool:
    return any(is_help_flag(arg) for arg in arguments)


@dataclass(frozen=True)
class Command:
    handler: Handler
    description: str


class CommandDispatcher:
    """Resolves `@bot <keyword>` messages against the command table and runs them."""

    def __init__(self, store: Database, reply: ReplyCallback, logger=None):
        self.store = store
        self._reply = reply
        self.logger = logger or default_logger
        self.commands: dict[CommandKey, Command] = {
            CommandKey.PURGE: Command(self._purge, "Delete every message I have stored for you"),
            CommandKey.HELP: Command(self._help, "List available commands"),
            CommandKey.VERSION: Command(self._version, "Show which version of me is running"),
        }

    def lookup(self, keyword: str) -> CommandKey | None:
        """Exact-match a keyword against the registered commands."""
        try:
            key = CommandKey(keyword)
        except ValueError:
            return None
        return key if key in self.commands else None

    def resolve(self, msg: ChatMessage, identity: Identity | None) -> CommandInvocation | Literal[False]:
        tokens = msg.tokens
        if not is_addressed(tokens, identity):
            return False
        rest = tokens[1:]
        if not rest:
            return False
        key = self.lookup(rest[0])
        if key is None:
            return False
        return CommandInvocation(
            handler_key=key,
            description=self.commands[key].description,
            arguments=tuple(rest[1:]),
            user=msg.user,
            channel=msg.channel,
            raw_tokens=tuple(tokens),
        )

    async def execute(self, invocation: CommandInvocation) -> None:
        """Run a resolved command, answering with its description if a help flag is present."""
        if wants_help(invocation.arguments):
            keyword = invocation.raw_tokens[1] if len(invocation.raw_tokens) > 1 else invocation.handler_key.value
            key = self.lookup(keyword) or invocation.handler_key
            await self._reply(self.commands[key].description, invocation.channel)
            return

        self.logger.info(f"Running command '{invocation.handler_key.value}' for {invocation.user}")
        await self.commands[invocation.handler_key].handler(invocation)

    def help_text(self) -> str:
        return "\n".join(f"{key.value}: {command.description}" for key, command in self.commands.items())

    # ==================== Handlers ====================

    async def _purge(self, invocation: CommandInvocation) -> None:
        result = await self.store.remove_all(invocation.user)
        if not result.success:
            self.logger.error(f"Purge failed for {invocation.user}: {result.error}")
            return
        await self._reply(
            f"<@{invocation.user}>, removed {result.count} stored message(s).",
            invocation.channel,
        )

    async def _help(self, invocation: CommandInvocation) -> None:
        await self._reply(self.help_text(), invocation.channel)

    async def _version(self, invocation: CommandInvocation) -> None:
        await self._reply(f"mimic {__version__}", invocation.channel)
