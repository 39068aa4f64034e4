"""mimic - Entry point. Starts one bot per configured team."""

import argparse
import asyncio
import signal
import sys

from loguru import logger
from pydantic import ValidationError

from mimic import __version__
from mimic.agent.loop import Bot
from mimic.config import Config, load_config
from mimic.utils.errors import ConfigurationError
from mimic.utils.logger import setup_logging, shutdown_logging


class Mimic:
    """Main application: builds and runs a bot for each team in the config."""

    def __init__(self, config: Config):
        self.config = config
        self.bots: list[Bot] = []
        self._tasks: list[asyncio.Task] = []

    def build_bots(self) -> list[Bot]:
        """Create a bot per team. A team with a bad config is skipped, the rest still start."""
        for index, raw in enumerate(self.config.teams):
            label = raw.get("name") if isinstance(raw, dict) else None
            try:
                team = self.config.parse_team(raw)
                bot = Bot(team, default_limit=self.config.limit)
            except ConfigurationError as e:
                logger.error(f"Team #{index} ({label or 'unnamed'}) not started: {e}")
                continue
            self.bots.append(bot)
        return self.bots

    async def start(self) -> None:
        logger.info(f"mimic {__version__} starting...")
        if not self.bots:
            self.build_bots()
        if not self.bots:
            logger.error("No bots configured, nothing to do")
            return

        for bot in self.bots:
            self._tasks.append(asyncio.create_task(bot.start()))
        logger.info(f"mimic running with {len(self.bots)} bot(s)")

        try:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        except asyncio.CancelledError:
            pass

    async def stop(self) -> None:
        logger.info("mimic stopping...")
        for bot in self.bots:
            try:
                await bot.stop()
            except Exception as e:
                logger.error(f"Error stopping {bot.team.name}: {e}")
        for task in self._tasks:
            task.cancel()
        logger.info("mimic stopped")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="mimic", description="Markov chain chat bot")
    parser.add_argument("config", nargs="?", default="config.yaml", help="path to config.yaml")
    parser.add_argument("--log-level", default=None, help="override the configured log level")
    parser.add_argument("--version", action="version", version=f"mimic {__version__}")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    setup_logging(args.log_level or "INFO")
    try:
        config = load_config(args.config)
    except ValidationError as e:
        logger.error(f"Invalid config {args.config}: {e}")
        raise SystemExit(1) from e
    if not args.log_level:
        setup_logging(config.log_level)

    app = Mimic(config)

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def shutdown():
        logger.info("Shutdown signal received")
        loop.create_task(app.stop())

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown)

    try:
        loop.run_until_complete(app.start())
    except KeyboardInterrupt:
        logger.info("Interrupted")
        loop.run_until_complete(app.stop())
    finally:
        loop.run_until_complete(shutdown_logging())
        loop.close()


if __name__ == "__main__":
    main()
