"""Logging setup."""

import sys

from loguru import logger

_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[team]}</magenta> | <cyan>{name}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str = "INFO") -> None:
    logger.remove()
    logger.configure(extra={"team": "-"})
    logger.add(sys.stderr, level=level.upper(), format=_FORMAT)


def get_team_logger(team: str):
    """Logger handed to a bot instance; every record carries the team name."""
    return logger.bind(team=team)


async def shutdown_logging() -> None:
    """Flush pending log records before the process exits."""
    await logger.complete()
