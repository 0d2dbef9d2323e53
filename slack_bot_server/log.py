"""
Logging helpers - bot-prefixed log lines and entry-point configuration.
"""

import logging
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class BotLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every record with ``[BOT/<name>]``.

    The name is looked up lazily on each record so that it picks up the bot's
    display name once the identity check has run.
    """

    def __init__(self, logger: logging.Logger, bot):
        super().__init__(logger, {})
        self.bot = bot

    def process(self, msg, kwargs):
        name = getattr(self.bot, "user", None) or getattr(self.bot, "key", "?")
        return f"[BOT/{name}] {msg}", kwargs


def configure_logging(level: Union[int, str] = logging.INFO, fmt: Optional[str] = None) -> None:
    """Install a stream handler on the root logger (used by ``Server.start``)."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=fmt or LOG_FORMAT)
