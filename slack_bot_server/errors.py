"""
Exceptions raised by slack-bot-server.
"""

from typing import Optional


class SlackBotServerError(Exception):
    """Base class for every error raised by this package."""


class InvalidToken(SlackBotServerError):
    """Slack rejected the bot token during the identity check."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        super().__init__(f"Slack rejected the bot token: {error or 'unknown error'}")


class SlackApiError(SlackBotServerError):
    """A Web API method answered with ``ok: false``."""

    def __init__(self, method: str, error: Optional[str], response: Optional[dict] = None):
        self.method = method
        self.error = error
        self.response = response or {}
        super().__init__(f"Slack API error in {method}: {error}")


class DuplicateBotError(SlackBotServerError, KeyError):
    """A bot with the same key is already registered."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)

    def __str__(self) -> str:
        return f"A bot with key {self.key!r} is already registered"
