"""
Server configuration, read from explicit arguments or the environment.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_QUEUE_KEY = "slack_bot_server:queue"


@dataclass
class ServerConfig:
    """Configuration for a bot server.

    Loop:
        tick_interval: Seconds between queue polls (one instruction per tick)
        reconnect_delay: Seconds to wait before reconnecting a dropped bot.
            Zero reconnects immediately.

    Queue:
        redis_url: Redis URL for a shared queue. When unset the server uses an
            in-process queue that only local producers can reach.
        queue_key: Redis list key the instructions are stored under

    Optional:
        log_level: Level name used by ``Server.start``
    """

    tick_interval: float = 1.0
    reconnect_delay: float = 0.0
    redis_url: Optional[str] = None
    queue_key: str = DEFAULT_QUEUE_KEY
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Build a config from ``SLACK_BOT_SERVER_*`` environment variables."""
        env = os.environ
        return cls(
            tick_interval=float(env.get("SLACK_BOT_SERVER_TICK_INTERVAL", 1.0)),
            reconnect_delay=float(env.get("SLACK_BOT_SERVER_RECONNECT_DELAY", 0.0)),
            redis_url=env.get("SLACK_BOT_SERVER_REDIS_URL") or env.get("REDIS_URL"),
            queue_key=env.get("SLACK_BOT_SERVER_QUEUE_KEY", DEFAULT_QUEUE_KEY),
            log_level=env.get("SLACK_BOT_SERVER_LOG_LEVEL", "INFO"),
        )


def resolve_token(token: Optional[str] = None) -> str:
    """Return ``token`` or fall back to ``SLACK_BOT_TOKEN``."""
    token = token or os.environ.get("SLACK_BOT_TOKEN")
    if not token:
        raise ValueError("Missing SLACK_BOT_TOKEN")
    return token
