"""
Command queues - the conduit between RemoteControl producers and a Server.

Both queues share one contract: ``await push(item)`` appends, ``await pop()``
removes and returns the oldest item, or ``None`` straight away when empty.
"""

import json
import logging
from collections import deque
from typing import Any, Optional

import redis.asyncio as aioredis

from .config import DEFAULT_QUEUE_KEY

logger = logging.getLogger(__name__)


class LocalQueue:
    """In-process FIFO. Only producers in the same process can reach it."""

    def __init__(self):
        self._items = deque()

    async def push(self, value: Any) -> None:
        self._items.append(value)

    async def pop(self) -> Optional[Any]:
        try:
            return self._items.popleft()
        except IndexError:
            return None

    async def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class RedisQueue:
    """A Redis list shared by any number of producers and one server.

    Values are stored as JSON text: ``RPUSH`` to push, ``LPOP`` to pop.
    """

    def __init__(self, redis=None, key: str = DEFAULT_QUEUE_KEY, url: Optional[str] = None):
        """
        Args:
            redis: A ``redis.asyncio.Redis`` client. Built from ``url`` (or
                the default localhost server) when omitted.
            key: List key the queue lives under
            url: Redis URL used when no client is given
        """
        self.key = key
        if redis is None:
            redis = aioredis.from_url(url) if url else aioredis.Redis()
        self.redis = redis

    async def push(self, value: Any) -> None:
        await self.redis.rpush(self.key, json.dumps(value))

    async def pop(self) -> Optional[Any]:
        json_value = await self.redis.lpop(self.key)
        if json_value is None:
            return None
        if isinstance(json_value, bytes):
            json_value = json_value.decode("utf-8")
        return json.loads(json_value)

    async def clear(self) -> None:
        await self.redis.delete(self.key)

    async def aclose(self) -> None:
        await self.redis.aclose()


def build_queue(config) -> Any:
    """RedisQueue when the config names a Redis URL, else a LocalQueue."""
    if config.redis_url:
        logger.info(f"Using Redis queue at key {config.queue_key}")
        return RedisQueue(key=config.queue_key, url=config.redis_url)
    logger.info("Using local in-process queue")
    return LocalQueue()
