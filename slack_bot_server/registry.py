"""
BotRegistry - running bots by key.
"""

from typing import Dict, Iterator, Optional

from .errors import DuplicateBotError


class BotRegistry:
    """Maps bot keys to bot instances. Keys are compared as strings."""

    def __init__(self):
        self._bots: Dict[str, object] = {}

    def get(self, key) -> Optional[object]:
        return self._bots.get(str(key))

    def put(self, bot) -> None:
        """Register a bot; an existing key is never overwritten."""
        key = str(bot.key)
        if key in self._bots:
            raise DuplicateBotError(key)
        self._bots[key] = bot

    def remove(self, key) -> Optional[object]:
        return self._bots.pop(str(key), None)

    def __contains__(self, key) -> bool:
        return str(key) in self._bots

    def __len__(self) -> int:
        return len(self._bots)

    def __iter__(self) -> Iterator:
        return iter(list(self._bots.values()))
