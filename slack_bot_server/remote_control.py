"""
RemoteControl - drive a running Server from any process sharing its queue.

Every call serializes one instruction and pushes it; there is no reply.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class InstructionType(str, Enum):
    ADD_BOT = "add_bot"
    REMOVE_BOT = "remove_bot"
    SAY = "say"
    SAY_TO = "say_to"
    BROADCAST = "broadcast"
    CALL = "call"


def instruction(tag: InstructionType, *args: Any) -> List:
    """Build the wire form of an instruction: ``[tag, *args]``."""
    return [tag.value, *args]


class RemoteControl:
    """Thin producer API over a queue shared with a Server."""

    def __init__(self, queue):
        self.queue = queue

    async def add_bot(self, *args: Any) -> None:
        """Ask the server to build a bot from ``args`` with its factory."""
        await self.queue.push(instruction(InstructionType.ADD_BOT, *args))

    async def remove_bot(self, key: str) -> None:
        await self.queue.push(instruction(InstructionType.REMOVE_BOT, key))

    async def say(self, key: str, options: Dict) -> None:
        await self.queue.push(instruction(InstructionType.SAY, key, options))

    async def say_to(self, key: str, user_id: str, options: Dict) -> None:
        await self.queue.push(instruction(InstructionType.SAY_TO, key, user_id, options))

    async def broadcast(self, key: str, options: Dict) -> None:
        await self.queue.push(instruction(InstructionType.BROADCAST, key, options))

    async def call(self, key: str, method: str, args: Optional[Dict] = None) -> None:
        await self.queue.push(instruction(InstructionType.CALL, key, method, args or {}))
