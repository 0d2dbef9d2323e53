"""
slack-bot-server: run and control many Slack bots from one process

Usage:
    from slack_bot_server import Bot, Server, RedisQueue, on_mention

    class EchoBot(Bot):
        username = "EchoBot"

        @on_mention
        async def echo(self, data):
            await self.reply(text=data["message"])

    server = Server(queue=RedisQueue())
    server.on_add(lambda token, key=None: EchoBot(token=token, key=key))
    server.start()

Elsewhere, with the same Redis:
    remote = RemoteControl(queue=RedisQueue())
    await remote.add_bot("xoxb-...", "team-42")
    await remote.say("team-42", {"channel": "C123", "text": "hello"})
"""

from .bot import DIRECT_MESSAGE, MENTION, Bot, on_direct_message, on_finish, on_mention, on_start
from .config import ServerConfig
from .connection import ConnectionState, ConnectionSupervisor
from .errors import DuplicateBotError, InvalidToken, SlackApiError, SlackBotServerError
from .events import HandlerTable, on
from .queues import LocalQueue, RedisQueue, build_queue
from .registry import BotRegistry
from .remote_control import InstructionType, RemoteControl
from .routing import DeliveryPath, choose_delivery_path
from .server import Server
from .simple_bot import SimpleBot

__all__ = [
    "Bot",
    "SimpleBot",
    "on",
    "on_mention",
    "on_direct_message",
    "on_start",
    "on_finish",
    "MENTION",
    "DIRECT_MESSAGE",
    "HandlerTable",
    "ConnectionState",
    "ConnectionSupervisor",
    "DeliveryPath",
    "choose_delivery_path",
    "BotRegistry",
    "LocalQueue",
    "RedisQueue",
    "build_queue",
    "InstructionType",
    "RemoteControl",
    "Server",
    "ServerConfig",
    "SlackBotServerError",
    "InvalidToken",
    "SlackApiError",
    "DuplicateBotError",
]
__version__ = "0.1.0"
