"""Shared fixtures: a stubbed identity check, a fake Web API and fake RTM sockets."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from slack_bot_server.bot import Bot

BOT_USER_ID = "U123456"


class FakeConnection:
    """Stands in for RtmConnection; frames are fed by the test."""

    def __init__(self):
        self.url = None
        self.sent = []
        self.closed = False
        self._frames = None

    def _queue(self) -> asyncio.Queue:
        if self._frames is None:
            self._frames = asyncio.Queue()
        return self._frames

    async def connect(self, url):
        self.url = url
        self._queue()

    async def send(self, event):
        self.sent.append(event)
        return len(self.sent)

    async def frames(self):
        while True:
            raw = await self._queue().get()
            if raw is None:
                return
            yield raw

    def feed(self, data):
        self._queue().put_nowait(data if isinstance(data, str) else json.dumps(data))

    def drop(self):
        """Simulate Slack closing the socket."""
        self._queue().put_nowait(None)

    async def close(self):
        self.closed = True
        self._queue().put_nowait(None)


async def settle(rounds: int = 20):
    """Let tasks scheduled on the loop run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def identity():
    return {
        "ok": True,
        "user": "test_bot",
        "user_id": BOT_USER_ID,
        "team": "team name",
        "team_id": "T123456",
    }


@pytest.fixture
def auth_ok(identity):
    with patch("slack_bot_server.bot.auth_test", return_value=identity) as mock_auth:
        yield mock_auth


@pytest.fixture
def web_api():
    api = MagicMock()
    api.call = AsyncMock(return_value={"ok": True})
    api.post_message = AsyncMock(return_value={"ok": True})
    api.open_im = AsyncMock(return_value="D123")
    api.list_conversations = AsyncMock(return_value=[])
    api.rtm_connect = AsyncMock(return_value="wss://example.dev/slack")
    api.aclose = AsyncMock()
    return api


@pytest.fixture
def connections():
    """Connection factory that remembers every connection it built."""
    created = []

    def factory():
        connection = FakeConnection()
        created.append(connection)
        return connection

    factory.created = created
    return factory


@pytest.fixture
def make_bot(auth_ok, web_api, connections):
    def _make(bot_class=None, token="token", key="key", **kwargs):
        bot_class = bot_class or type("TestBot", (Bot,), {})
        kwargs.setdefault("connection_factory", connections)
        return bot_class(token=token, key=key, web_api=web_api, **kwargs)

    return _make
