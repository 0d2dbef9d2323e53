"""
ConnectionSupervisor - owns one bot's RTM connection.

    DISCONNECTED --connect()--> CONNECTING --open--> CONNECTED --close--> CLOSED

While ``running`` is set, entering CLOSED (or failing to connect) starts the
next connection attempt. ``stop()`` clears ``running`` before closing, so a
stopped bot stays down. Reconnects are driven by a loop in one task, never by
recursion.
"""

import asyncio
import json
import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from .slack_api import RtmConnection

EventCallback = Callable[[str, Dict], Awaitable]

START_EVENT = "start"
FINISH_EVENT = "finish"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class ConnectionSupervisor:
    """Keeps one RTM connection alive and feeds its events to a callback.

    Events are handed to ``on_event`` one at a time, in delivery order; the
    next frame is not read until the callback has finished. A slow handler
    therefore holds up this bot, and since everything shares one event loop,
    every other bot and the server tick as well.
    """

    def __init__(
        self,
        web_api,
        on_event: EventCallback,
        connection_factory: Callable[[], RtmConnection] = RtmConnection,
        reconnect_delay: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.web_api = web_api
        self.on_event = on_event
        self.connection_factory = connection_factory
        self.reconnect_delay = reconnect_delay
        self.log = logger or logging.getLogger(__name__)

        self.running = False
        self.state = ConnectionState.DISCONNECTED
        self.connection: Optional[RtmConnection] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self.connection is not None

    def start(self) -> asyncio.Task:
        """Set the running flag and spawn the supervising task (idempotent)."""
        self.running = True
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._supervise())
        return self._task

    async def stop(self) -> None:
        """Suppress reconnects, close the socket and wait for the task to end."""
        self.running = False
        self.log.info("closing connection")
        connection = self.connection
        if connection is not None:
            await connection.close()

        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            await task
        self.log.info("closed")

    async def send(self, event: Dict) -> int:
        """Send an event over the streaming connection."""
        if not self.connected:
            raise ConnectionError("not connected")
        return await self.connection.send(event)

    async def _supervise(self) -> None:
        while self.running:
            await self._run_once()
            if self.running and self.reconnect_delay:
                await asyncio.sleep(self.reconnect_delay)

    async def _run_once(self) -> None:
        self.state = ConnectionState.CONNECTING
        try:
            connection = self.connection_factory()
            url = await self.web_api.rtm_connect()
            await connection.connect(url)
        except Exception as e:
            self.log.warning(f"connection attempt failed: {e}", exc_info=True)
            self.state = ConnectionState.DISCONNECTED
            return

        if not self.running:
            await connection.close()
            self.state = ConnectionState.DISCONNECTED
            return

        self.connection = connection
        self.state = ConnectionState.CONNECTED
        self.log.info("connected")
        await self.on_event(START_EVENT, {"type": START_EVENT})

        try:
            async for raw in connection.frames():
                await self._handle_frame(raw)
        except Exception as e:
            self.log.warning(f"connection failed: {e}", exc_info=True)
        finally:
            self.connection = None

        self.state = ConnectionState.CLOSED
        self.log.info("disconnected")
        await self.on_event(FINISH_EVENT, {"type": FINISH_EVENT})

    async def _handle_frame(self, raw: str) -> None:
        self.log.debug(raw)
        try:
            data = json.loads(raw)
        except ValueError:
            self.log.warning(f"dropping undecodable frame: {raw!r}")
            return

        if not isinstance(data, dict) or not data.get("type"):
            return
        await self.on_event(data["type"], data)
