"""
Server - runs many bots on one event loop and obeys queued instructions.

Once per ``tick_interval`` the server pops at most one instruction from its
queue and applies it to the bot registry. Instructions are handled strictly
in queue order, one per tick.
"""

import asyncio
import inspect
import logging
import signal
import threading
from typing import Any, Callable, Optional

from .config import ServerConfig
from .log import configure_logging
from .queues import build_queue
from .registry import BotRegistry
from .remote_control import InstructionType
from .simple_bot import SimpleBot

BotFactory = Callable[..., Any]

BOT_METHODS = ("start", "stop")


async def maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


def is_bot(value) -> bool:
    """True if ``value`` exposes the start/stop/key bot capability set."""
    if value is None or getattr(value, "key", None) is None:
        return False
    return all(callable(getattr(value, name, None)) for name in BOT_METHODS)


def default_bot_factory(token: str, key: Optional[str] = None) -> SimpleBot:
    return SimpleBot(token=token, key=key)


class Server:
    """
    Hosts bots and processes instructions from a queue.

    Usage:
        server = Server(queue=RedisQueue())

        @server.on_add
        def build(token, key=None):
            return MyBot(token=token, key=key)

        server.start()
    """

    def __init__(
        self,
        queue=None,
        config: Optional[ServerConfig] = None,
        registry: Optional[BotRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            queue: Instruction queue. Built from ``config`` when omitted.
            config: Server configuration (defaults to ``ServerConfig()``)
            registry: Bot registry override
            logger: Logger for server events
        """
        self.config = config or ServerConfig()
        self.queue = queue if queue is not None else build_queue(self.config)
        self.bots = registry if registry is not None else BotRegistry()
        self.log = logger or logging.getLogger(__name__)

        self.running = False
        self._add_proc: BotFactory = default_bot_factory
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopping: Optional[asyncio.Event] = None

    def on_add(self, factory: BotFactory) -> BotFactory:
        """Set the factory used by ``add_bot``. Works as a decorator.

        The factory receives the ``add_bot`` arguments and returns a bot (or
        an awaitable resolving to one). Anything that is not a bot is ignored.
        """
        self._add_proc = factory
        return factory

    def bot(self, key):
        return self.bots.get(key)

    async def add_bot(self, *args):
        """
        Build a bot with the factory and register it.

        The bot is started straight away if the server is running. Errors
        from the factory (e.g. ``InvalidToken``) propagate to the caller.

        Returns:
            The registered bot, or None if nothing was added
        """
        bot = await maybe_await(self._add_proc(*args))
        if not is_bot(bot):
            self.log.warning(f"bot factory returned {bot!r}, ignoring")
            return None
        if bot.key in self.bots:
            self.log.warning(f"a bot with key {bot.key} already exists, ignoring {bot}")
            return None

        self.log.info(f"adding bot {bot}")
        self.bots.put(bot)
        if self.running:
            await self._start_bot(bot)
        return bot

    async def remove_bot(self, key) -> None:
        """Stop and unregister a bot. Unknown keys are logged and ignored."""
        bot = self.bot(key)
        if bot is None:
            self.log.info(f"remove_bot: unknown bot {key}")
            return
        self.log.info(f"removing bot {bot}")
        try:
            await maybe_await(bot.stop())
        finally:
            self.bots.remove(key)

    async def tick(self) -> None:
        """Pop and process at most one instruction. Never raises."""
        try:
            instruction = await self.queue.pop()
        except Exception as e:
            self.log.error(f"Error reading from queue: {e}", exc_info=True)
            return

        if instruction is None:
            return
        try:
            await self.process_instruction(instruction)
        except Exception as e:
            self.log.error(f"Error processing instruction {instruction!r}: {e}", exc_info=True)

    async def process_instruction(self, instruction) -> None:
        tag, *args = instruction
        try:
            instruction_type = InstructionType(tag)
        except ValueError:
            self.log.warning(f"unknown command: {instruction!r}")
            return

        if instruction_type is InstructionType.ADD_BOT:
            self.log.info(f"adding bot: {args!r}")
            await self.add_bot(*args)
        elif instruction_type is InstructionType.REMOVE_BOT:
            await self.remove_bot(args[0])
        elif instruction_type is InstructionType.SAY:
            key, options = args
            bot = self._target(key, "say")
            if bot:
                self.log.info(f"[{key}] say: {options}")
                await maybe_await(bot.say(**options))
        elif instruction_type is InstructionType.SAY_TO:
            key, user_id, options = args
            bot = self._target(key, "say_to")
            if bot:
                self.log.info(f"[{key}] say_to: ({user_id}) {options}")
                await maybe_await(bot.say_to(user_id, **options))
        elif instruction_type is InstructionType.BROADCAST:
            key, options = args
            bot = self._target(key, "broadcast")
            if bot:
                self.log.info(f"[{key}] broadcast: {options}")
                await maybe_await(bot.broadcast(**options))
        elif instruction_type is InstructionType.CALL:
            key, method, method_args = args
            bot = self._target(key, "call")
            if bot:
                self.log.info(f"[{key}] call: {method} {method_args}")
                await maybe_await(bot.call(method, method_args))

    def _target(self, key, action: str):
        bot = self.bot(key)
        if bot is None:
            self.log.warning(f"{action}: unknown bot {key}")
        return bot

    async def _start_bot(self, bot) -> None:
        try:
            await maybe_await(bot.start())
        except Exception as e:
            self.log.error(f"Error starting {bot}: {e}", exc_info=True)

    async def _stop_bot(self, bot) -> None:
        try:
            await maybe_await(bot.stop())
        except Exception as e:
            self.log.error(f"Error stopping {bot}: {e}", exc_info=True)

    async def run(self) -> None:
        """Start every registered bot, then tick until ``stop()`` is called."""
        self._loop = asyncio.get_running_loop()
        self._stopping = asyncio.Event()
        self.running = True
        self.log.info(f"starting server with {len(self.bots)} bots")

        for bot in self.bots:
            await self._start_bot(bot)

        try:
            while not self._stopping.is_set():
                await self.tick()
                try:
                    await asyncio.wait_for(self._stopping.wait(), self.config.tick_interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.running = False
            for bot in self.bots:
                await self._stop_bot(bot)
            self.log.info("server stopped")

    def stop(self) -> None:
        """Ask a running server to stop. Safe to call from any thread."""
        if self._loop is None or self._stopping is None:
            return
        self._loop.call_soon_threadsafe(self._stopping.set)

    def start(self) -> None:
        """Run the server in the foreground until SIGINT/SIGTERM."""
        configure_logging(self.config.log_level)
        asyncio.run(self._run_with_signals())

    def start_in_background(self) -> threading.Thread:
        """Run the server on a daemon thread with its own event loop."""
        thread = threading.Thread(target=lambda: asyncio.run(self.run()), daemon=True)
        thread.start()
        return thread

    async def _run_with_signals(self) -> None:
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._shutdown_handler)
        await self.run()

    def _shutdown_handler(self) -> None:
        self.log.info("Shutdown signal received...")
        self.stop()
