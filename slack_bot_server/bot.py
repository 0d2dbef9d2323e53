"""
Bot - one Slack bot connection and the surface bot authors extend.

Subclass ``Bot``, set message defaults as class attributes and declare
handlers with the decorators from this module:

    class GreeterBot(Bot):
        username = "Greeter"
        mention_keywords = ("hey", "greeter")

        @on_mention
        async def greet(self, data):
            await self.reply(text=f"You said: {data['message']}")

Handlers run inside the server's event loop. Anything slow or blocking in a
handler delays every bot on the server. The same goes for construction: the
token check in ``Bot.__init__`` is a blocking ``auth.test`` request, so a bot
added through the server's queue stalls the loop for up to its 10s timeout.
"""

import logging
from typing import Dict, Optional, Set, Tuple

from .config import resolve_token
from .connection import FINISH_EVENT, START_EVENT, ConnectionState, ConnectionSupervisor
from .errors import InvalidToken, SlackBotServerError
from .events import OWN_HANDLERS, HandlerTable, collect_own_handlers, dispatch, on
from .filters import ChannelTracker, build_mention_patterns, is_bot_message, match_mention
from .log import BotLoggerAdapter
from .routing import DeliveryPath, choose_delivery_path
from .slack_api import RtmConnection, SlackWebApi, auth_test

MENTION = "mention"
DIRECT_MESSAGE = "direct_message"


def on_mention(func):
    """Handle messages addressed to the bot by keyword or ``<@id>``."""
    return on(MENTION)(func)


def on_direct_message(func):
    """Handle messages posted in one of the bot's DM channels."""
    return on(DIRECT_MESSAGE)(func)


def on_start(func):
    """Run after each successful connection."""
    return on(START_EVENT)(func)


def on_finish(func):
    """Run after each disconnection."""
    return on(FINISH_EVENT)(func)


class Bot:
    """A single Slack bot, supervised by a ``Server``.

    Class attributes (message defaults, overridable per call):
        username: Display name override for posted messages
        icon_url: Avatar URL override
        icon_emoji: Avatar emoji override
        default_channel: Channel used when a message names none

    Mentions:
        mention_keywords: Words that address the bot at the start of a
            message. Defaults to the bot's own Slack user name.
    """

    username: Optional[str] = None
    icon_url: Optional[str] = None
    icon_emoji: Optional[str] = None
    default_channel: Optional[str] = "#general"
    mention_keywords: Tuple[str, ...] = ()

    handler_table: HandlerTable

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        setattr(cls, OWN_HANDLERS, collect_own_handlers(vars(cls)))
        cls.handler_table = HandlerTable.for_class(cls)

    def __init__(
        self,
        token: Optional[str] = None,
        key: Optional[str] = None,
        web_api: Optional[SlackWebApi] = None,
        connection_factory=RtmConnection,
        reconnect_delay: float = 0.0,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Create a bot and verify its token.

        Args:
            token: Slack bot token (falls back to SLACK_BOT_TOKEN)
            key: Registry key, defaults to the token
            web_api: Web API client override
            connection_factory: Builds the RTM connection for each attempt
            reconnect_delay: Seconds to wait before reconnecting
            logger: Base logger; lines are prefixed with ``[BOT/<user>]``

        Raises:
            InvalidToken: Slack rejected the token
        """
        self.token = resolve_token(token)
        self._key = key or self.token
        self._identity: Dict = {}
        self.log = BotLoggerAdapter(logger or logging.getLogger(__name__), self)

        identity = auth_test(self.token)
        if not identity.get("ok"):
            raise InvalidToken(identity.get("error"))
        self._identity = identity

        self.web_api = web_api or SlackWebApi(self.token)
        self.channels = ChannelTracker()
        self.last_received: Optional[Dict] = None
        self.supervisor = ConnectionSupervisor(
            self.web_api,
            self.dispatch,
            connection_factory=connection_factory,
            reconnect_delay=reconnect_delay,
            logger=self.log,
        )
        keywords = self.mention_keywords or (self.user,)
        self._mention_patterns = build_mention_patterns(keywords, self.user_id)

    @property
    def key(self) -> str:
        return self._key

    @property
    def user(self) -> Optional[str]:
        return self._identity.get("user")

    @property
    def user_id(self) -> Optional[str]:
        return self._identity.get("user_id")

    @property
    def team(self) -> Optional[str]:
        return self._identity.get("team")

    @property
    def team_id(self) -> Optional[str]:
        return self._identity.get("team_id")

    @property
    def im_channel_ids(self) -> Set[str]:
        return self.channels.im_channel_ids

    @property
    def channel_ids(self) -> Set[str]:
        return self.channels.channel_ids

    @property
    def state(self) -> ConnectionState:
        return self.supervisor.state

    @property
    def running(self) -> bool:
        return self.supervisor.running

    async def start(self) -> None:
        self.supervisor.start()

    async def stop(self) -> None:
        try:
            await self.supervisor.stop()
        finally:
            await self.web_api.aclose()

    async def dispatch(self, event_type: str, data: Dict) -> bool:
        """Run this class's handler chain for one event."""
        return await dispatch(self.handler_table, self, event_type, data, self.log)

    def message_options(self, options: Dict) -> Dict:
        """Merge class-level defaults under the given options."""
        defaults = {
            "channel": self.default_channel,
            "username": self.username,
            "icon_url": self.icon_url,
            "icon_emoji": self.icon_emoji,
        }
        message = {name: value for name, value in defaults.items() if value is not None}
        message.update(options)
        return message

    async def say(self, **options):
        """
        Post a message.

        Plain text to a channel id goes over the RTM stream; anything the
        stream cannot carry goes through ``chat.postMessage``.

        Returns:
            The Web API response, or the RTM message id for streamed messages
        """
        message = self.message_options(options)
        if choose_delivery_path(message) is DeliveryPath.STREAMING and self.supervisor.connected:
            return await self.supervisor.send({"type": "message", **message})
        return await self.web_api.post_message(**message)

    async def reply(self, **options):
        """Post to the channel of the message currently being handled."""
        if not self.last_received or not self.last_received.get("channel"):
            raise SlackBotServerError("No received message to reply to")
        return await self.say(**{**options, "channel": self.last_received["channel"]})

    async def say_to(self, user_id: str, **options):
        """Send a direct message to a user, opening the DM channel if needed."""
        channel_id = await self.web_api.open_im(user_id)
        return await self.say(**{**options, "channel": channel_id})

    async def broadcast(self, **options) -> None:
        """Post the same message to every channel the bot is a member of."""
        for channel_id in sorted(self.channels.channel_ids):
            await self.say(**{**options, "channel": channel_id})

    async def typing(self, **options) -> None:
        """Show the typing indicator in a channel (default: the current one)."""
        channel = options.get("channel")
        if channel is None and self.last_received:
            channel = self.last_received.get("channel")
        if channel is None or not self.supervisor.connected:
            self.log.debug("typing indicator skipped")
            return
        await self.supervisor.send({"type": "typing", "channel": channel})

    async def call(self, method: str, args: Optional[Dict] = None) -> Dict:
        """Call any Web API method with this bot's token."""
        return await self.web_api.call(method, **(args or {}))

    def __str__(self) -> str:
        return f"<{type(self).__name__} key:{self.key}>"

    __repr__ = __str__

    @on(START_EVENT)
    async def _load_channels(self, data):
        self.log.info(f"connected to '{self.team}'")
        await self.channels.load(self.web_api)
        self.log.info(
            f"loaded {len(self.channels.im_channel_ids)} IM channels, "
            f"member of {len(self.channels.channel_ids)} channels"
        )

    @on("message")
    async def _derive_events(self, data):
        self.last_received = data
        if is_bot_message(data, self.user_id):
            return

        message = match_mention(data.get("text"), self._mention_patterns)
        if message is not None:
            self.last_received = {**data, "message": message}
            await self.dispatch(MENTION, self.last_received)

        if self.channels.is_im(data.get("channel")):
            self.last_received = {**data, "message": data.get("text")}
            await self.dispatch(DIRECT_MESSAGE, self.last_received)

    @on("im_created")
    def _track_im_created(self, data):
        channel_id = self.channels.add_im(data)
        self.log.info(f"Adding new IM channel: {channel_id}")

    @on("channel_joined")
    @on("group_joined")
    def _track_joined(self, data):
        channel_id = self.channels.joined(data)
        self.log.info(f"Joined channel: {channel_id}")

    @on("channel_left")
    @on("group_left")
    def _track_left(self, data):
        channel_id = self.channels.left(data)
        self.log.info(f"Left channel: {channel_id}")


setattr(Bot, OWN_HANDLERS, collect_own_handlers(vars(Bot)))
Bot.handler_table = HandlerTable.for_class(Bot)
