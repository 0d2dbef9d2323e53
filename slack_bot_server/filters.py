"""
Mention / direct-message detection and channel membership tracking.
"""

import logging
import re
from typing import Dict, Iterable, Optional, Pattern, Set

logger = logging.getLogger(__name__)

# Slackbot's reserved user id; its notifications are never treated as chat.
SLACKBOT_USER_ID = "USLACKBOT"


def is_bot_message(data: Dict, bot_user_id: Optional[str]) -> bool:
    """True for messages the bot must not react to."""
    if data.get("subtype") == "bot_message":
        return True
    user = data.get("user")
    if user == SLACKBOT_USER_ID:
        return True
    if bot_user_id and user == bot_user_id:
        return True
    if data.get("subtype") == "message_changed":
        previous = data.get("previous_message") or {}
        if bot_user_id and previous.get("user") == bot_user_id:
            return True
    return False


def build_mention_patterns(keywords: Iterable[str], bot_user_id: Optional[str]) -> list:
    """Anchored, case-insensitive patterns for keyword and ``<@USER>`` mentions."""
    patterns = []
    words = sorted({k for k in keywords if k}, key=len, reverse=True)
    if words:
        alternatives = "|".join(re.escape(word) for word in words)
        patterns.append(re.compile(rf"\A(?:{alternatives})[\s:](.*)", re.IGNORECASE | re.DOTALL))
    if bot_user_id:
        patterns.append(re.compile(rf"\A<@{re.escape(bot_user_id)}>[\s:](.*)", re.IGNORECASE | re.DOTALL))
    return patterns


def match_mention(text: Optional[str], patterns: Iterable[Pattern]) -> Optional[str]:
    """Return the text after the mention prefix, stripped, or None."""
    if not text:
        return None
    for pattern in patterns:
        match = pattern.match(text)
        if match:
            return match.group(1).strip()
    return None


def _channel_id(value) -> Optional[str]:
    # channel_joined carries a channel object, channel_left just the id
    if isinstance(value, dict):
        return value.get("id")
    return value


class ChannelTracker:
    """Live sets of DM channels and channels the bot is a member of."""

    def __init__(self):
        self.im_channel_ids: Set[str] = set()
        self.channel_ids: Set[str] = set()

    async def load(self, web_api) -> None:
        """Replace both sets with a snapshot from ``conversations.list``."""
        ims = await web_api.list_conversations("im")
        self.im_channel_ids = {c["id"] for c in ims}

        channels = await web_api.list_conversations("public_channel,private_channel")
        self.channel_ids = {c["id"] for c in channels if c.get("is_member")}

    def add_im(self, data: Dict) -> Optional[str]:
        channel_id = _channel_id(data.get("channel"))
        if channel_id:
            self.im_channel_ids.add(channel_id)
        return channel_id

    def joined(self, data: Dict) -> Optional[str]:
        channel_id = _channel_id(data.get("channel"))
        if channel_id:
            self.channel_ids.add(channel_id)
        return channel_id

    def left(self, data: Dict) -> Optional[str]:
        channel_id = _channel_id(data.get("channel"))
        if channel_id:
            self.channel_ids.discard(channel_id)
        return channel_id

    def is_im(self, channel_id: Optional[str]) -> bool:
        return channel_id in self.im_channel_ids
