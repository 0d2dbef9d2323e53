"""
Delivery path selection for outbound messages.

The RTM stream only carries plain ``{channel, text}`` messages addressed to a
channel id. Anything richer has to go through ``chat.postMessage``.
"""

from enum import Enum
from typing import Dict

ROUTING_POLICY_VERSION = 1

# Any of these present forces the Web API.
STREAMING_DISQUALIFIERS = ("attachments", "username", "icon_url", "icon_emoji")


class DeliveryPath(str, Enum):
    STREAMING = "streaming"
    WEB_API = "web_api"


def is_channel_name(channel) -> bool:
    """True for ``#name`` references that only the Web API can resolve."""
    return isinstance(channel, str) and channel.startswith("#")


def choose_delivery_path(options: Dict) -> DeliveryPath:
    """Pick the delivery path for fully merged message options."""
    if any(options.get(name) for name in STREAMING_DISQUALIFIERS):
        return DeliveryPath.WEB_API
    if is_channel_name(options.get("channel")):
        return DeliveryPath.WEB_API
    return DeliveryPath.STREAMING
