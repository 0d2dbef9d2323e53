"""
Slack backend adapters - the Web API (request/response path) and the RTM
websocket (streaming path).
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import websockets

from .errors import SlackApiError

logger = logging.getLogger(__name__)

SLACK_API_URL = "https://slack.com/api"


def auth_test(slack_token: str, timeout: float = 10.0) -> Dict:
    """
    Run Slack's synchronous identity check for a token.

    Args:
        slack_token: Slack Bot OAuth token
        timeout: Request timeout in seconds

    Returns:
        The raw ``auth.test`` response; ``ok`` is false for a rejected token
    """
    with httpx.Client(timeout=timeout) as client:
        response = client.post(
            f"{SLACK_API_URL}/auth.test",
            headers={"Authorization": f"Bearer {slack_token}"},
        )
        return response.json()


def encode_form_args(args: Dict[str, Any]) -> Dict[str, str]:
    """Flatten API arguments into form fields.

    Lists and dicts (attachments, blocks) are sent as JSON strings, booleans
    as ``true``/``false``, and ``None`` values are dropped.
    """
    fields = {}
    for name, value in args.items():
        if value is None:
            continue
        if isinstance(value, bool):
            fields[name] = "true" if value else "false"
        elif isinstance(value, (list, dict)):
            fields[name] = json.dumps(value)
        else:
            fields[name] = str(value)
    return fields


class SlackWebApi:
    """Async client for the Slack Web API, scoped to one bot token."""

    def __init__(self, slack_token: str, timeout: float = 10.0, base_url: str = SLACK_API_URL):
        self.slack_token = slack_token
        self.timeout = timeout
        self.base_url = base_url
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def call(self, method: str, **args) -> Dict:
        """
        Call any Web API method.

        Args:
            method: Method name, e.g. ``chat.postMessage``
            **args: Method arguments

        Returns:
            The decoded response

        Raises:
            SlackApiError: Slack answered with ``ok: false``
        """
        response = await self._http().post(
            f"{self.base_url}/{method}",
            headers={"Authorization": f"Bearer {self.slack_token}"},
            data=encode_form_args(args),
        )
        data = response.json()
        if not data.get("ok"):
            logger.warning(f"Slack API error in {method}: {data.get('error')}")
            raise SlackApiError(method, data.get("error"), data)
        return data

    async def post_message(self, **options) -> Dict:
        return await self.call("chat.postMessage", **options)

    async def open_im(self, user_id: str) -> str:
        """Open (or reuse) the DM channel with a user and return its id."""
        data = await self.call("conversations.open", users=user_id)
        return data["channel"]["id"]

    async def list_conversations(self, types: str, limit: int = 200) -> List[Dict]:
        """
        List conversations of the given types, following cursor pagination.

        Args:
            types: Comma-separated conversation types (``im``, ``public_channel``, ...)
            limit: Page size

        Returns:
            List of Slack conversation objects
        """
        channels = []
        cursor = None
        while True:
            params = {"types": types, "limit": limit}
            if cursor:
                params["cursor"] = cursor
            data = await self.call("conversations.list", **params)
            channels.extend(data.get("channels", []))

            cursor = data.get("response_metadata", {}).get("next_cursor")
            if not cursor:
                break

        logger.debug(f"Listed {len(channels)} conversations of type {types}")
        return channels

    async def rtm_connect(self) -> str:
        """Ask Slack for a fresh RTM websocket URL."""
        data = await self.call("rtm.connect")
        return data["url"]

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class RtmConnection:
    """One RTM websocket. Frames are JSON text in both directions."""

    def __init__(self, ping_interval: float = 60.0):
        self.ping_interval = ping_interval
        self._ws = None
        self._next_id = 0

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self, url: str) -> None:
        self._ws = await websockets.connect(url, ping_interval=self.ping_interval)

    async def send(self, event: Dict) -> int:
        """Send an event, stamping it with the next message id."""
        if self._ws is None:
            raise ConnectionError("RTM connection is not open")
        self._next_id += 1
        payload = {"id": self._next_id, **event}
        await self._ws.send(json.dumps(payload))
        return self._next_id

    async def frames(self) -> AsyncIterator[str]:
        """Yield raw text frames until the socket closes."""
        if self._ws is None:
            return
        try:
            async for raw in self._ws:
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", "replace")
                yield raw
        finally:
            self._ws = None

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
