"""
Discord adapter for the zorkbot bridge.

Uses discord.py with a Gateway connection for both inbound and outbound.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, List, Optional

from ....contracts.v1 import InboundMessage
from .base import ChatAdapter

# Discord limits
DISCORD_MAX_MESSAGE_LENGTH = 2000

logger = logging.getLogger("zorkbot.discord")


def split_message(text: str, limit: int = DISCORD_MAX_MESSAGE_LENGTH) -> List[str]:
    """Split `text` into chunks of at most `limit` characters.

    Prefers to cut after a newline; falls back to a hard cut for long lines.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    chunks: List[str] = []
    rest = text
    while len(rest) > limit:
        cut = rest.rfind("\n", 0, limit)
        cut = cut + 1 if cut >= 0 else limit
        chunks.append(rest[:cut])
        rest = rest[cut:]
    if rest:
        chunks.append(rest)
    return chunks


class DiscordAdapter(ChatAdapter):
    """
    Discord adapter using discord.py Gateway.

    Runs the async event loop in a background thread; handlers are called on
    that thread.
    """

    platform = "discord"

    def __init__(self, token: str, *, ready_timeout: float = 30.0, send_timeout: float = 10.0):
        super().__init__()
        self.token = token
        self.ready_timeout = ready_timeout
        self.send_timeout = send_timeout

        self._connected = False
        self._client: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready_event = threading.Event()

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def user_id(self) -> str:
        user = getattr(self._client, "user", None) if self._client else None
        uid = getattr(user, "id", None)
        return str(uid) if uid is not None else ""

    def connect(self) -> bool:
        """
        Initialize Discord client and start event loop in background thread.

        Requires discord.py package.
        """
        try:
            import discord
        except ImportError:
            logger.error("[connect] discord.py not installed. Run: pip install discord.py")
            return False

        # message_content is needed to read command text
        intents = discord.Intents.default()
        intents.message_content = True
        self._client = discord.Client(intents=intents)

        @self._client.event
        async def on_ready():
            logger.info(f"[connect] Connected as {self._client.user}")
            self._ready_event.set()

        @self._client.event
        async def on_message(message):
            self._handle_message(message)

        def run_loop():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
            try:
                self._loop.run_until_complete(self._client.start(self.token))
            except Exception as e:
                logger.error(f"[connect] Discord client error: {e}")
            finally:
                self._loop.close()
                self._ready_event.set()

        self._thread = threading.Thread(target=run_loop, name="zorkbot-discord", daemon=True)
        self._thread.start()

        if not self._ready_event.wait(timeout=self.ready_timeout):
            logger.error("[connect] Discord connection timeout")
            return False
        if self._client.user is None:
            # The loop exited before on_ready (bad token, network).
            return False
        self._connected = True
        return True

    def _handle_message(self, message: Any) -> None:
        author = getattr(message, "author", None)
        channel = getattr(message, "channel", None)
        inbound = InboundMessage(
            author_id=str(getattr(author, "id", "") or ""),
            author_name=str(getattr(author, "name", "") or ""),
            channel_id=str(getattr(channel, "id", "") or ""),
            text=str(getattr(message, "content", "") or ""),
            message_id=str(getattr(message, "id", "") or ""),
        )
        logger.debug(
            f"[inbound] user={inbound.author_name} text={inbound.text[:50]}",
            extra={"op": "inbound", "channel_id": inbound.channel_id, "author_id": inbound.author_id},
        )
        self.dispatch(inbound)

    def disconnect(self) -> None:
        """Disconnect from Discord."""
        if self._client and self._loop and not self._loop.is_closed():
            try:
                future = asyncio.run_coroutine_threadsafe(self._client.close(), self._loop)
                future.result(timeout=5)
            except Exception as e:
                logger.warning(f"[disconnect] close failed: {e}")
        self._connected = False
        logger.info("[disconnect] Disconnected")

    def send_message(self, channel_id: str, text: str) -> bool:
        """
        Send `text` to a Discord channel, split into several messages if it
        exceeds Discord's length limit.
        """
        if not self._connected or not self._client or not self._loop:
            return False

        if not text:
            return True

        chunks = split_message(text)

        async def do_send() -> bool:
            try:
                cid = int(channel_id)
            except ValueError:
                logger.warning(f"[send] invalid channel id {channel_id!r}")
                return False
            channel = self._client.get_channel(cid)
            if channel is None:
                channel = await self._client.fetch_channel(cid)
            for chunk in chunks:
                await channel.send(chunk)
            return True

        try:
            future = asyncio.run_coroutine_threadsafe(do_send(), self._loop)
            return bool(future.result(timeout=self.send_timeout))
        except Exception as e:
            logger.warning(f"[send] to {channel_id}: {e}", extra={"op": "send", "channel_id": channel_id})
            return False
