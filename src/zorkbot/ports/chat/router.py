"""
Inbound command routing.

Only messages that look like `!z<command>` in the session channel, from
anyone but the bot itself, become interpreter input. Everything else in the
channel is ordinary chatter and is ignored.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from ...contracts.v1 import InboundMessage
from ...kernel.input_buffer import InputBuffer

logger = logging.getLogger("zorkbot.router")


def parse_command(text: str, prefix: str) -> Optional[str]:
    """
    Return the command text after `prefix`, or None if `text` is not a command.

    Examples (prefix "!z"):
        "!zlook"          -> "look"
        "!z  open door "  -> "open door"
        '!z say "a  b" '  -> 'say "a  b"'  (inner spacing kept)
        "!z"              -> None
        "hello"           -> None
    """
    if not prefix or not text.startswith(prefix):
        return None
    command = text[len(prefix):].strip()
    return command or None


class CommandRouter:
    def __init__(
        self,
        inbox: InputBuffer,
        channel_id: str,
        *,
        bot_user_id: Callable[[], str],
        prefix: str = "!z",
    ) -> None:
        self.inbox = inbox
        self.channel_id = str(channel_id)
        self.bot_user_id = bot_user_id
        self.prefix = prefix

    def handle(self, message: InboundMessage) -> bool:
        """Forward `message` as one input line if it qualifies."""
        if message.author_id and message.author_id == self.bot_user_id():
            return False
        if message.channel_id != self.channel_id:
            return False

        command = parse_command(message.text, self.prefix)
        if command is None:
            return False

        self.inbox.write(command + "\n")
        logger.info(
            f"[command] {command[:80]}",
            extra={"op": "command", "channel_id": message.channel_id, "author_id": message.author_id},
        )
        return True

    __call__ = handle
