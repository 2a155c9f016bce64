"""
Base class for chat platform adapters.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, List

from ....contracts.v1 import InboundMessage

MessageHandler = Callable[[InboundMessage], object]

logger = logging.getLogger("zorkbot.chat")


class ChatAdapter(ABC):
    """
    Abstract base class for chat platform adapters.

    Each adapter handles:
    - Connecting to the platform
    - Delivering inbound messages to registered handlers
    - Sending messages (outbound)
    """

    platform: str = "unknown"

    def __init__(self) -> None:
        self._handlers: List[MessageHandler] = []
        self._handlers_lock = threading.Lock()

    @abstractmethod
    def connect(self) -> bool:
        """
        Initialize connection to the platform.
        Returns True if successful.
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the platform."""
        pass

    @abstractmethod
    def send_message(self, channel_id: str, text: str) -> bool:
        """
        Send a message to a channel.
        Returns True if successful.
        """
        pass

    @property
    @abstractmethod
    def user_id(self) -> str:
        """The bot's own user id ("" until connected)."""
        pass

    def add_handler(self, handler: MessageHandler) -> None:
        with self._handlers_lock:
            self._handlers.append(handler)

    def dispatch(self, message: InboundMessage) -> None:
        """Hand `message` to every registered handler.

        A failing handler is logged and does not stop the others.
        """
        with self._handlers_lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(message)
            except Exception:
                logger.exception(
                    "[dispatch] handler failed",
                    extra={"op": "dispatch", "channel_id": message.channel_id},
                )
