"""Outbound text coalescing.

The interpreter writes output a few characters at a time. Sending each write
as its own chat message would hit platform rate limits, so writes accumulate
here and a background thread sends whatever has piled up once per interval.

Known limitation: a failed send drops that batch. There is no retry.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Protocol


DEFAULT_FLUSH_INTERVAL_SECONDS = 2.0

logger = logging.getLogger("zorkbot.output")


class MessageSender(Protocol):
    def send_message(self, channel_id: str, text: str) -> bool:
        ...


class OutputBuffer:
    def __init__(
        self,
        sender: MessageSender,
        channel_id: str,
        *,
        interval: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
    ) -> None:
        self.sender = sender
        self.channel_id = channel_id
        self.interval = float(interval)

        self._lock = threading.Lock()
        self._parts: List[str] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def write(self, text: str) -> None:
        if not text:
            return
        with self._lock:
            self._parts.append(text)

    def pending(self) -> str:
        with self._lock:
            return "".join(self._parts)

    def _take(self) -> str:
        with self._lock:
            parts = self._parts
            self._parts = []
        return "".join(parts)

    def flush(self) -> bool:
        """Send everything accumulated since the last flush as one message.

        Returns True if a send was attempted. The lock is released before
        sending, so writers never wait on the network.
        """
        text = self._take()
        if not text:
            return False

        try:
            ok = self.sender.send_message(self.channel_id, text)
        except Exception:
            logger.warning(
                f"[flush] send raised, dropping {len(text)} chars",
                exc_info=True,
                extra={"op": "flush", "channel_id": self.channel_id},
            )
            return True
        if not ok:
            logger.warning(
                f"[flush] send failed, dropping {len(text)} chars",
                extra={"op": "flush", "channel_id": self.channel_id},
            )
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.flush()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="zorkbot-output-flush", daemon=True)
        self._thread.start()

    def stop(self, *, flush: bool = True, timeout: float = 5.0) -> None:
        self._stop.set()
        t = self._thread
        if t is not None:
            t.join(timeout=timeout)
        self._thread = None
        if flush:
            self.flush()

    @property
    def running(self) -> bool:
        t = self._thread
        return t is not None and t.is_alive()
