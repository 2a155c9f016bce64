from __future__ import annotations

import threading
from collections import deque
from typing import Deque


class InputBuffer:
    """Pending chat input, consumed one character at a time.

    Writers append whole lines from the chat thread(s); the run loop thread
    reads characters and blocks while the buffer is empty. The wakeup signal
    is a single-slot Event: setting it twice before the reader wakes is the
    same as setting it once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buf: Deque[str] = deque()
        self._ready = threading.Event()
        self._closed = False

    def write(self, text: str) -> None:
        with self._lock:
            self._buf.extend(text)
        self._ready.set()

    def read_rune(self) -> str:
        """Return the next character, blocking until one is available.

        Raises EOFError once the buffer is closed and drained.
        """
        while True:
            with self._lock:
                if self._buf:
                    return self._buf.popleft()
                if self._closed:
                    raise EOFError("input buffer closed")
                # Cleared under the lock: any write after this point sets it again.
                self._ready.clear()
            self._ready.wait()

    def close(self) -> None:
        with self._lock:
            self._closed = True
        self._ready.set()

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._buf)
