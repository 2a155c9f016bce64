"""
Session: one input buffer, one output buffer, one interpreter.

`SessionUI` is what the interpreter sees as its terminal. `build_session`
wires the pieces together and decides between resuming a saved snapshot and
starting fresh from the program image.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Optional

from .input_buffer import InputBuffer
from .interpreter import Interpreter, InterpreterFactory, InterpreterUI
from .output_buffer import OutputBuffer
from .snapshot import SnapshotError, SnapshotStore

MAIN_WINDOW = 0

logger = logging.getLogger("zorkbot.session")


class SessionUI(InterpreterUI):
    def __init__(
        self,
        inbox: InputBuffer,
        outbox: OutputBuffer,
        *,
        state_lock: Optional[threading.Lock] = None,
    ) -> None:
        self.inbox = inbox
        self.outbox = outbox
        self.state_lock = state_lock
        self._owner: Optional[int] = None

    @contextmanager
    def holding_state(self) -> Iterator[None]:
        """Hold state_lock on this thread while the machine executes."""
        lock = self.state_lock
        if lock is None:
            yield
            return
        with lock:
            self._owner = threading.get_ident()
            try:
                yield
            finally:
                self._owner = None

    @contextmanager
    def _waiting(self) -> Iterator[None]:
        # Drop state_lock while parked on input so a save can run at a line
        # boundary. Only the thread that took it in holding_state() may.
        lock = self.state_lock
        me = threading.get_ident()
        if lock is None or self._owner != me:
            yield
            return
        self._owner = None
        lock.release()
        try:
            yield
        finally:
            lock.acquire()
            self._owner = me

    def input(self, n: int) -> str:
        """Read up to a newline, keeping at most `n` characters.

        Characters past `n` are consumed and dropped. EOFError propagates.
        """
        out = []
        with self._waiting():
            while True:
                ch = self.inbox.read_rune()
                if ch == "\n":
                    break
                if len(out) < n:
                    out.append(ch)
        return "".join(out)

    def output(self, window: int, text: str) -> None:
        if window != MAIN_WINDOW:
            return
        self.outbox.write(text)

    def read_rune(self) -> str:
        with self._waiting():
            return self.inbox.read_rune()


@dataclass
class Session:
    ui: SessionUI
    machine: Interpreter
    snapshots: SnapshotStore
    restored: bool = False
    state_lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        if self.ui.state_lock is None:
            self.ui.state_lock = self.state_lock
        elif self.ui.state_lock is not self.state_lock:
            raise ValueError("session and its UI must share one state lock")

    @property
    def inbox(self) -> InputBuffer:
        return self.ui.inbox

    @property
    def outbox(self) -> OutputBuffer:
        return self.ui.outbox

    def save(self, *, timeout: float = 5.0) -> bool:
        """Snapshot the machine if it can be caught between steps.

        Returns False (and logs) if the lock is not available within
        `timeout` or the write fails.
        """
        if not self.state_lock.acquire(timeout=timeout):
            logger.warning(
                f"[save] interpreter busy for {timeout:.1f}s, skipping save",
                extra={"op": "save", "path": str(self.snapshots.path)},
            )
            return False
        try:
            self.snapshots.save(self.machine)
        except SnapshotError as e:
            logger.error(f"[save] {e}", extra={"op": "save", "path": str(self.snapshots.path)})
            return False
        finally:
            self.state_lock.release()
        logger.info("[save] state saved", extra={"op": "save", "path": str(self.snapshots.path)})
        return True


def build_session(
    factory: InterpreterFactory,
    program: bytes,
    inbox: InputBuffer,
    outbox: OutputBuffer,
    snapshots: SnapshotStore,
) -> Session:
    """Construct the session, resuming from the snapshot when possible.

    A missing or unreadable snapshot is not an error: the half-restored
    machine is discarded and a new one is built from `program`. Errors from
    `factory` itself propagate.
    """
    state_lock = threading.Lock()
    ui = SessionUI(inbox, outbox, state_lock=state_lock)

    machine = factory(program, ui)
    try:
        snapshots.restore(machine)
    except SnapshotError as e:
        logger.info(f"[restore] {e}; starting fresh", extra={"op": "restore", "path": str(snapshots.path)})
        machine = factory(program, ui)
        return Session(ui=ui, machine=machine, snapshots=snapshots, restored=False, state_lock=state_lock)

    logger.info("[restore] resumed from snapshot", extra={"op": "restore", "path": str(snapshots.path)})
    return Session(ui=ui, machine=machine, snapshots=snapshots, restored=True, state_lock=state_lock)
