"""Run loop: drives the interpreter on its own thread.

running -> quit | restart_requested | internal_error

There is no recovery here. Anything but a quit ends the process with a
non-zero status and leaves restarting to the process supervisor.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from .interpreter import EndOfInput, Quit, RestartRequested
from .session import Session

logger = logging.getLogger("zorkbot.runloop")


@dataclass(frozen=True)
class RunOutcome:
    state: str  # "quit" | "restart_requested" | "internal_error"
    exit_code: int
    error: Optional[BaseException] = None

    @property
    def should_save(self) -> bool:
        return self.state != "quit"


class RunLoop:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.done = threading.Event()
        self._outcome: Optional[RunOutcome] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def outcome(self) -> Optional[RunOutcome]:
        return self._outcome

    @property
    def state(self) -> str:
        o = self._outcome
        return o.state if o is not None else "running"

    def step(self) -> Optional[RunOutcome]:
        """Invoke the machine once.

        Returns None while it is still running, otherwise how it stopped.
        """
        try:
            with self.session.ui.holding_state():
                self.session.machine.run()
        except (EOFError, EndOfInput, Quit) as e:
            logger.info(f"[run] interpreter stopped: {type(e).__name__}", extra={"op": "run"})
            return RunOutcome("quit", 0, e)
        except RestartRequested as e:
            logger.error(f"[run] restart error: {e}", extra={"op": "run"})
            return RunOutcome("restart_requested", 1, e)
        except Exception as e:
            logger.exception(f"[run] internal error: {e}", extra={"op": "run"})
            return RunOutcome("internal_error", 1, e)
        return None

    def run(self) -> RunOutcome:
        outcome: Optional[RunOutcome] = None
        while outcome is None:
            outcome = self.step()
        self._outcome = outcome
        self.done.set()
        return outcome

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self.run, name="zorkbot-run-loop", daemon=True)
        self._thread.start()

    def wait(self, timeout: Optional[float] = None) -> Optional[RunOutcome]:
        self.done.wait(timeout)
        return self._outcome
