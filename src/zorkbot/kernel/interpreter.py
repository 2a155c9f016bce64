"""
Interpreter port.

The interpreter engine (story loading, opcode execution) lives outside this
package. zorkbot only needs:

- a factory that builds a machine from a program image and a UI
- `run()`, which executes until the program stops
- `save_state()` / `load_state()`, which round-trip the full machine state

Engines are wired in by import path, e.g. ``mypkg.zmachine:build``.
"""

from __future__ import annotations

import importlib
from abc import ABC, abstractmethod
from typing import Any, Callable


class InterpreterSignal(Exception):
    """Base for the terminal conditions an interpreter reports from run()."""


class EndOfInput(InterpreterSignal):
    """Input stream ended."""


class Quit(InterpreterSignal):
    """The program asked to quit."""


class RestartRequested(InterpreterSignal):
    """The program asked to restart; not handled in-process."""


class EngineLoadError(RuntimeError):
    """Raised when the configured interpreter engine cannot be resolved."""


class InterpreterUI(ABC):
    """Character-stream I/O contract the interpreter drives."""

    @abstractmethod
    def input(self, n: int) -> str:
        """Read one line, keeping at most `n` characters. Blocks."""
        pass

    @abstractmethod
    def output(self, window: int, text: str) -> None:
        """Write `text` to output window `window`."""
        pass

    @abstractmethod
    def read_rune(self) -> str:
        """Read a single character. Blocks."""
        pass


class Interpreter(ABC):
    """A running program instance."""

    @abstractmethod
    def run(self) -> None:
        """
        Execute one run of the program.

        A normal return means the caller will invoke run() again. Terminal
        conditions are raised as InterpreterSignal subclasses;
        EOFError from the UI propagates unchanged. Any other exception is an
        internal error.
        """
        pass

    @abstractmethod
    def save_state(self) -> bytes:
        """Serialize the complete execution state."""
        pass

    @abstractmethod
    def load_state(self, data: bytes) -> None:
        """Replace this instance's execution state with `data`."""
        pass


InterpreterFactory = Callable[[bytes, InterpreterUI], Interpreter]


def load_factory(spec: str) -> InterpreterFactory:
    """Resolve ``module:attr`` (or ``module.attr``) to an interpreter factory."""
    s = (spec or "").strip()
    if not s:
        raise EngineLoadError("no interpreter engine configured (set `engine` or pass --engine)")

    if ":" in s:
        module_name, _, attr_path = s.partition(":")
    else:
        module_name, _, attr_path = s.rpartition(".")
    if not module_name or not attr_path:
        raise EngineLoadError(f"invalid engine spec: {spec!r} (expected 'module:attr')")

    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise EngineLoadError(f"cannot import engine module {module_name!r}: {e}") from e

    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise EngineLoadError(f"engine {spec!r}: {module_name} has no attribute {attr_path!r}") from e

    if not callable(obj):
        raise EngineLoadError(f"engine {spec!r} is not callable")
    return obj
