from __future__ import annotations

from pathlib import Path
from typing import Union

from ..util.fs import atomic_write_bytes
from .interpreter import Interpreter


class SnapshotError(RuntimeError):
    """Raised when a snapshot cannot be written or read back."""


class SnapshotStore:
    """Interpreter state on disk, one file, format owned by the interpreter."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def save(self, machine: Interpreter) -> None:
        try:
            data = machine.save_state()
        except Exception as e:
            raise SnapshotError(f"cannot serialize interpreter state: {e}") from e
        if not isinstance(data, (bytes, bytearray)):
            raise SnapshotError(f"interpreter state must be bytes, got {type(data).__name__}")
        try:
            atomic_write_bytes(self.path, bytes(data))
        except OSError as e:
            raise SnapshotError(f"cannot write snapshot {self.path}: {e}") from e

    def restore(self, machine: Interpreter) -> None:
        """Load the snapshot into `machine` in place.

        On failure `machine` may be left half-loaded; callers should discard it.
        """
        try:
            data = self.path.read_bytes()
        except FileNotFoundError as e:
            raise SnapshotError(f"no snapshot at {self.path}") from e
        except OSError as e:
            raise SnapshotError(f"cannot read snapshot {self.path}: {e}") from e
        if not data:
            raise SnapshotError(f"empty snapshot at {self.path}")
        try:
            machine.load_state(data)
        except Exception as e:
            raise SnapshotError(f"corrupt snapshot {self.path}: {e}") from e

    def discard(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
