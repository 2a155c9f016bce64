import tempfile
import unittest
from pathlib import Path

from zorkbot.kernel.interpreter import Interpreter


class BlobMachine(Interpreter):
    def __init__(self, state: bytes = b"") -> None:
        self.state = state

    def run(self) -> None:
        pass

    def save_state(self) -> bytes:
        return self.state

    def load_state(self, data: bytes) -> None:
        if not data.startswith(b"ZS"):
            raise ValueError("bad magic")
        self.state = data


class BrokenMachine(BlobMachine):
    def save_state(self) -> bytes:
        raise RuntimeError("stack overflow")


class TestSnapshotStore(unittest.TestCase):
    def test_save_then_restore(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            store = SnapshotStore(Path(td) / "state.save")
            self.assertFalse(store.exists())
            store.save(BlobMachine(b"ZS\x01\x02"))
            self.assertTrue(store.exists())

            fresh = BlobMachine()
            store.restore(fresh)
            self.assertEqual(fresh.state, b"ZS\x01\x02")

    def test_restore_missing_file(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotError, SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            store = SnapshotStore(Path(td) / "missing.save")
            with self.assertRaises(SnapshotError):
                store.restore(BlobMachine())

    def test_restore_rejected_data(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotError, SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            p.write_bytes(b"garbage")
            with self.assertRaises(SnapshotError) as cm:
                SnapshotStore(p).restore(BlobMachine())
            self.assertIn("corrupt", str(cm.exception))

    def test_restore_empty_file(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotError, SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            p.write_bytes(b"")
            with self.assertRaises(SnapshotError):
                SnapshotStore(p).restore(BlobMachine())

    def test_save_failure_keeps_previous_snapshot(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotError, SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            store = SnapshotStore(p)
            store.save(BlobMachine(b"ZSold"))
            with self.assertRaises(SnapshotError):
                store.save(BrokenMachine())
            self.assertEqual(p.read_bytes(), b"ZSold")

    def test_non_bytes_state_is_rejected(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotError, SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            store = SnapshotStore(p)
            for bad in ("ZS as text", 16):
                with self.subTest(state=bad):
                    with self.assertRaises(SnapshotError):
                        store.save(BlobMachine(bad))
            self.assertFalse(p.exists())

    def test_discard(self) -> None:
        from zorkbot.kernel.snapshot import SnapshotStore

        with tempfile.TemporaryDirectory() as td:
            store = SnapshotStore(Path(td) / "state.save")
            store.discard()
            store.save(BlobMachine(b"ZS"))
            store.discard()
            self.assertFalse(store.exists())


if __name__ == "__main__":
    unittest.main()
