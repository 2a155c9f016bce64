import json
import tempfile
import threading
import time
import unittest
from pathlib import Path

from zorkbot.kernel.interpreter import Interpreter, Quit


class RecordingSender:
    def __init__(self) -> None:
        self.sent = []

    def send_message(self, channel_id: str, text: str) -> bool:
        self.sent.append((channel_id, text))
        return True


class CountingMachine(Interpreter):
    """Echoes each input line and counts turns."""

    built = 0

    def __init__(self, program: bytes, ui) -> None:
        CountingMachine.built += 1
        self.program = program
        self.ui = ui
        self.turns = 0

    def run(self) -> None:
        while True:
            line = self.ui.input(80)
            if line == "quit":
                raise Quit()
            self.turns += 1
            self.ui.output(0, line + "\n")

    def save_state(self) -> bytes:
        return json.dumps({"turns": self.turns}).encode("utf-8")

    def load_state(self, data: bytes) -> None:
        self.turns = int(json.loads(data.decode("utf-8"))["turns"])


def _buffers():
    from zorkbot.kernel.input_buffer import InputBuffer
    from zorkbot.kernel.output_buffer import OutputBuffer

    sender = RecordingSender()
    return InputBuffer(), OutputBuffer(sender, "chan-1"), sender


class TestSessionUI(unittest.TestCase):
    def test_input_reads_one_line(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        ui = SessionUI(inbox, outbox)
        inbox.write("open mailbox\nread leaflet\n")
        self.assertEqual(ui.input(80), "open mailbox")
        self.assertEqual(ui.input(80), "read leaflet")

    def test_input_truncates_but_consumes_rest_of_line(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        ui = SessionUI(inbox, outbox)
        inbox.write("abcdefgh\nnext\n")
        self.assertEqual(ui.input(3), "abc")
        self.assertEqual(ui.input(10), "next")

    def test_input_propagates_end_of_stream(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        ui = SessionUI(inbox, outbox)
        inbox.write("partial")
        inbox.close()
        with self.assertRaises(EOFError):
            ui.input(80)

    def test_output_only_forwards_main_window(self) -> None:
        from zorkbot.kernel.session import MAIN_WINDOW, SessionUI

        inbox, outbox, sender = _buffers()
        ui = SessionUI(inbox, outbox)
        ui.output(MAIN_WINDOW, "hello")
        ui.output(1, "hidden")
        self.assertEqual(outbox.pending(), "hello")
        outbox.flush()
        self.assertEqual(sender.sent, [("chan-1", "hello")])

    def test_read_rune_passes_through(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        ui = SessionUI(inbox, outbox)
        inbox.write("y")
        self.assertEqual(ui.read_rune(), "y")

    def test_state_lock_released_while_waiting_for_input(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        lock = threading.Lock()
        ui = SessionUI(inbox, outbox, state_lock=lock)
        got = []

        def run() -> None:
            with ui.holding_state():
                got.append(ui.input(80))
                got.append(lock.locked())

        t = threading.Thread(target=run, daemon=True)
        t.start()
        time.sleep(0.05)
        self.assertTrue(lock.acquire(timeout=2))
        lock.release()

        inbox.write("wait\n")
        t.join(timeout=2)
        self.assertEqual(got, ["wait", True])
        self.assertFalse(lock.locked())

    def test_input_never_releases_lock_held_by_another_thread(self) -> None:
        from zorkbot.kernel.session import SessionUI

        inbox, outbox, _ = _buffers()
        lock = threading.Lock()
        ui = SessionUI(inbox, outbox, state_lock=lock)
        got = []

        lock.acquire()  # a save in progress on this thread
        try:
            t = threading.Thread(target=lambda: got.append(ui.input(80)), daemon=True)
            t.start()
            time.sleep(0.05)
            self.assertTrue(lock.locked())

            inbox.write("look\n")
            t.join(timeout=2)
            self.assertFalse(t.is_alive())
            self.assertEqual(got, ["look"])
            self.assertTrue(lock.locked())
        finally:
            lock.release()

    def test_session_shares_lock_with_ui(self) -> None:
        from zorkbot.kernel.session import Session, SessionUI
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        ui = SessionUI(inbox, outbox)
        session = Session(ui=ui, machine=CountingMachine(b"", ui), snapshots=SnapshotStore("unused.save"))
        self.assertIs(ui.state_lock, session.state_lock)

        with self.assertRaises(ValueError):
            other = SessionUI(inbox, outbox, state_lock=threading.Lock())
            Session(ui=other, machine=CountingMachine(b"", other), snapshots=SnapshotStore("unused.save"))


class TestBuildSession(unittest.TestCase):
    def test_fresh_start_when_snapshot_absent(self) -> None:
        from zorkbot.kernel.session import build_session
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        with tempfile.TemporaryDirectory() as td:
            store = SnapshotStore(Path(td) / "state.save")
            before = CountingMachine.built
            session = build_session(CountingMachine, b"story", inbox, outbox, store)

            self.assertFalse(session.restored)
            self.assertEqual(session.machine.turns, 0)
            self.assertEqual(session.machine.program, b"story")
            self.assertIs(session.machine.ui, session.ui)
            # the half-restored instance is thrown away
            self.assertEqual(CountingMachine.built - before, 2)

    def test_fresh_start_when_snapshot_corrupt(self) -> None:
        from zorkbot.kernel.session import build_session
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            p.write_bytes(b"\x00not json")
            session = build_session(CountingMachine, b"story", inbox, outbox, SnapshotStore(p))
            self.assertFalse(session.restored)
            self.assertEqual(session.machine.turns, 0)

    def test_resumes_from_snapshot(self) -> None:
        from zorkbot.kernel.session import build_session
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            p.write_bytes(b'{"turns": 7}')
            session = build_session(CountingMachine, b"story", inbox, outbox, SnapshotStore(p))
            self.assertTrue(session.restored)
            self.assertEqual(session.machine.turns, 7)

    def test_save_writes_snapshot(self) -> None:
        from zorkbot.kernel.session import build_session
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "nested" / "state.save"
            session = build_session(CountingMachine, b"story", inbox, outbox, SnapshotStore(p))
            session.machine.turns = 3
            self.assertTrue(session.save())
            self.assertEqual(json.loads(p.read_text(encoding="utf-8")), {"turns": 3})

    def test_save_skipped_while_machine_busy(self) -> None:
        from zorkbot.kernel.session import build_session
        from zorkbot.kernel.snapshot import SnapshotStore

        inbox, outbox, _ = _buffers()
        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "state.save"
            session = build_session(CountingMachine, b"story", inbox, outbox, SnapshotStore(p))
            session.state_lock.acquire()
            try:
                with self.assertLogs("zorkbot.session", level="WARNING"):
                    self.assertFalse(session.save(timeout=0.05))
            finally:
                session.state_lock.release()
            self.assertFalse(p.exists())


if __name__ == "__main__":
    unittest.main()
