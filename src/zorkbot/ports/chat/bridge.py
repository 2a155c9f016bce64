"""
zorkbot bridge - process wiring.

Handles:
- Startup: program image, engine, session restore, chat connection
- Inbound: chat messages -> router -> input buffer
- Outbound: output buffer -> periodic flush -> chat channel
- Shutdown: save, drain output, disconnect
"""

from __future__ import annotations

import logging
import signal
import threading
from pathlib import Path
from typing import Any, Optional

from ...kernel.input_buffer import InputBuffer
from ...kernel.interpreter import EngineLoadError, InterpreterFactory, load_factory
from ...kernel.output_buffer import OutputBuffer
from ...kernel.runloop import RunLoop, RunOutcome
from ...kernel.session import Session, build_session
from ...kernel.settings import BridgeConfig, ConfigError
from ...kernel.snapshot import SnapshotStore
from .adapters.base import ChatAdapter
from .adapters.discord import DiscordAdapter
from .router import CommandRouter

logger = logging.getLogger("zorkbot.bridge")


class StartupError(RuntimeError):
    """Raised when the bridge cannot get as far as running the interpreter."""


class Bridge:
    """
    Coordinates:
    - Adapter (platform-specific communication)
    - Session (buffers + interpreter)
    - Router (inbound filtering)
    - Run loop
    """

    def __init__(
        self,
        config: BridgeConfig,
        adapter: ChatAdapter,
        factory: InterpreterFactory,
    ):
        self.config = config
        self.adapter = adapter
        self.factory = factory

        self.session: Optional[Session] = None
        self.router: Optional[CommandRouter] = None
        self.run_loop: Optional[RunLoop] = None

        self._stopping = threading.Event()

    def _read_program(self) -> bytes:
        path = Path(self.config.story_path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StartupError(f"cannot open story file {path}: {e}") from e

    def start(self) -> None:
        """Build the session, connect to chat, start the flush and run threads."""
        program = self._read_program()

        inbox = InputBuffer()
        outbox = OutputBuffer(self.adapter, self.config.channel_id, interval=self.config.flush_interval)
        snapshots = SnapshotStore(self.config.save_path)
        try:
            self.session = build_session(self.factory, program, inbox, outbox, snapshots)
        except Exception as e:
            raise StartupError(f"cannot start interpreter: {e}") from e

        self.router = CommandRouter(
            inbox,
            self.config.channel_id,
            bot_user_id=lambda: self.adapter.user_id,
            prefix=self.config.command_prefix,
        )
        self.adapter.add_handler(self.router.handle)

        if not self.adapter.connect():
            raise StartupError(f"cannot connect to {self.adapter.platform}")

        outbox.start()
        self.run_loop = RunLoop(self.session)
        self.run_loop.start()
        logger.info(
            f"[start] session running (restored={self.session.restored})",
            extra={"op": "start", "channel_id": self.config.channel_id},
        )

    def stop(self) -> None:
        """Request shutdown; safe to call from a signal handler."""
        self._stopping.set()

    def wait(self, poll_interval: float = 0.5) -> Optional[RunOutcome]:
        """Block until a stop request or the run loop finishes.

        Returns the run loop outcome, or None for an external stop.
        """
        loop = self.run_loop
        while not self._stopping.is_set():
            if loop is None:
                self._stopping.wait(poll_interval)
                continue
            if loop.done.wait(timeout=poll_interval):
                return loop.outcome
        return loop.outcome if loop is not None else None

    def shutdown(self, outcome: Optional[RunOutcome] = None) -> int:
        session = self.session
        if session is not None:
            if outcome is None or outcome.should_save:
                session.save(timeout=self.config.save_timeout)
            session.inbox.close()
            session.outbox.stop(flush=True)
        self.adapter.disconnect()
        code = outcome.exit_code if outcome is not None else 0
        logger.info(f"[stop] bridge stopped (exit={code})", extra={"op": "stop"})
        return code


def start_bridge(
    config: BridgeConfig,
    *,
    adapter: Optional[ChatAdapter] = None,
    factory: Optional[InterpreterFactory] = None,
    install_signals: bool = True,
) -> int:
    """
    Run the bridge until the interpreter stops or the process is signalled.

    This is the main entry point called by the CLI. Returns the process exit
    code.
    """
    try:
        config.validate()
        if factory is None:
            factory = load_factory(config.engine)
    except (ConfigError, EngineLoadError) as e:
        print(f"[error] {e}")
        return 1

    if adapter is None:
        adapter = DiscordAdapter(token=config.token)

    bridge = Bridge(config, adapter, factory)

    if install_signals:
        def handle_signal(signum: int, frame: Any) -> None:
            print(f"\n[signal] Received signal {signum}, stopping...")
            bridge.stop()

        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

    try:
        bridge.start()
    except StartupError as e:
        logger.error(f"[start] {e}", extra={"op": "start"})
        print(f"[error] {e}")
        if bridge.session is not None:
            bridge.session.outbox.stop(flush=False)
        adapter.disconnect()
        return 1

    mode = "debug" if config.debug else "production"
    print(f"[info] zorkbot is now running ({mode}, channel {config.channel_id}). Press CTRL-C to exit.")

    outcome = bridge.wait()
    return bridge.shutdown(outcome)
