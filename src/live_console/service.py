"""
ConsoleService: the embeddable console.

Composes the command registry, input editor and message pump, and owns the
two console threads:

- input thread: polls the surface for keys, feeds the editor, and on enter
  echoes and dispatches the committed line synchronously.
- render thread: drains the message queue on a fixed interval. On shutdown it
  waits for the input thread, renders what is still queued, draws the final
  "Console shut down." line and marks the console finished.

Other components can `add_dependency(console.lifecycle)` to stay alive until
the console has been closed.
"""

import logging
import threading
from contextlib import ExitStack
from types import TracebackType
from typing import Iterable, List, Optional, Type, Union

from live_console.commands import Command, CommandRegistry
from live_console.config import ConsoleConfig
from live_console.editor import EditorKey, InputEditor, KeyInput
from live_console.lifecycle import LifecycleCoordinator, ProcessRegistry
from live_console.logger import ConsoleLogHandler
from live_console.messages import (
    Message,
    error_message,
    input_echo,
    timestamped_message,
)
from live_console.pump import MessagePump
from live_console.surface import TerminalSurface, Vt100Surface

logger = logging.getLogger(__name__)

SHUTDOWN_TEXT = "Console shut down."


class ConsoleService:
    """Live console on a terminal surface.

    Host calls made after `shutdown()` are no-ops that return False.
    """

    def __init__(
        self,
        surface: TerminalSurface,
        config: Optional[ConsoleConfig] = None,
        registry: Optional[ProcessRegistry] = None,
    ) -> None:
        self.config = config or ConsoleConfig()
        self.surface = surface
        self.lifecycle = LifecycleCoordinator("Console", registry)
        self.pump = MessagePump(
            surface,
            scrollback_capacity=self.config.scrollback_capacity,
            interval=self.config.render_interval,
        )
        self.commands = CommandRegistry(
            self.pump.enqueue, timestamp_format=self.config.timestamp_format
        )
        self.editor = InputEditor()

        self._input_thread: Optional[threading.Thread] = None
        self._render_thread: Optional[threading.Thread] = None
        self._terminal = ExitStack()
        self._close_lock = threading.Lock()
        self._closed = False

    @classmethod
    def create(
        cls,
        surface: Optional[TerminalSurface] = None,
        config: Optional[ConsoleConfig] = None,
        registry: Optional[ProcessRegistry] = None,
    ) -> "ConsoleService":
        """Build a console, take the terminal and start both threads."""
        console = cls(surface or Vt100Surface(), config, registry)
        console.start()
        return console

    def __enter__(self) -> "ConsoleService":
        if not self.started:
            self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close()

    @property
    def started(self) -> bool:
        return self._render_thread is not None

    def start(self) -> None:
        if self.started:
            return
        self._terminal.enter_context(self.surface)
        try:
            self.commands.install_builtins()
            self.pump.draw_frame()
            self._input_thread = threading.Thread(
                target=self._run_input, name="console-input", daemon=True
            )
            self._render_thread = threading.Thread(
                target=self._run_render, name="console-render", daemon=True
            )
            self._input_thread.start()
            self._render_thread.start()
        except BaseException:
            self.lifecycle.request_shutdown()
            self._terminal.close()
            raise
        logger.info("Console started (process %d)", self.lifecycle.process_id)

    # Host-facing API

    def add_message(self, message: Message) -> bool:
        if self.lifecycle.shutdown_requested:
            logger.debug("Console shut down, message dropped")
            return False
        return self.pump.enqueue(message)

    def message(self, text: str) -> bool:
        """Queue a timestamped normal message."""
        return self.add_message(timestamped_message(text, self.config.timestamp_format))

    def error(self, text: str) -> bool:
        """Queue a timestamped error message."""
        return self.add_message(error_message(text, self.config.timestamp_format))

    def add_command(self, names: Union[str, Iterable[str]], command: Command) -> bool:
        if self.lifecycle.shutdown_requested:
            logger.debug("Console shut down, command %r not registered", names)
            return False
        self.commands.register(names, command)
        return True

    def submit(self, line: str) -> bool:
        """Echo and dispatch `line` on the calling thread, as if typed."""
        if self.lifecycle.shutdown_requested:
            logger.debug("Console shut down, %r not submitted", line)
            return False
        self._execute(line)
        return True

    def scrollback(self) -> List[Message]:
        return self.pump.scrollback()

    def log_handler(self, level: int = logging.INFO) -> ConsoleLogHandler:
        """A logging handler that writes records into this console."""
        return ConsoleLogHandler(self.add_message, level)

    def shutdown(self) -> None:
        """Request a graceful stop. Idempotent, returns immediately."""
        if not self.lifecycle.shutdown_requested:
            logger.info("Console shutdown requested")
        self.lifecycle.request_shutdown()

    def is_deletable(self) -> bool:
        return self.lifecycle.is_deletable()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the render thread has finished. Returns the finished flag."""
        if self._render_thread is not None:
            self._render_thread.join(timeout)
        return self.lifecycle.finished

    def close(self) -> None:
        """Shut down, join both threads, release the terminal and notify dependents."""
        if threading.current_thread() in (self._input_thread, self._render_thread):
            # Joining from here would wait on ourselves; the owner closes later.
            logger.warning("close() called from a console thread; shutting down only")
            self.shutdown()
            return
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self.shutdown()
        try:
            for thread in (self._input_thread, self._render_thread):
                if thread is None:
                    continue
                thread.join(self.config.join_timeout)
                if thread.is_alive():
                    logger.warning("Thread %s did not stop in time", thread.name)
        finally:
            self._terminal.close()
            self.commands.clear()
            if self._render_thread is None:
                self.lifecycle.mark_finished()
            self.lifecycle.destroy()
            logger.info("Console closed")

    # Thread bodies

    def _run_input(self) -> None:
        logger.debug("Input thread started")
        try:
            while not self.lifecycle.shutdown_requested:
                event = self.surface.read_key(self.config.input_poll_interval)
                if event is not None:
                    self.handle_key(event)
        except BaseException:
            logger.exception("Input loop failed")
            self.lifecycle.request_shutdown()
        logger.debug("Input thread stopped")

    def _run_render(self) -> None:
        logger.debug("Render thread started")
        try:
            self.pump.run(self.lifecycle)
        except Exception:
            logger.exception("Render loop failed")
            self.lifecycle.request_shutdown()
        finally:
            self._finish_render()
        logger.debug("Render thread stopped")

    def _finish_render(self) -> None:
        if self._input_thread is not None:
            self._input_thread.join(self.config.join_timeout)
        self.pump.close()
        try:
            self.pump.render_pending()
            self.pump.render_direct(
                timestamped_message(SHUTDOWN_TEXT, self.config.timestamp_format)
            )
        except Exception:
            logger.exception("Failed to draw the final console output")
        self.lifecycle.mark_finished()

    # Input handling, on the input thread

    def handle_key(self, event: KeyInput) -> None:
        if event.key is EditorKey.interrupt:
            self.shutdown()
            return
        committed = self.editor.handle(event)
        self.pump.draw_input(self.editor.text, self.editor.cursor)
        if committed is not None:
            self._execute(committed)

    def _execute(self, line: str) -> None:
        self.pump.enqueue(input_echo(line, self.config.timestamp_format))
        if line.strip():
            self.commands.dispatch(line)
