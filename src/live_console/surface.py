"""
Terminal drawing surfaces consumed by the console.

`TerminalSurface` is the interface: positioned styled text, row clearing,
extent queries and a key read that gives up after a timeout, so the input
thread can keep checking its stop flag. Entering the surface as a context
manager takes control of the terminal; leaving it gives control back.

`Vt100Surface` drives a real terminal through prompt_toolkit's low-level
input and output objects. `MemorySurface` keeps a character grid in memory
and reads keys from a queue, for headless hosts and tests.
"""

import logging
import queue
import select
import threading
from collections import deque
from contextlib import ExitStack
from types import TracebackType
from typing import Deque, Dict, List, Optional, Protocol, Tuple, Type

from prompt_toolkit.input import Input, create_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys
from prompt_toolkit.output import Output, create_output
from prompt_toolkit.styles import Attrs
from prompt_toolkit.styles import Style as PromptStyle

from live_console.editor import EditorKey, KeyInput
from live_console.messages import Style

logger = logging.getLogger(__name__)


class TerminalSurface(Protocol):
    def __enter__(self) -> "TerminalSurface": ...

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None: ...

    def size(self) -> Tuple[int, int]:
        """Return (rows, columns)."""
        ...

    def draw_text(self, row: int, column: int, text: str, style: Style) -> None: ...

    def clear_row(self, row: int) -> None: ...

    def refresh(self) -> None: ...

    def read_key(self, timeout: float) -> Optional[KeyInput]:
        """Next key event, or None if nothing arrived within `timeout` seconds."""
        ...


DEFAULT_STYLE = PromptStyle.from_dict(
    {
        "normal": "",
        "highlight": "bg:ansiwhite ansiblack",
        "error": "ansired",
        "timestamp": "ansicyan",
        "input": "ansimagenta",
    }
)

_KEY_EVENTS: Dict[str, EditorKey] = {
    Keys.Left: EditorKey.left,
    Keys.Right: EditorKey.right,
    Keys.Up: EditorKey.up,
    Keys.Down: EditorKey.down,
    Keys.Backspace: EditorKey.backspace,
    Keys.ControlM: EditorKey.enter,
    Keys.ControlJ: EditorKey.enter,
    Keys.ControlC: EditorKey.interrupt,
    Keys.ControlD: EditorKey.interrupt,
}


_CONTROL_CHARS = {ord(char): " " for char in "\t\n\r\x0b\x0c"}


def decode_key(key_press: KeyPress) -> Optional[KeyInput]:
    """Translate a prompt_toolkit key press into an editor event."""
    key = key_press.key
    if key in _KEY_EVENTS:
        return KeyInput(_KEY_EVENTS[key])
    if not isinstance(key, Keys) and len(key) == 1:
        return KeyInput.typed(key)
    return None


class Vt100Surface:
    """Full-screen surface on the process's terminal (POSIX only)."""

    def __init__(
        self,
        output: Optional[Output] = None,
        input: Optional[Input] = None,
        style: PromptStyle = DEFAULT_STYLE,
    ) -> None:
        self._output = output or create_output()
        self._input = input or create_input()
        self._color_depth = self._output.get_default_color_depth()
        self._attrs: Dict[Style, Attrs] = {
            tag: style.get_attrs_for_style_str(f"class:{tag.value}") for tag in Style
        }
        self._pending: Deque[KeyInput] = deque()
        self._stack = ExitStack()

    def __enter__(self) -> "Vt100Surface":
        with ExitStack() as stack:
            stack.enter_context(self._input.raw_mode())
            self._output.enter_alternate_screen()
            stack.callback(self._restore_screen)
            self._output.hide_cursor()
            self._output.erase_screen()
            self._output.flush()
            self._stack = stack.pop_all()
        logger.info("Terminal acquired")
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self._stack.close()
        logger.info("Terminal released")

    def _restore_screen(self) -> None:
        self._output.reset_attributes()
        self._output.show_cursor()
        self._output.quit_alternate_screen()
        self._output.flush()

    def size(self) -> Tuple[int, int]:
        size = self._output.get_size()
        return size.rows, size.columns

    def draw_text(self, row: int, column: int, text: str, style: Style) -> None:
        # VT100 addressing is 1-based.
        self._output.cursor_goto(row + 1, column + 1)
        self._output.set_attributes(self._attrs[style], self._color_depth)
        self._output.write(text.translate(_CONTROL_CHARS))
        self._output.reset_attributes()

    def clear_row(self, row: int) -> None:
        self._output.cursor_goto(row + 1, 1)
        self._output.reset_attributes()
        self._output.erase_end_of_line()

    def refresh(self) -> None:
        self._output.flush()

    def read_key(self, timeout: float) -> Optional[KeyInput]:
        if not self._pending:
            ready, _, _ = select.select([self._input.fileno()], [], [], timeout)
            if not ready:
                return None
            for key_press in self._input.read_keys() + self._input.flush_keys():
                decoded = decode_key(key_press)
                if decoded is not None:
                    self._pending.append(decoded)
        return self._pending.popleft() if self._pending else None


class MemorySurface:
    """In-memory character grid with scripted key input."""

    def __init__(self, rows: int = 24, columns: int = 80) -> None:
        self.rows = rows
        self.columns = columns
        self.acquired = False
        self.released = False
        # Every draw_text call as (row, text), in order.
        self.draws: List[Tuple[int, str]] = []
        self._lock = threading.Lock()
        self._cells: List[List[Tuple[str, Style]]] = [
            self._blank_row() for _ in range(rows)
        ]
        self._keys: "queue.Queue[KeyInput]" = queue.Queue()

    def _blank_row(self) -> List[Tuple[str, Style]]:
        return [(" ", Style.normal)] * self.columns

    def __enter__(self) -> "MemorySurface":
        self.acquired = True
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.released = True

    def resize(self, rows: int, columns: int) -> None:
        with self._lock:
            self.rows = rows
            self.columns = columns
            self._cells = [self._blank_row() for _ in range(rows)]

    def size(self) -> Tuple[int, int]:
        with self._lock:
            return self.rows, self.columns

    def draw_text(self, row: int, column: int, text: str, style: Style) -> None:
        with self._lock:
            self.draws.append((row, text))
            if not 0 <= row < self.rows:
                return
            cells = self._cells[row]
            for offset, char in enumerate(text):
                if 0 <= column + offset < self.columns:
                    cells[column + offset] = (char, style)

    def clear_row(self, row: int) -> None:
        with self._lock:
            if 0 <= row < self.rows:
                self._cells[row] = self._blank_row()

    def refresh(self) -> None:
        pass

    def read_key(self, timeout: float) -> Optional[KeyInput]:
        try:
            return self._keys.get(timeout=timeout)
        except queue.Empty:
            return None

    # Test and host helpers

    def feed(self, *events: KeyInput) -> None:
        for event in events:
            self._keys.put(event)

    def type_line(self, text: str, submit: bool = True) -> None:
        self.feed(*(KeyInput.typed(char) for char in text))
        if submit:
            self.feed(KeyInput(EditorKey.enter))

    def row_text(self, row: int) -> str:
        with self._lock:
            return "".join(char for char, _ in self._cells[row]).rstrip()

    def row_styles(self, row: int) -> List[Style]:
        with self._lock:
            return [style for _, style in self._cells[row]]

    def screen(self) -> List[str]:
        return [self.row_text(row) for row in range(self.size()[0])]
