"""
Message queue, scrollback and redraw policy for the console output area.

Screen layout, top to bottom: message rows, one separator row, one input row.
Messages are drawn on successive rows until the next one would reach the
separator; from then on every new message triggers a full repaint of the
message rows from scrollback, oldest at the top.

Two independent locks: one for the queue, one for the draw surface. Public
drawing methods take the draw lock exactly once and only call the `_paint*`
helpers, which assume it is held.
"""

import logging
import threading
from collections import deque
from typing import Deque, List, Tuple

from live_console.lifecycle import LifecycleCoordinator
from live_console.messages import Message, Style
from live_console.surface import TerminalSurface

logger = logging.getLogger(__name__)

RESERVED_ROWS = 2
SEPARATOR_CHAR = "-"
DEFAULT_SCROLLBACK = 100


class Scrollback:
    """Bounded history of rendered messages; the oldest is evicted first."""

    def __init__(self, capacity: int = DEFAULT_SCROLLBACK) -> None:
        if capacity < 1:
            raise ValueError("scrollback capacity must be positive")
        self._messages: Deque[Message] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._messages.maxlen or 0

    def __len__(self) -> int:
        return len(self._messages)

    def append(self, message: Message) -> None:
        self._messages.append(message)

    def last(self, count: int) -> List[Message]:
        if count <= 0:
            return []
        return list(self._messages)[-count:]

    def snapshot(self) -> List[Message]:
        return list(self._messages)


class MessagePump:
    """FIFO of pending messages and the code that puts them on screen."""

    def __init__(
        self,
        surface: TerminalSurface,
        scrollback_capacity: int = DEFAULT_SCROLLBACK,
        interval: float = 0.05,
    ) -> None:
        self.interval = interval
        self._surface = surface
        self._queue: Deque[Message] = deque()
        self._queue_lock = threading.Lock()
        self._accepting = True
        self._draw_lock = threading.Lock()
        self._scrollback = Scrollback(scrollback_capacity)
        self._next_row = 0
        self._size: Tuple[int, int] = (0, 0)
        self._input_line: Tuple[str, int] = ("", 0)

    # Queue side

    def enqueue(self, message: Message) -> bool:
        """Append to the queue from any thread. False once the queue is closed."""
        with self._queue_lock:
            if not self._accepting:
                return False
            self._queue.append(message)
            return True

    def close(self) -> None:
        """Stop accepting messages; already queued ones can still be drained."""
        with self._queue_lock:
            self._accepting = False

    @property
    def accepting(self) -> bool:
        with self._queue_lock:
            return self._accepting

    def drain(self) -> List[Message]:
        with self._queue_lock:
            messages = list(self._queue)
            self._queue.clear()
        return messages

    # Render side

    def run(self, lifecycle: LifecycleCoordinator) -> None:
        """Drain and render every `interval` seconds until shutdown is requested."""
        while not lifecycle.wait_for_shutdown(self.interval):
            self.render_pending()

    def render_pending(self) -> int:
        """Render everything queued so far, in order. Returns the count."""
        messages = self.drain()
        if messages:
            with self._draw_lock:
                self._sync_size()
                for message in messages:
                    self._paint_message(message)
                self._surface.refresh()
        return len(messages)

    def render_direct(self, message: Message) -> None:
        """Draw a message immediately, bypassing the queue."""
        with self._draw_lock:
            self._sync_size()
            self._paint_message(message)
            self._surface.refresh()

    def draw_frame(self) -> None:
        """Paint the separator and an empty input row."""
        with self._draw_lock:
            self._sync_size()
            self._paint_separator()
            self._paint_input()
            self._surface.refresh()

    def draw_input(self, text: str, cursor: int) -> None:
        with self._draw_lock:
            self._input_line = (text, cursor)
            self._sync_size()
            self._paint_input()
            self._surface.refresh()

    def scrollback(self) -> List[Message]:
        with self._draw_lock:
            return self._scrollback.snapshot()

    # Helpers below run with the draw lock held.

    @property
    def _message_rows(self) -> int:
        return max(self._size[0] - RESERVED_ROWS, 1)

    def _sync_size(self) -> None:
        size = self._surface.size()
        if size == self._size:
            return
        logger.debug("Surface size changed from %s to %s", self._size, size)
        first_paint = self._size == (0, 0)
        self._size = size
        if first_paint:
            return
        for row in range(size[0]):
            self._surface.clear_row(row)
        self._next_row = min(len(self._scrollback), self._message_rows)
        self._paint_window()
        self._paint_input()

    def _paint_message(self, message: Message) -> None:
        self._scrollback.append(message)
        if self._next_row < self._message_rows:
            self._paint_row(self._next_row, message)
            self._next_row += 1
        else:
            self._paint_window()

    def _paint_window(self) -> None:
        rows = self._message_rows
        recent = self._scrollback.last(rows)
        for row in range(rows):
            if row < len(recent):
                self._paint_row(row, recent[row])
            else:
                self._surface.clear_row(row)
        self._paint_separator()

    def _paint_row(self, row: int, message: Message) -> None:
        columns = self._size[1]
        self._surface.clear_row(row)
        column = 0
        for chunk in message.chunks:
            if column >= columns:
                break
            text = chunk.text[: columns - column]
            self._surface.draw_text(row, column, text, chunk.style)
            column += len(chunk.text) + 1

    def _paint_separator(self) -> None:
        rows, columns = self._size
        if rows < RESERVED_ROWS:
            return
        self._surface.draw_text(rows - 2, 0, SEPARATOR_CHAR * columns, Style.normal)

    def _paint_input(self) -> None:
        rows, columns = self._size
        if rows < 1 or columns < 1:
            return
        text, cursor = self._input_line
        row = rows - 1
        offset = max(0, cursor - columns + 1)
        self._surface.clear_row(row)
        visible = text[offset : offset + columns]
        if visible:
            self._surface.draw_text(row, 0, visible, Style.normal)
        under_cursor = text[cursor] if cursor < len(text) else " "
        self._surface.draw_text(row, cursor - offset, under_cursor, Style.highlight)
