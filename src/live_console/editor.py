"""
Line editor state machine for the console input row.
"""

import string
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

# Characters accepted on the input line; anything else is silently dropped.
ACCEPTABLE_CHARACTERS = frozenset(
    " "
    + string.ascii_letters
    + string.digits
    + "!\"£$%^&*()+-=_[]{}@:;'#~?/|.,<>\\"
)


class EditorKey(str, Enum):
    left = "left"
    right = "right"
    up = "up"
    down = "down"
    backspace = "backspace"
    enter = "enter"
    character = "character"
    # Not an editing event; the console treats it as a shutdown request.
    interrupt = "interrupt"


@dataclass(frozen=True)
class KeyInput:
    """A decoded key press."""

    key: EditorKey
    char: str = ""

    @classmethod
    def typed(cls, char: str) -> "KeyInput":
        return cls(EditorKey.character, char)


class InputEditor:
    """Buffer plus cursor, driven by KeyInput events.

    Invariant: 0 <= cursor <= len(buffer) after every event. `up` and `down`
    are accepted and deliberately do nothing: there is no history recall.
    """

    def __init__(self) -> None:
        self._buffer: List[str] = []
        self._cursor = 0

    @property
    def text(self) -> str:
        return "".join(self._buffer)

    @property
    def cursor(self) -> int:
        return self._cursor

    def __len__(self) -> int:
        return len(self._buffer)

    def handle(self, event: KeyInput) -> Optional[str]:
        """Apply one event. Returns the committed line on `enter`, else None."""
        match event.key:
            case EditorKey.left:
                self.move_left()
            case EditorKey.right:
                self.move_right()
            case EditorKey.backspace:
                self.backspace()
            case EditorKey.enter:
                return self.submit()
            case EditorKey.character:
                for char in event.char:
                    self.insert(char)
            case _:
                pass
        return None

    def move_left(self) -> None:
        if self._cursor > 0:
            self._cursor -= 1

    def move_right(self) -> None:
        if self._cursor < len(self._buffer):
            self._cursor += 1

    def backspace(self) -> None:
        if self._cursor == 0:
            return
        self._cursor -= 1
        del self._buffer[self._cursor]

    def insert(self, char: str) -> bool:
        if len(char) != 1 or char not in ACCEPTABLE_CHARACTERS:
            return False
        self._buffer.insert(self._cursor, char)
        self._cursor += 1
        return True

    def submit(self) -> str:
        """Snapshot the buffer, then reset it to empty."""
        committed = self.text
        self._buffer.clear()
        self._cursor = 0
        return committed
