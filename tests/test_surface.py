from typing import Any, List, Optional, Tuple

import pytest
from prompt_toolkit.input import create_pipe_input
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys
from prompt_toolkit.output import DummyOutput

from live_console.editor import EditorKey, KeyInput
from live_console.messages import Style
from live_console.surface import MemorySurface, Vt100Surface, decode_key


class RecordingOutput(DummyOutput):
    """DummyOutput that remembers the calls the surface makes."""

    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []

    def cursor_goto(self, row: int = 0, column: int = 0) -> None:
        self.calls.append(("goto", row, column))

    def write(self, data: str) -> None:
        self.calls.append(("write", data))

    def erase_end_of_line(self) -> None:
        self.calls.append(("erase_eol",))

    def enter_alternate_screen(self) -> None:
        self.calls.append(("alternate_screen", True))

    def quit_alternate_screen(self) -> None:
        self.calls.append(("alternate_screen", False))


@pytest.mark.parametrize(
    "key,expected",
    [
        (Keys.Left, KeyInput(EditorKey.left)),
        (Keys.Right, KeyInput(EditorKey.right)),
        (Keys.Up, KeyInput(EditorKey.up)),
        (Keys.Down, KeyInput(EditorKey.down)),
        (Keys.ControlH, KeyInput(EditorKey.backspace)),
        (Keys.ControlM, KeyInput(EditorKey.enter)),
        (Keys.ControlJ, KeyInput(EditorKey.enter)),
        (Keys.ControlC, KeyInput(EditorKey.interrupt)),
        ("a", KeyInput(EditorKey.character, "a")),
        (Keys.F1, None),
        (Keys.Escape, None),
    ],
)
def test_decode_key(key: Any, expected: Optional[KeyInput]) -> None:
    assert decode_key(KeyPress(key)) == expected


def test_vt100_surface_reads_keys_from_input() -> None:
    with create_pipe_input() as pipe:
        surface = Vt100Surface(output=DummyOutput(), input=pipe)
        with surface:
            assert surface.read_key(0.01) is None
            pipe.send_text("ab\r")
            keys = [surface.read_key(1.0) for _ in range(3)]

    assert keys == [
        KeyInput.typed("a"),
        KeyInput.typed("b"),
        KeyInput(EditorKey.enter),
    ]


def test_vt100_surface_draws_at_one_based_positions() -> None:
    output = RecordingOutput()
    with create_pipe_input() as pipe:
        with Vt100Surface(output=output, input=pipe) as surface:
            assert surface.size() == (40, 80)
            surface.draw_text(2, 4, "multi\nline", Style.error)
            surface.clear_row(3)

    assert output.calls[0] == ("alternate_screen", True)
    assert output.calls[-1] == ("alternate_screen", False)
    assert ("goto", 3, 5) in output.calls
    assert ("write", "multi line") in output.calls
    goto_clear = output.calls.index(("goto", 4, 1))
    assert output.calls[goto_clear + 1] == ("erase_eol",)


def test_memory_surface_grid_and_scripted_keys() -> None:
    surface = MemorySurface(rows=3, columns=5)
    with surface:
        assert surface.acquired
        surface.draw_text(0, 3, "abc", Style.error)
        surface.draw_text(7, 0, "off screen", Style.normal)
        assert surface.row_text(0) == "   ab"
        assert surface.row_styles(0)[3] is Style.error

        surface.clear_row(0)
        assert surface.row_text(0) == ""

        surface.type_line("hi")
        assert surface.read_key(0.1) == KeyInput.typed("h")
        assert surface.read_key(0.1) == KeyInput.typed("i")
        assert surface.read_key(0.1) == KeyInput(EditorKey.enter)
        assert surface.read_key(0.01) is None
    assert surface.released
