"""
Styled console messages and the builders used for timestamped output.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from rich.text import Text

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class Style(str, Enum):
    """Style tags a message chunk can carry."""

    normal = "normal"
    highlight = "highlight"
    error = "error"
    timestamp = "timestamp"
    input = "input"


# Rich equivalents, used when a message is printed outside the live console.
RICH_STYLES = {
    Style.normal: "",
    Style.highlight: "black on white",
    Style.error: "bold red",
    Style.timestamp: "cyan",
    Style.input: "magenta",
}


@dataclass(frozen=True)
class Chunk:
    text: str
    style: Style = Style.normal


@dataclass(frozen=True)
class Message:
    """One renderable line of console output: an ordered run of styled chunks."""

    chunks: Tuple[Chunk, ...] = ()

    @classmethod
    def of(cls, *parts: Tuple[str, Style]) -> "Message":
        return cls(tuple(Chunk(text, style) for text, style in parts))

    def with_chunk(self, text: str, style: Style = Style.normal) -> "Message":
        return Message(self.chunks + (Chunk(text, Style(style)),))

    @property
    def plain_text(self) -> str:
        """Text as drawn on the surface: chunks separated by a single column."""
        return " ".join(chunk.text for chunk in self.chunks)

    def has_style(self, style: Style) -> bool:
        return any(chunk.style is style for chunk in self.chunks)

    def __rich__(self) -> Text:
        text = Text()
        for index, chunk in enumerate(self.chunks):
            if index:
                text.append(" ")
            text.append(chunk.text, style=RICH_STYLES[chunk.style])
        return text


def timestamp(padded: bool = True, fmt: Optional[str] = None) -> str:
    """Current local time, wrapped in brackets when `padded`."""
    stamp = time.strftime(fmt or DEFAULT_TIMESTAMP_FORMAT, time.localtime())
    return f"[{stamp}]" if padded else stamp


def timestamped_message(text: str, fmt: Optional[str] = None) -> Message:
    return Message.of((timestamp(True, fmt), Style.timestamp), (text, Style.normal))


def error_message(text: str, fmt: Optional[str] = None) -> Message:
    return Message.of(
        (timestamp(True, fmt), Style.timestamp),
        ("[ERROR]", Style.error),
        (text, Style.normal),
    )


def input_echo(text: str, fmt: Optional[str] = None) -> Message:
    """Echo of a submitted input line."""
    return Message.of(
        (timestamp(True, fmt), Style.timestamp),
        (">", Style.input),
        (text, Style.normal),
    )

