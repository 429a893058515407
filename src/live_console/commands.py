"""
Command table and dispatch for the console input line.
"""

import logging
import re
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

from live_console.messages import Message, error_message, timestamped_message

logger = logging.getLogger(__name__)

Handler = Callable[[str], str]
MessageSink = Callable[[Message], object]

_FIRST_WHITESPACE = re.compile(r"\s")

HELP_USAGE = (
    'Type "help <command>" for help with that command. '
    'Type "commands" for a list of commands.'
)


@dataclass(frozen=True)
class Command:
    """Definition of a console command: description and handler."""

    description: str
    handler: Handler


def split_command_line(line: str) -> Tuple[str, str]:
    """Split at the first whitespace character into (name, argument).

    The argument is everything after that character, verbatim.
    """
    match = _FIRST_WHITESPACE.search(line)
    if match is None:
        return line, ""
    return line[: match.start()], line[match.end() :]


class CommandRegistry:
    """Name to Command mapping with synchronous dispatch.

    Results and errors are handed to `sink` as Messages; nothing raised by a
    handler escapes `dispatch`.
    """

    def __init__(
        self, sink: MessageSink, timestamp_format: Optional[str] = None
    ) -> None:
        self._sink = sink
        self._timestamp_format = timestamp_format
        self._lock = threading.Lock()
        self._commands: Dict[str, Command] = {}

    def register(self, names: Union[str, Iterable[str]], command: Command) -> None:
        """Register `command` under one or more names; last writer wins."""
        if isinstance(names, str):
            names = [names]
        with self._lock:
            for name in names:
                if name in self._commands:
                    logger.info("Replacing command %r", name)
                self._commands[name] = command

    def get(self, name: str) -> Optional[Command]:
        with self._lock:
            return self._commands.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._commands)

    def clear(self) -> None:
        with self._lock:
            self._commands.clear()

    def dispatch(self, line: str) -> bool:
        """Run the command named by the first word of `line`.

        Returns True if a handler ran to completion.
        """
        name, argument = split_command_line(line)
        fmt = self._timestamp_format
        # Lookup and invocation are separate so handlers may use the registry.
        command = self.get(name)
        if command is None:
            self._sink(error_message(f'Command "{name}" not found.', fmt))
            return False
        try:
            result = command.handler(argument)
        except BaseException as e:
            # SystemExit and KeyboardInterrupt included: a handler never ends
            # the dispatching thread.
            logger.exception("Command %r failed", name)
            self._sink(error_message(f'Command "{name}" failed: {e}', fmt))
            return False
        if result:
            self._sink(timestamped_message(str(result), fmt))
        return True

    def install_builtins(self) -> None:
        """Register the `commands` and `help` introspection commands."""
        self.register(
            "commands", Command("List all commands", self._list_commands)
        )
        self.register(
            "help",
            Command('Type "help <command>" for help with that command.', self._help),
        )

    def _list_commands(self, argument: str) -> str:
        return "Commands: " + ", ".join(self.names())

    def _help(self, argument: str) -> str:
        if not argument:
            return HELP_USAGE
        command = self.get(argument)
        if command is None:
            return (
                f'Command "{argument}" not found, '
                'type "commands" to list all commands.'
            )
        return f"{argument}: {command.description}"
