from typing import List, Tuple

import pytest

from live_console.commands import (
    HELP_USAGE,
    Command,
    CommandRegistry,
    split_command_line,
)
from live_console.messages import Message, Style


@pytest.fixture
def sink() -> List[Message]:
    return []


@pytest.fixture
def registry(sink: List[Message]) -> CommandRegistry:
    commands = CommandRegistry(sink.append)
    commands.install_builtins()
    return commands


@pytest.mark.parametrize(
    "line,expected",
    [
        ("add 1 2 3", ("add", "1 2 3")),
        ("shutdown", ("shutdown", "")),
        ("say  two  spaces ", ("say", " two  spaces ")),
        ("tab\targument", ("tab", "argument")),
        ("", ("", "")),
    ],
)
def test_split_command_line(line: str, expected: Tuple[str, str]) -> None:
    assert split_command_line(line) == expected


def test_dispatch_routes_argument_to_handler(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    calls: List[str] = []

    def add(argument: str) -> str:
        calls.append(argument)
        return ""

    registry.register("add", Command("Add numbers", add))

    assert registry.dispatch("add 1 2 3") is True
    assert registry.dispatch("add") is True
    assert calls == ["1 2 3", ""]
    # Empty results produce no output.
    assert sink == []


def test_handler_result_is_queued_as_normal_message(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    registry.register("echo", Command("Echo", lambda argument: argument))

    registry.dispatch("echo hello")

    assert len(sink) == 1
    assert sink[0].plain_text.endswith(" hello")
    assert sink[0].has_style(Style.timestamp)
    assert not sink[0].has_style(Style.error)


def test_unknown_command_produces_one_error(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    assert registry.dispatch("zzz now") is False

    assert len(sink) == 1
    assert sink[0].has_style(Style.error)
    assert sink[0].plain_text.endswith('Command "zzz" not found.')


def test_failing_handler_becomes_error_message(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    def boom(argument: str) -> str:
        raise RuntimeError("kaboom")

    registry.register("boom", Command("Always fails", boom))

    assert registry.dispatch("boom") is False
    assert len(sink) == 1
    assert sink[0].has_style(Style.error)
    assert 'Command "boom" failed: kaboom' in sink[0].plain_text


@pytest.mark.parametrize("raised", [SystemExit(3), KeyboardInterrupt()])
def test_exiting_handler_is_contained(
    registry: CommandRegistry, sink: List[Message], raised: BaseException
) -> None:
    def leave(argument: str) -> str:
        raise raised

    registry.register("bye", Command("Tries to leave", leave))

    assert registry.dispatch("bye") is False
    assert len(sink) == 1
    assert sink[0].has_style(Style.error)
    assert 'Command "bye" failed' in sink[0].plain_text


def test_register_multiple_names_and_last_writer_wins(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    registry.register(["quit", "exit"], Command("First", lambda argument: "first"))
    registry.register("exit", Command("Second", lambda argument: "second"))

    registry.dispatch("quit")
    registry.dispatch("exit")

    assert [message.plain_text.split(" ")[-1] for message in sink] == [
        "first",
        "second",
    ]
    command = registry.get("exit")
    assert command is not None
    assert command.description == "Second"


def test_commands_lists_names_alphabetically(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    registry.register("zeta", Command("Z", lambda argument: ""))
    registry.register("alpha", Command("A", lambda argument: ""))

    registry.dispatch("commands")

    assert registry.names() == ["alpha", "commands", "help", "zeta"]
    assert sink[-1].plain_text.endswith("Commands: alpha, commands, help, zeta")


def test_help_without_argument_prints_usage(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    registry.dispatch("help")
    assert sink[-1].plain_text.endswith(HELP_USAGE)


def test_help_for_known_and_unknown_command(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    registry.register("echo", Command("Print the argument back", lambda a: a))

    registry.dispatch("help echo")
    registry.dispatch("help nope")

    assert sink[0].plain_text.endswith("echo: Print the argument back")
    assert sink[1].plain_text.endswith(
        'Command "nope" not found, type "commands" to list all commands.'
    )
    assert not sink[1].has_style(Style.error)


def test_handler_may_use_the_registry(
    registry: CommandRegistry, sink: List[Message]
) -> None:
    def define(argument: str) -> str:
        registry.register(argument, Command("Defined at runtime", lambda a: "ok"))
        return f"defined {argument}"

    registry.register("define", Command("Define a command", define))

    registry.dispatch("define later")
    registry.dispatch("later")

    assert sink[0].plain_text.endswith("defined later")
    assert sink[1].plain_text.endswith("ok")


def test_clear_removes_all_commands(registry: CommandRegistry) -> None:
    registry.clear()
    assert registry.names() == []
