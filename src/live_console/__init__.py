"""
Embeddable terminal console: asynchronous message output above a live,
editable command line, with commands dispatched to registered handlers.
"""

from live_console.commands import Command, CommandRegistry
from live_console.config import ConsoleConfig, load_config
from live_console.lifecycle import LifecycleCoordinator, ProcessRegistry
from live_console.messages import (
    Message,
    Style,
    error_message,
    timestamped_message,
)
from live_console.service import ConsoleService
from live_console.surface import MemorySurface, TerminalSurface, Vt100Surface

__all__ = [
    "Command",
    "CommandRegistry",
    "ConsoleConfig",
    "ConsoleService",
    "LifecycleCoordinator",
    "MemorySurface",
    "Message",
    "ProcessRegistry",
    "Style",
    "TerminalSurface",
    "Vt100Surface",
    "error_message",
    "load_config",
    "timestamped_message",
]
