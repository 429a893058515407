"""
Runtime configuration for the live console.

This module provides:
- ConsoleConfig: a frozen dataclass with the timing and buffer settings.
- load_config(): build a ConsoleConfig from LIVE_CONSOLE_* environment
  variables, falling back to a .env file for values not set in the environment.
- get_data_dir(): where the console keeps its log file.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, TypeVar

from dotenv import dotenv_values

from live_console.messages import DEFAULT_TIMESTAMP_FORMAT

RENDER_INTERVAL_ENV: str = "LIVE_CONSOLE_RENDER_INTERVAL"
INPUT_POLL_INTERVAL_ENV: str = "LIVE_CONSOLE_INPUT_POLL_INTERVAL"
SCROLLBACK_ENV: str = "LIVE_CONSOLE_SCROLLBACK"
TIMESTAMP_FORMAT_ENV: str = "LIVE_CONSOLE_TIMESTAMP_FORMAT"
JOIN_TIMEOUT_ENV: str = "LIVE_CONSOLE_JOIN_TIMEOUT"

T = TypeVar("T", int, float)


@dataclass(frozen=True)
class ConsoleConfig:
    """
    Holds runtime configuration for a console instance.

    Attributes:
        render_interval: Seconds the render thread sleeps between queue drains.
        input_poll_interval: Seconds the input thread waits for a key before
            re-checking its stop flag.
        scrollback_capacity: Number of rendered messages kept for repaints.
        timestamp_format: strftime format used for message timestamps.
        join_timeout: Seconds to wait for each console thread on close.
    """

    render_interval: float = 0.05
    input_poll_interval: float = 0.05
    scrollback_capacity: int = 100
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    join_timeout: float = 2.0

    def __post_init__(self) -> None:
        for name in (
            "render_interval",
            "input_poll_interval",
            "scrollback_capacity",
            "join_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")


def _parse(name: str, raw: str, cast: Callable[[str], T]) -> T:
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from None


def load_config(env_file: Optional[str] = None) -> ConsoleConfig:
    """
    Build a ConsoleConfig from the environment.

    Variables already set in the process environment win over values from the
    .env file; unset variables keep the dataclass defaults.
    """
    env_values = dotenv_values(env_file) if env_file else dotenv_values()

    def lookup(name: str) -> Optional[str]:
        value = os.environ.get(name) or env_values.get(name)
        return str(value) if value else None

    overrides: Dict[str, object] = {}
    for field_name, env_name, cast in (
        ("render_interval", RENDER_INTERVAL_ENV, float),
        ("input_poll_interval", INPUT_POLL_INTERVAL_ENV, float),
        ("scrollback_capacity", SCROLLBACK_ENV, int),
        ("join_timeout", JOIN_TIMEOUT_ENV, float),
    ):
        raw = lookup(env_name)
        if raw is not None:
            overrides[field_name] = _parse(
                env_name, raw, cast  # type: ignore[arg-type]
            )

    timestamp_format = lookup(TIMESTAMP_FORMAT_ENV)
    if timestamp_format:
        overrides["timestamp_format"] = timestamp_format

    return ConsoleConfig(**overrides)  # type: ignore[arg-type]


def get_data_dir() -> Path:
    """
    Return the live console data directory under XDG_DATA_HOME or fallback to
    ~/.local/share.
    """
    data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return data_home / "live_console"
