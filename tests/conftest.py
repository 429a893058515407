import logging
import time
from typing import Callable, Iterator

import pytest

from live_console.config import ConsoleConfig
from live_console.lifecycle import ProcessRegistry

WaitUntil = Callable[..., bool]


def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


@pytest.fixture
def wait_until() -> WaitUntil:
    """Poll `predicate` until it is true or the timeout expires."""
    return _wait_until


@pytest.fixture
def fast_config() -> ConsoleConfig:
    return ConsoleConfig(
        render_interval=0.01,
        input_poll_interval=0.01,
        join_timeout=2.0,
    )


@pytest.fixture
def process_registry() -> ProcessRegistry:
    return ProcessRegistry()


@pytest.fixture
def restore_root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
