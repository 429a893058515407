"""
Logging setup for hosts embedding the console.

While the console owns the terminal nothing may write to stderr, so
`setup_logging` sends records to a file. `ConsoleLogHandler` forwards a
host's own log records into a running console as messages.
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

from live_console.config import get_data_dir
from live_console.messages import Message, error_message, timestamped_message

DEFAULT_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "live_console.log"

# Records from this package are never forwarded back into the console.
PACKAGE_LOGGER = "live_console"


class _OwnedFileHandler(logging.FileHandler):
    """Marker type so repeated setup_logging calls replace only our handler."""


def setup_logging(
    level: Union[str, int] = "INFO", log_file: Optional[Path] = None
) -> Path:
    """Configure the root logger to write to `log_file` and return its path."""
    if log_file is None:
        log_dir = get_data_dir()
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / LOG_FILE_NAME
    else:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(level.upper() if isinstance(level, str) else level)
    for handler in root.handlers[:]:
        if isinstance(handler, _OwnedFileHandler):
            root.removeHandler(handler)
            handler.close()

    handler = _OwnedFileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    root.addHandler(handler)
    return log_file


class ConsoleLogHandler(logging.Handler):
    """Send log records to a console as messages.

    WARNING and above become error messages, everything else timestamped
    messages. `sink` is normally ``ConsoleService.add_message``.
    """

    def __init__(
        self, sink: Callable[[Message], object], level: int = logging.INFO
    ) -> None:
        super().__init__(level)
        self._sink = sink
        self.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == PACKAGE_LOGGER or record.name.startswith(
            PACKAGE_LOGGER + "."
        ):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno >= logging.WARNING:
                build = error_message
            else:
                build = timestamped_message
            for line in self.format(record).splitlines():
                self._sink(build(line))
        except Exception:
            self.handleError(record)
