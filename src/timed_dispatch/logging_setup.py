# src/timed_dispatch/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "dispatch.log"

_FORMATTER = logging.Formatter(
    fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Minimum console level per logger-name prefix; unlisted loggers need ERROR.
_CONSOLE_FLOORS: tuple[tuple[str, int], ...] = (
    ("timed_dispatch", logging.NOTSET),
    ("uvicorn", logging.WARNING),
)


class _ConsoleNoiseFilter(logging.Filter):
    """Our own records pass; library chatter only reaches the console when it is serious."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, floor in _CONSOLE_FLOORS:
            if record.name.startswith(prefix):
                return record.levelno >= floor
        return record.levelno >= logging.ERROR


def _make_handler(handler: logging.Handler, level: int, *filters: logging.Filter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(_FORMATTER)
    for f in filters:
        handler.addFilter(f)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/dispatch",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Send filtered records to stderr and everything to `<log_dir>/dispatch.log`.

    Replaces whatever handlers the root logger had, so calling it twice is harmless.
    Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers = [
        _make_handler(logging.StreamHandler(sys.stderr), console_level, _ConsoleNoiseFilter()),
        _make_handler(logging.FileHandler(log_file, encoding="utf-8"), file_level),
    ]

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.setLevel(logging.DEBUG)
    for h in handlers:
        root.addHandler(h)

    # warnings.warn() lands on 'py.warnings', which the console filter treats as a library.
    logging.captureWarnings(True)
    return log_file


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    """Map a level name from settings ("debug", "INFO", ...) to a logging level."""
    level = getattr(logging, str(name or "").upper(), None)
    return level if isinstance(level, int) else default
