# tests/test_logging_setup.py

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from timed_dispatch.logging_setup import _ConsoleNoiseFilter, level_from_name, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


@pytest.mark.parametrize(
    ("name", "level", "shown"),
    [
        ("timed_dispatch.schedule.scheduler", logging.DEBUG, True),
        ("uvicorn.access", logging.INFO, False),
        ("uvicorn.error", logging.WARNING, True),
        ("py.warnings", logging.WARNING, False),
        ("nio.client", logging.WARNING, False),
        ("nio.client", logging.ERROR, True),
    ],
)
def test_console_filter(name: str, level: int, shown: bool) -> None:
    assert _ConsoleNoiseFilter().filter(_record(name, level)) is shown


def test_level_from_name() -> None:
    assert level_from_name("debug") == logging.DEBUG
    assert level_from_name("WARNING") == logging.WARNING
    assert level_from_name("loud") == logging.INFO
    assert level_from_name(None, logging.ERROR) == logging.ERROR


def test_setup_logging_writes_file_and_replaces_handlers(tmp_path: Path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        stale = logging.NullHandler()
        root.addHandler(stale)
        log_file = setup_logging(log_dir=tmp_path)

        assert log_file == tmp_path / "dispatch.log"
        assert stale not in root.handlers
        assert len(root.handlers) == 2

        logging.getLogger("timed_dispatch.test").debug("written to file")
        for h in root.handlers:
            h.flush()
        assert "written to file" in log_file.read_text("utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
