# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Callable

import pytest

from timed_dispatch.core.credentials import JsonCredentialStore

from .fakes import FakeSession


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap/scheduler.

    We intentionally use a SimpleNamespace rather than the real config,
    to keep unit tests isolated from the environment and .env files.
    """
    return SimpleNamespace(
        app_name="timed-dispatch-test",
        log_level="DEBUG",
        workdir=tmp_path,
        messages_file="messages.txt",
        delays_file="time.txt",
        targets_file="targets.txt",
        address_suffix="s.whatsapp.net",
        transport="console",
        print_qr=False,
        console_pair_seconds=0,
        data_dir=tmp_path / "data",
        credentials_path=tmp_path / "data" / "auth_info.json",
        matrix_store_path=tmp_path / "data" / "matrix_store",
    )


@pytest.fixture()
def write_inputs(tmp_path: Path) -> Callable[..., None]:
    """Write messages.txt / time.txt / targets.txt into the test workdir."""

    def _write(*, messages: str = "", delays: str = "", targets: str = "") -> None:
        (tmp_path / "messages.txt").write_text(messages, "utf-8")
        (tmp_path / "time.txt").write_text(delays, "utf-8")
        (tmp_path / "targets.txt").write_text(targets, "utf-8")

    return _write


@pytest.fixture()
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def credential_store(settings: SimpleNamespace) -> JsonCredentialStore:
    return JsonCredentialStore(settings.credentials_path)
