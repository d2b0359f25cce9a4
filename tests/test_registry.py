# tests/test_registry.py

from __future__ import annotations

import pytest

from timed_dispatch.connectors.console_client import ConsoleSession
from timed_dispatch.connectors.registry import TransportConfigError, resolve_session_factory

from .fakes import FakeSession, make_fake_session


def test_builtin_console_transport(settings) -> None:
    factory = resolve_session_factory("Console")
    assert isinstance(factory(settings, None), ConsoleSession)


def test_import_path_transport(settings) -> None:
    factory = resolve_session_factory("tests.fakes:make_fake_session")
    assert factory is make_fake_session
    assert isinstance(factory(settings, None), FakeSession)


@pytest.mark.parametrize(
    "name",
    [
        "carrier-pigeon",
        "",
        "tests.fakes:",
        "tests.fakes:does_not_exist",
        "timed_dispatch.connectors.registry:BUILTIN_TRANSPORTS",
        "no_such_module_for_sure:factory",
    ],
)
def test_bad_transport_names_raise(name: str) -> None:
    with pytest.raises(TransportConfigError):
        resolve_session_factory(name)
