# src/timed_dispatch/connectors/registry.py

"""
Transport name -> session factory.

Built-in names are "console" (dry run) and "matrix". Anything of the form
"package.module:attribute" is imported, which is how an external protocol client
(e.g. a WhatsApp bridge) is plugged in without touching this package.
"""

from __future__ import annotations

import importlib
from typing import Any

from ..core.ports import SessionFactory


class TransportConfigError(ValueError):
    pass


def _console_factory(settings: Any, credentials: dict[str, Any] | None):
    from .console_client import create_console_session

    return create_console_session(settings, credentials)


def _matrix_factory(settings: Any, credentials: dict[str, Any] | None):
    # nio is only imported when Matrix is actually selected.
    from .matrix_client import create_matrix_session

    return create_matrix_session(settings, credentials)


BUILTIN_TRANSPORTS: dict[str, SessionFactory] = {
    "console": _console_factory,
    "matrix": _matrix_factory,
}


def _import_factory(spec: str) -> SessionFactory:
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise TransportConfigError(f"Expected 'package.module:attribute', got {spec!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise TransportConfigError(f"Cannot import transport module {module_name!r}: {e}") from e

    factory = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise TransportConfigError(f"{spec!r} is not a callable session factory")
    return factory


def resolve_session_factory(name: str) -> SessionFactory:
    key = (name or "").strip()
    if key.lower() in BUILTIN_TRANSPORTS:
        return BUILTIN_TRANSPORTS[key.lower()]
    if ":" in key:
        return _import_factory(key)
    known = ", ".join(sorted(BUILTIN_TRANSPORTS))
    raise TransportConfigError(f"Unknown transport {name!r} (known: {known}, or 'package.module:attribute')")
