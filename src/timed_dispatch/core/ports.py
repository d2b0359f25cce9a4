# src/timed_dispatch/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps protocol clients and credential storage swappable and makes testing easier.
"""

from typing import Any, Awaitable, Protocol

from .events import EventHandler, SessionEvent

Credentials = dict[str, Any]
# Opaque blob owned by the protocol client; we only load and save it.


class MessageSender(Protocol):
    """Anything the scheduler can push text through."""

    def send(self, address: str, text: str) -> Awaitable[None]: ...


class Session(MessageSender, Protocol):
    """
    Connection handle obtained from a protocol client.

    send() returns on success and raises on failure.
    connect() starts the connection; progress is reported through events, not return values.
    """

    def on(self, event: SessionEvent, handler: EventHandler) -> None: ...
    def connect(self) -> Awaitable[None]: ...
    def close(self) -> Awaitable[None]: ...


class SessionFactory(Protocol):
    def __call__(self, settings: Any, credentials: Credentials | None) -> Session: ...


class CredentialStore(Protocol):
    def load(self) -> Credentials | None: ...
    def save(self, credentials: Credentials) -> None: ...
    def exists(self) -> bool: ...
