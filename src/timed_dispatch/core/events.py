# src/timed_dispatch/core/events.py

from __future__ import annotations

"""
Session events.

A session reports what happens on the wire through a small, closed set of events.
Subscribers react synchronously, in registration order, on the thread/loop that emitted.
"""

import logging
from collections import defaultdict
from enum import StrEnum
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


class SessionEvent(StrEnum):
    CREDENTIALS_UPDATED = "credentials-updated"  # payload: dict (opaque credential blob)
    CONNECTION_OPENED = "connection-opened"  # payload: None
    CONNECTION_CLOSED = "connection-closed"  # payload: error text or None
    SCAN_CODE_AVAILABLE = "scan-code-available"  # payload: code string


class EventEmitter:
    """
    Minimal synchronous event hub for session implementations.

    A failing handler is logged and skipped; the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: dict[SessionEvent, list[EventHandler]] = defaultdict(list)

    def on(self, event: SessionEvent, handler: EventHandler) -> None:
        self._handlers[SessionEvent(event)].append(handler)

    def emit(self, event: SessionEvent, payload: Any = None) -> None:
        ev = SessionEvent(event)
        for handler in list(self._handlers.get(ev, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception("Handler for %s failed", ev.value)
