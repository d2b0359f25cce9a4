# src/timed_dispatch/connectors/console_client.py

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any

from ..core.events import EventEmitter, EventHandler, SessionEvent

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OutboundRecord:
    address: str
    text: str
    ts: float


class ConsoleSession:
    """
    Dry-run transport: nothing leaves the machine.

    Walks through the same event sequence as a real client so the rest of the app can be
    exercised end to end:
    - no credentials -> scan-code-available, wait, credentials-updated, connection-opened
    - credentials    -> connection-opened
    Sends are logged and recorded in `sent`.
    """

    def __init__(self, settings: Any = None, credentials: dict[str, Any] | None = None) -> None:
        self._events = EventEmitter()
        self._credentials = credentials
        self._pair_seconds = float(getattr(settings, "console_pair_seconds", 0) or 0)
        self._open = False
        self.sent: list[OutboundRecord] = []

    def on(self, event: SessionEvent, handler: EventHandler) -> None:
        self._events.on(event, handler)

    async def connect(self) -> None:
        if not self._credentials:
            device_id = secrets.token_hex(8)
            code = f"dispatch-pair:{device_id}:{secrets.token_urlsafe(16)}"
            self._events.emit(SessionEvent.SCAN_CODE_AVAILABLE, code)

            # Console "scan": pretend someone paired after a short delay.
            if self._pair_seconds > 0:
                await asyncio.sleep(self._pair_seconds)

            self._credentials = {"device_id": device_id, "paired_at": time.time(), "transport": "console"}
            self._events.emit(SessionEvent.CREDENTIALS_UPDATED, dict(self._credentials))

        self._open = True
        logger.info("Console session open (device_id=%s).", self._credentials.get("device_id"))
        self._events.emit(SessionEvent.CONNECTION_OPENED)

    async def send(self, address: str, text: str) -> None:
        if not self._open:
            raise RuntimeError("console session is not open")
        self.sent.append(OutboundRecord(address=address, text=text, ts=time.time()))
        logger.info("[dry-run] -> %s: %r", address, text)

    async def close(self) -> None:
        if not self._open:
            return
        self._open = False
        self._events.emit(SessionEvent.CONNECTION_CLOSED, None)


def create_console_session(settings: Any, credentials: dict[str, Any] | None) -> ConsoleSession:
    return ConsoleSession(settings, credentials)
