# src/timed_dispatch/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ConnectionStatus(StrEnum):
    INIT = "init"
    CONNECTING = "connecting"
    QR = "qr"
    OPEN = "open"
    CLOSE = "close"


@dataclass(slots=True, frozen=True)
class StatusSnapshot:
    connection: str
    last_error: str | None
    authed: bool
    has_qr: bool
    qr: str | None


@dataclass
class SessionState:
    """
    Connection status shared between the session wiring (writer) and HTTP handlers (readers).

    Only the on_* methods mutate it; they are registered as session event handlers.
    Readers go through snapshot().
    """

    connection: ConnectionStatus = ConnectionStatus.INIT
    last_error: str | None = None
    last_qr: str | None = None

    def on_connecting(self) -> None:
        self.connection = ConnectionStatus.CONNECTING

    def on_scan_code(self, code: str) -> None:
        self.last_qr = code
        self.connection = ConnectionStatus.QR

    def on_opened(self, _payload: object = None) -> None:
        self.connection = ConnectionStatus.OPEN
        self.last_qr = None

    def on_closed(self, error: str | None = None) -> None:
        self.connection = ConnectionStatus.CLOSE
        if error:
            self.last_error = str(error)

    def on_credentials(self, _credentials: object = None) -> None:
        # Pairing finished: the code is no longer scannable.
        self.last_qr = None

    def record_error(self, error: BaseException | str) -> None:
        self.last_error = str(error) or type(error).__name__

    def snapshot(self, *, authed: bool) -> StatusSnapshot:
        return StatusSnapshot(
            connection=self.connection.value,
            last_error=self.last_error,
            authed=authed,
            has_qr=self.last_qr is not None,
            qr=self.last_qr,
        )
