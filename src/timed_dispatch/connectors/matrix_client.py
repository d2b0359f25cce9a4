# src/timed_dispatch/connectors/matrix_client.py

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import Any

from nio import AsyncClient, AsyncClientConfig, LoginResponse
from nio.api import RoomVisibility
from nio.responses import RoomCreateResponse, RoomSendResponse, SyncResponse

from ..core.events import EventEmitter, EventHandler, SessionEvent

logger = logging.getLogger(__name__)

try:
    import olm  # type: ignore  # noqa: F401

    OLM_AVAILABLE = True
except Exception:
    OLM_AVAILABLE = False

SYNC_TIMEOUT_MS = 30000


def _safe_mkdir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.warning("Failed to create directory %s: %r", path, e)


class MatrixSession:
    """
    Session over a Matrix homeserver (matrix-nio).

    Credentials are the access token triple {access_token, user_id, device_id}.
    Restoring them skips the password login; a fresh login emits credentials-updated
    so the caller can persist the new triple. Matrix has no pairing code, so
    scan-code-available is never emitted.

    Addresses:
    - "@user:server" -> direct room with that user (reused if already joined, created otherwise)
    - "!room:server" -> that room
    """

    def __init__(self, settings: Any, credentials: dict[str, Any] | None = None) -> None:
        self._settings = settings
        self._credentials = credentials
        self._events = EventEmitter()
        self._client: AsyncClient | None = None
        self._sync_task: asyncio.Task[None] | None = None
        self._direct_rooms: dict[str, str] = {}
        self._room_locks: dict[str, asyncio.Lock] = {}
        self._closing = False

    def on(self, event: SessionEvent, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def _build_client(self) -> AsyncClient:
        homeserver = (getattr(self._settings, "matrix_homeserver", "") or "").strip()
        user_id = (getattr(self._settings, "matrix_user_id", "") or "").strip()
        store_dir = Path(getattr(self._settings, "matrix_store_path", Path(".local/dispatch/matrix_store")))

        if not homeserver or not user_id:
            raise RuntimeError("Matrix is not configured: set DISPATCH_MATRIX_HOMESERVER and DISPATCH_MATRIX_USER_ID")

        encryption_enabled = bool(OLM_AVAILABLE)
        if encryption_enabled:
            _safe_mkdir(store_dir)
            logger.info("python-olm detected: E2EE enabled")
        else:
            logger.warning("python-olm not installed: E2EE disabled")

        config = AsyncClientConfig(encryption_enabled=encryption_enabled, store_sync_tokens=True)
        return AsyncClient(
            homeserver,
            user_id,
            store_path=str(store_dir) if encryption_enabled else None,
            config=config,
        )

    def _restore(self, client: AsyncClient) -> bool:
        data = self._credentials or {}
        access_token = data.get("access_token")
        user_id = data.get("user_id")
        device_id = data.get("device_id")
        if not access_token or not user_id or not device_id:
            if data:
                logger.warning("Stored Matrix credentials are incomplete, will try password login.")
            return False

        client.access_token = str(access_token)
        client.user_id = str(user_id)
        client.device_id = str(device_id)

        if client.config.encryption_enabled:
            try:
                client.load_store()
            except Exception as e:
                # We can still operate without the local crypto store, but E2EE will be limited.
                logger.warning("Failed to load E2EE store: %r", e)

        logger.info("Matrix session restored for %s", client.user_id)
        return True

    async def _login(self, client: AsyncClient) -> None:
        password = (getattr(self._settings, "matrix_password", "") or "").strip()
        if not password:
            raise RuntimeError(
                "Matrix credentials not found and password is not set. "
                "Set DISPATCH_MATRIX_PASSWORD once to bootstrap a session."
            )

        device_name = f"{getattr(self._settings, 'app_name', 'timed-dispatch')} (Python)"
        logger.info("Logging in to Matrix to bootstrap a new session (device_name=%r)...", device_name)

        resp = await client.login(password=password, device_name=device_name)
        if not isinstance(resp, LoginResponse):
            raise RuntimeError(f"Matrix login failed: {resp!r}")

        self._credentials = {
            "access_token": resp.access_token,
            "user_id": resp.user_id,
            "device_id": resp.device_id,
        }
        self._events.emit(SessionEvent.CREDENTIALS_UPDATED, dict(self._credentials))

    async def connect(self) -> None:
        client = self._build_client()
        self._client = client

        if not self._restore(client):
            await self._login(client)

        logger.info("Matrix initial sync...")
        resp = await client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if not isinstance(resp, SyncResponse):
            raise RuntimeError(f"Matrix initial sync failed: {resp!r}")
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        self._events.emit(SessionEvent.CONNECTION_OPENED)
        self._sync_task = asyncio.create_task(self._sync_forever(client))

    async def _sync_forever(self, client: AsyncClient) -> None:
        try:
            while not self._closing:
                resp = await client.sync(timeout=SYNC_TIMEOUT_MS, full_state=False)
                if not isinstance(resp, SyncResponse):
                    # A failed sync ends the connection.
                    logger.warning("Matrix sync error: %r", resp)
                    self._events.emit(SessionEvent.CONNECTION_CLOSED, str(resp))
                    return
        except Exception as e:
            logger.exception("Matrix sync loop crashed.")
            self._events.emit(SessionEvent.CONNECTION_CLOSED, str(e) or type(e).__name__)

    def _find_direct_room(self, client: AsyncClient, user_id: str) -> str | None:
        cached = self._direct_rooms.get(user_id)
        if cached:
            return cached
        for room_id, room in client.rooms.items():
            if room.member_count == 2 and user_id in room.users:
                self._direct_rooms[user_id] = room_id
                return room_id
        return None

    async def _resolve_room(self, client: AsyncClient, address: str) -> str:
        if address.startswith("!"):
            return address
        if not address.startswith("@"):
            raise ValueError(f"not a Matrix user or room id: {address}")

        # Concurrent sends to one user must not open two direct rooms.
        async with self._room_locks.setdefault(address, asyncio.Lock()):
            room_id = self._find_direct_room(client, address)
            if room_id:
                return room_id

            resp = await client.room_create(
                visibility=RoomVisibility.private,
                is_direct=True,
                invite=[address],
            )
            if not isinstance(resp, RoomCreateResponse):
                raise RuntimeError(f"failed to open a direct room with {address}: {resp!r}")
            self._direct_rooms[address] = resp.room_id
            return resp.room_id

    async def send(self, address: str, text: str) -> None:
        client = self._client
        if client is None:
            raise RuntimeError("Matrix session is not connected")

        room_id = await self._resolve_room(client, address)
        resp = await client.room_send(
            room_id=room_id,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": text},
            ignore_unverified_devices=True,
        )
        if not isinstance(resp, RoomSendResponse):
            raise RuntimeError(f"room_send failed: {resp!r}")

    async def close(self) -> None:
        self._closing = True
        if self._sync_task is not None:
            self._sync_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await self._sync_task
            self._sync_task = None

        if self._client is not None:
            with contextlib.suppress(Exception):
                await self._client.close()
            self._client = None
            self._events.emit(SessionEvent.CONNECTION_CLOSED, None)

        logger.info("Matrix session closed.")


def create_matrix_session(settings: Any, credentials: dict[str, Any] | None) -> MatrixSession:
    return MatrixSession(settings, credentials)
