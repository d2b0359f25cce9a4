# tests/test_matrix_client.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest
from nio.responses import RoomCreateResponse, RoomSendError, RoomSendResponse, SyncError

from timed_dispatch.connectors import matrix_client
from timed_dispatch.connectors.matrix_client import MatrixSession
from timed_dispatch.core.events import SessionEvent


class FakeNioClient:
    """Just the AsyncClient surface MatrixSession.send() touches."""

    def __init__(self, rooms: dict[str, Any] | None = None, fail_send: bool = False) -> None:
        self.rooms = rooms or {}
        self.fail_send = fail_send
        self.created: list[list[str]] = []
        self.sent: list[tuple[str, str]] = []

    async def room_create(self, **kwargs: Any) -> RoomCreateResponse:
        await asyncio.sleep(0)
        self.created.append(list(kwargs["invite"]))
        return RoomCreateResponse(room_id=f"!dm{len(self.created)}:example.org")

    async def room_send(self, room_id: str, message_type: str, content: dict[str, Any], **kwargs: Any):
        if self.fail_send:
            return RoomSendError(message="M_FORBIDDEN")
        self.sent.append((room_id, content["body"]))
        return RoomSendResponse(event_id="$e", room_id=room_id)


def _session(client: FakeNioClient) -> MatrixSession:
    session = MatrixSession(SimpleNamespace(), None)
    session._client = client  # type: ignore[assignment]
    return session


@pytest.mark.asyncio
async def test_room_ids_are_used_directly() -> None:
    client = FakeNioClient()
    await _session(client).send("!ops:example.org", "deploy done")

    assert client.sent == [("!ops:example.org", "deploy done")]
    assert client.created == []


@pytest.mark.asyncio
async def test_existing_direct_room_is_reused() -> None:
    dm = SimpleNamespace(member_count=2, users={"@me:example.org": None, "@bob:example.org": None})
    client = FakeNioClient(rooms={"!bob:example.org": dm})

    await _session(client).send("@bob:example.org", "hi bob")

    assert client.sent == [("!bob:example.org", "hi bob")]
    assert client.created == []


@pytest.mark.asyncio
async def test_direct_room_is_created_once_per_user() -> None:
    client = FakeNioClient()
    session = _session(client)

    await session.send("@carol:example.org", "one")
    await session.send("@carol:example.org", "two")

    assert client.created == [["@carol:example.org"]]
    assert client.sent == [("!dm1:example.org", "one"), ("!dm1:example.org", "two")]


@pytest.mark.asyncio
async def test_phone_style_address_is_rejected() -> None:
    with pytest.raises(ValueError):
        await _session(FakeNioClient()).send("15551234567@s.whatsapp.net", "hi")


@pytest.mark.asyncio
async def test_send_error_response_raises() -> None:
    with pytest.raises(RuntimeError):
        await _session(FakeNioClient(fail_send=True)).send("!ops:example.org", "hi")


@pytest.mark.asyncio
async def test_send_before_connect_raises() -> None:
    with pytest.raises(RuntimeError):
        await MatrixSession(SimpleNamespace(), None).send("!ops:example.org", "hi")


@pytest.mark.asyncio
async def test_concurrent_sends_open_one_direct_room() -> None:
    client = FakeNioClient()
    session = _session(client)

    await asyncio.gather(
        session.send("@carol:example.org", "one"),
        session.send("@carol:example.org", "two"),
    )

    assert client.created == [["@carol:example.org"]]
    assert sorted(client.sent) == [("!dm1:example.org", "one"), ("!dm1:example.org", "two")]


class _SyncOk:
    """Stands in for nio's SyncResponse in the connect/sync test."""


class FakeSyncingClient:
    """AsyncClient surface used by connect() and the background sync loop."""

    def __init__(self, fail_after: int = 1) -> None:
        self.access_token = ""
        self.user_id = ""
        self.device_id = ""
        self.config = SimpleNamespace(encryption_enabled=False)
        self.rooms: dict[str, Any] = {}
        self.fail_after = fail_after
        self.sync_calls = 0
        self.closed = False

    async def sync(self, **kwargs: Any) -> Any:
        self.sync_calls += 1
        await asyncio.sleep(0)
        if self.sync_calls > self.fail_after:
            return SyncError(message="M_UNKNOWN_TOKEN")
        return _SyncOk()

    async def close(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_failed_background_sync_closes_connection(monkeypatch: pytest.MonkeyPatch) -> None:
    client = FakeSyncingClient(fail_after=1)
    monkeypatch.setattr(matrix_client, "SyncResponse", _SyncOk)
    monkeypatch.setattr(MatrixSession, "_build_client", lambda self: client)

    creds = {"access_token": "tok", "user_id": "@bot:example.org", "device_id": "DEV"}
    session = MatrixSession(SimpleNamespace(), creds)
    events: list[tuple[SessionEvent, Any]] = []
    session.on(SessionEvent.CONNECTION_OPENED, lambda p: events.append((SessionEvent.CONNECTION_OPENED, p)))
    session.on(SessionEvent.CONNECTION_CLOSED, lambda p: events.append((SessionEvent.CONNECTION_CLOSED, p)))

    await session.connect()
    assert session._sync_task is not None
    await asyncio.wait_for(session._sync_task, timeout=1)

    assert [e for e, _ in events] == [SessionEvent.CONNECTION_OPENED, SessionEvent.CONNECTION_CLOSED]
    assert "M_UNKNOWN_TOKEN" in events[1][1]
    # Initial sync plus the one that failed; the loop does not keep retrying.
    assert client.sync_calls == 2

    await session.close()
    assert client.closed is True
